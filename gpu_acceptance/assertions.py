# Checks return a list of human readable violations. An empty list passes;
# tests assert on it and the runner stores it next to the reports.

import re

from .models import (
    CanvasActivity,
    CapabilityReport,
    ComputeResult,
    DiagnosticsSnapshot,
    DrawCallResult,
    FeatureStatus,
    RenderReport,
    WebGPUReport,
)
from .thresholds import select_thresholds, thresholds_for, violations

SOFTWARE_RENDERER_PATTERN = re.compile(r'SwiftShader|Software|llvmpipe', re.I)
NVIDIA_PATTERN = re.compile(r'NVIDIA|GeForce|Tesla|Quadro', re.I)
MODERN_GRAPHICS_PATTERN = re.compile(r'OpenGL|Vulkan|ANGLE|Mesa', re.I)

COMPUTE_TOLERANCE = 1e-4
MIN_TEXTURE_SIZE = 2048


class BaselineCapabilityError(AssertionError):
    """WebGL, the floor requirement of a GPU host, is missing."""


def is_software_renderer(text: str | None) -> bool:
    return bool(text) and SOFTWARE_RENDERER_PATTERN.search(text) is not None


def is_power_of_two(value) -> bool:
    return isinstance(value, int) and value > 0 and value & (value - 1) == 0


def check_baseline(report: CapabilityReport) -> list:
    problems = []
    if not report.webgl:
        problems.append(f'WebGL is not available: {report.reason or "no context"}')
    if report.webgl2 and not report.webgl:
        problems.append('WebGL2 is reported without WebGL')
    return problems


def require_baseline(report: CapabilityReport):
    if problems := check_baseline(report):
        raise BaselineCapabilityError('; '.join(problems))


def check_capabilities(report: CapabilityReport, thresholds=None) -> list:
    """Baseline, texture size shape and the thresholds that apply to the host."""
    problems = check_baseline(report)
    if not report.webgl:
        return problems
    if thresholds is None:
        thresholds = thresholds_for(report)
    size = report.max_texture_size
    if not is_power_of_two(size) or size < MIN_TEXTURE_SIZE:
        problems.append(
            f'max_texture_size: {size} is not a power of two of at least {MIN_TEXTURE_SIZE}'
        )
    return problems + violations(report.metrics(), thresholds)


def check_hardware(report: CapabilityReport) -> list:
    """Capabilities plus a renderer that is not a software rasterizer."""
    problems = check_capabilities(report, thresholds_for(report, hardware=True))
    renderer = report.effective_renderer
    if not renderer:
        problems.append('No renderer string reported')
    elif is_software_renderer(renderer):
        problems.append(f'Renderer {renderer!r} is a software rasterizer')
    return problems


def check_webgl2_limits(report: CapabilityReport) -> list:
    if not report.webgl2:
        return []
    if report.webgl2_limits is None:
        return ['WebGL2 is available but no WebGL2 limits were read']
    return violations(report.webgl2_limits, select_thresholds(webgl2=True, scopes=()))


def check_nvidia(report: CapabilityReport) -> list:
    """
    NVIDIA named in the GL strings, or hardware confirmed by capabilities

    Driver setups that route through Mesa or ANGLE can hide the vendor, in
    which case large textures and a long extension list stand in for it.
    """
    problems = check_baseline(report)
    if not report.webgl:
        return problems
    text = report.gpu_string
    if not NVIDIA_PATTERN.search(text):
        problems += violations(
            report.metrics(), select_thresholds(unnamed_hardware=True, scopes=())
        )
        if re.search(r'SwiftShader|Software Rasterizer', text, re.I):
            problems.append(f'Renderer strings {text!r} name a software rasterizer')
    if not MODERN_GRAPHICS_PATTERN.search(text):
        problems.append(f'No OpenGL, Vulkan, ANGLE or Mesa in {text!r}')
    return problems


def check_webgpu(report: WebGPUReport, thresholds=None) -> list:
    # WebGPU is optional: an unsupported report is not a violation
    if not report.supported:
        return []
    if thresholds is None:
        thresholds = select_thresholds(scopes=('webgpu',))
    problems = violations(report.metrics(), thresholds)
    if not report.info.get('vendor'):
        problems.append('Adapter reports no vendor')
    if report.device is not None and not report.device.get('queue'):
        problems.append('WebGPU device has no queue')
    return problems


def check_compute(
    result: ComputeResult, size: int = 1000, tolerance: float = COMPUTE_TOLERANCE
) -> list:
    if not result.supported:
        return []
    if result.array_size != size:
        return [f'Compute ran on {result.array_size} elements, expected {size}']
    if not result.lengths_match:
        return [
            f'Compute returned {len(result.output)} values for inputs of '
            f'{len(result.input1)} and {len(result.input2)} elements, expected {result.array_size}'
        ]
    if not result.all_match(tolerance):
        mismatches = int((result.errors() >= tolerance).sum())
        return [
            f'{mismatches} of {result.array_size} outputs differ from input1 + input2 '
            f'by {tolerance} or more (max error {result.max_error:.3g})'
        ]
    return []


def check_draw_calls(result: DrawCallResult, draw_calls: int, thresholds) -> list:
    if result.error:
        return [f'Draw call benchmark failed: {result.error}']
    problems = []
    if result.draw_calls != draw_calls:
        problems.append(f'{result.draw_calls} draw calls issued, expected {draw_calls}')
    return problems + violations(result.metrics(), thresholds)


def check_diagnostics(
    snapshot: DiagnosticsSnapshot, features: tuple = ('Canvas', 'Rasterization')
) -> list:
    """Hardware acceleration as reported by chrome://gpu."""
    if snapshot.error:
        return [f'chrome://gpu could not be read: {snapshot.error}']
    problems = []
    if not snapshot.rows:
        problems.append('No graphics feature rows found')
    if not snapshot.hardware_accelerated:
        problems.append('No feature is hardware accelerated')
    if snapshot.software_only:
        software = [
            name for name, status in snapshot.rows.items() if status is FeatureStatus.SOFTWARE
        ]
        problems.append(f'Software only: {", ".join(software)}')
    for feature in features:
        if not snapshot.accelerated(feature):
            problems.append(f'{feature}: {snapshot.status(feature).value}')
    if not snapshot.backend:
        problems.append('No graphics backend detected')
    return problems


def check_render_report(report: RenderReport) -> list:
    problems = []
    if report.error:
        problems.append(f'GPU report page failed: {report.error}')
    if not report.webgl:
        problems.append('GPU report page found no WebGL')
    elif not report.rendered:
        problems.append(f'Gradient was not rendered, centre pixel is {report.pixel}')
    return problems


def check_idempotent(first: CapabilityReport, second: CapabilityReport) -> list:
    """Support flags and limits must not change within one session."""
    problems = []
    for name in ['webgl', 'webgl2', 'webgpu', 'limits', 'webgl2_limits']:
        if getattr(first, name) != getattr(second, name):
            problems.append(f'{name} changed: {getattr(first, name)} != {getattr(second, name)}')
    if sorted(first.extensions) != sorted(second.extensions):
        problems.append('extensions changed between probes')
    return problems


def check_canvas_activity(activity: CanvasActivity) -> list:
    problems = []
    if not activity.exists:
        return ['No canvas on the page']
    if activity.width <= 0 or activity.height <= 0:
        problems.append(f'Canvas is {activity.width}x{activity.height}')
    if activity.screenshot_size <= 1000:
        problems.append(f'Canvas screenshot is only {activity.screenshot_size} bytes')
    if activity.has_webgpu_context and not activity.webgpu_working:
        problems.append('WebGPU context present but the canvas is not rendering')
    return problems
