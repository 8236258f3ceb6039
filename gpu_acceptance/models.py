# Records produced by one probe execution. Everything here is built from the
# plain JSON returned by page.evaluate and lives for a single test.

import dataclasses
import enum
import re

import numpy as np

BACKEND_PRIORITY = ('Metal', 'Vulkan', 'DirectX', 'OpenGL', 'ANGLE')


class FeatureStatus(str, enum.Enum):
    HARDWARE = 'hardware'
    SOFTWARE = 'software'
    ENABLED = 'enabled'
    DISABLED = 'disabled'
    PROBLEM = 'problem'
    UNKNOWN = 'unknown'


def _from_dict(cls, data: dict):
    names = {f.name for f in dataclasses.fields(cls)}
    return cls(**{key: value for key, value in data.items() if key in names})


@dataclasses.dataclass
class CapabilityReport:
    """WebGL/WebGL2 capabilities of one browser page."""

    webgl: bool
    webgl2: bool = False
    webgpu: bool = False
    context_type: str | None = None
    platform: str = ''
    user_agent: str = ''
    max_touch_points: int = 0
    vendor: str | None = None
    renderer: str | None = None
    version: str | None = None
    shading_language_version: str | None = None
    unmasked_vendor: str | None = None
    unmasked_renderer: str | None = None
    limits: dict = dataclasses.field(default_factory=dict)
    webgl2_limits: dict | None = None
    extensions: list = dataclasses.field(default_factory=list)
    important_extensions: dict = dataclasses.field(default_factory=dict)
    max_anisotropy: float = 0
    context_attributes: dict = dataclasses.field(default_factory=dict)
    reason: str | None = None

    @classmethod
    def from_probe(cls, data: dict) -> 'CapabilityReport':
        return _from_dict(cls, data)

    @property
    def max_texture_size(self) -> int:
        return self.limits.get('max_texture_size', 0)

    @property
    def effective_renderer(self) -> str:
        return self.unmasked_renderer or self.renderer or ''

    @property
    def gpu_string(self) -> str:
        """Vendor and renderer strings, masked and unmasked, in one line."""
        parts = [self.vendor, self.renderer, self.unmasked_vendor, self.unmasked_renderer]
        return ' '.join(part for part in parts if part)

    @property
    def os_family(self) -> str:
        text = f'{self.platform} {self.user_agent}'.lower()
        if 'mac' in text:
            return 'mac'
        if 'win' in text:
            return 'windows'
        if 'linux' in text or 'x11' in text:
            return 'linux'
        return 'other'

    @property
    def is_apple_silicon(self) -> bool:
        # Apple Silicon still reports MacIntel as navigator.platform
        if self.os_family != 'mac':
            return False
        return bool(re.search(r'apple m\d', self.gpu_string, re.I)) or self.max_touch_points > 0

    @property
    def is_vulkan_backend(self) -> bool:
        renderer = self.effective_renderer.lower()
        return 'vulkan' in renderer or 'angle' in renderer

    def metrics(self) -> dict:
        """Flat metric values matched against the threshold table."""
        values = {
            'webgl': int(self.webgl),
            'webgl2': int(self.webgl2),
            'extension_count': len(self.extensions),
            **{k: v for k, v in self.limits.items() if isinstance(v, (int, float))},
        }
        if self.webgl2_limits:
            values.update(self.webgl2_limits)
        return values


@dataclasses.dataclass
class WebGPUReport:
    supported: bool
    reason: str | None = None
    info: dict = dataclasses.field(default_factory=dict)
    features: list = dataclasses.field(default_factory=list)
    limits: dict = dataclasses.field(default_factory=dict)
    device: dict | None = None
    device_error: str | None = None
    platform: str = ''
    user_agent: str = ''

    @classmethod
    def from_probe(cls, data: dict) -> 'WebGPUReport':
        return _from_dict(cls, data)

    def metrics(self) -> dict:
        return {'max_texture_dimension_2d': self.limits.get('maxTextureDimension2D', 0)}


@dataclasses.dataclass
class ComputeResult:
    """Inputs and GPU output of the element-wise addition round trip."""

    supported: bool
    reason: str | None = None
    array_size: int = 0
    input1: list = dataclasses.field(default_factory=list)
    input2: list = dataclasses.field(default_factory=list)
    output: list = dataclasses.field(default_factory=list)

    @classmethod
    def from_probe(cls, data: dict) -> 'ComputeResult':
        return _from_dict(cls, data)

    @property
    def lengths_match(self) -> bool:
        return len(self.input1) == len(self.input2) == len(self.output) == self.array_size

    def errors(self) -> np.ndarray:
        # only indices covered by all three arrays are compared
        n = min(len(self.input1), len(self.input2), len(self.output))
        expected = np.asarray(self.input1[:n], dtype=np.float64) + np.asarray(
            self.input2[:n], dtype=np.float64
        )
        return np.abs(expected - np.asarray(self.output[:n], dtype=np.float64))

    @property
    def max_error(self) -> float:
        errors = self.errors()
        return float(errors.max()) if errors.size else 0.0

    def all_match(self, tolerance: float = 1e-4) -> bool:
        if not self.lengths_match or not self.array_size:
            return False
        return bool((self.errors() < tolerance).all())

    def verification(self, samples: int = 5, tolerance: float = 1e-4) -> list:
        errors = self.errors()
        return [
            {
                'input1': self.input1[i],
                'input2': self.input2[i],
                'expected': self.input1[i] + self.input2[i],
                'actual': self.output[i],
                'match': bool(errors[i] < tolerance),
            }
            for i in range(min(samples, len(errors)))
        ]


@dataclasses.dataclass
class DrawCallResult:
    draw_calls: int = 0
    total_time: float = 0.0
    average_time_per_draw: float = 0.0
    triangles_per_second: float = 0.0
    context_type: str | None = None
    error: str | None = None

    @classmethod
    def from_probe(cls, data: dict) -> 'DrawCallResult':
        return _from_dict(cls, data)

    def metrics(self) -> dict:
        return {
            'draw_calls': self.draw_calls,
            'total_time_ms': self.total_time,
            'average_time_per_draw_ms': self.average_time_per_draw,
            'triangles_per_second': self.triangles_per_second,
        }


@dataclasses.dataclass
class RenderReport:
    """Outcome of the self-contained GPU report page."""

    webgl: bool = False
    webgl2: bool = False
    webgpu: bool = False
    rendered: bool = False
    pixel: list = dataclasses.field(default_factory=list)
    vendor: str | None = None
    renderer: str | None = None
    extension_count: int = 0
    error: str | None = None

    @classmethod
    def from_probe(cls, data: dict) -> 'RenderReport':
        return _from_dict(cls, data)


@dataclasses.dataclass
class CanvasActivity:
    exists: bool = False
    width: int = 0
    height: int = 0
    has_webgpu_context: bool = False
    has_webgl: bool = False
    has_2d: bool = False
    screenshot_size: int = 0
    animated: bool = False
    console_errors: list = dataclasses.field(default_factory=list)

    @property
    def webgpu_working(self) -> bool:
        return self.has_webgpu_context and self.animated and self.screenshot_size > 1000


@dataclasses.dataclass
class DiagnosticsSnapshot:
    """What chrome://gpu reports, one status per feature row."""

    rows: dict = dataclasses.field(default_factory=dict)
    features: list = dataclasses.field(default_factory=list)
    problems: list = dataclasses.field(default_factory=list)
    backends: list = dataclasses.field(default_factory=list)
    version_info: dict = dataclasses.field(default_factory=dict)
    driver_info: dict = dataclasses.field(default_factory=dict)
    webgpu_status: str | None = None
    adapter_features: list = dataclasses.field(default_factory=list)
    angle_features: list = dataclasses.field(default_factory=list)
    text_length: int = 0
    source: str | None = None
    error: str | None = None

    def status(self, name: str) -> FeatureStatus:
        name = name.strip().lower()
        for key, status in self.rows.items():
            if key.lower() == name:
                return status
        return FeatureStatus.UNKNOWN

    def accelerated(self, name: str) -> bool:
        return self.status(name) is FeatureStatus.HARDWARE

    @property
    def hardware_accelerated(self) -> bool:
        return any(status is FeatureStatus.HARDWARE for status in self.rows.values())

    @property
    def software_only(self) -> bool:
        return any(status is FeatureStatus.SOFTWARE for status in self.rows.values())

    @property
    def backend(self) -> str | None:
        for name in BACKEND_PRIORITY:
            if name in self.backends:
                return name
        return None

    @property
    def webgpu_available(self) -> bool:
        return self.webgpu_status == 'Available'

    def summary(self) -> dict:
        return {
            'source': self.source,
            'webgpu_status': self.status('WebGPU').value,
            'hardware_accelerated': self.hardware_accelerated,
            'software_only': self.software_only,
            'graphics_backend': self.backend,
            'backends': list(self.backends),
            'skia_backend': self.driver_info.get('Skia Backend'),
            'display_type': self.driver_info.get('Display type'),
            'webgpu_available': self.webgpu_available,
            'total_features': len(self.rows),
            'total_problems': len(self.problems),
            'total_capabilities': len(self.adapter_features),
            'chrome_version': self.version_info.get('Chrome version'),
            'os': self.version_info.get('Operating system'),
        }
