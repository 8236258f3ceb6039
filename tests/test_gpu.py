import dataclasses
import json
import platform

import pytest

from gpu_acceptance.assertions import (
    check_baseline,
    check_capabilities,
    check_hardware,
    check_idempotent,
    check_nvidia,
    check_render_report,
    check_webgl2_limits,
)
from gpu_acceptance.probes import BLANK_PAGE, probe_webgl, render_report
from gpu_acceptance.thresholds import thresholds_for

pytestmark = [pytest.mark.browser, pytest.mark.gpu]


@pytest.fixture
def report(page):
    page.goto(BLANK_PAGE)
    report = probe_webgl(page)
    print(json.dumps(dataclasses.asdict(report), indent=2))
    return report


def test_webgl_baseline(report):
    assert check_baseline(report) == []
    assert report.context_type in {'webgl', 'webgl2'}
    assert report.version


def test_webgl_feature_detection(report):
    thresholds = thresholds_for(report)
    print(thresholds)
    assert check_capabilities(report, thresholds) == []
    assert check_webgl2_limits(report) == []


def test_gpu_hardware_acceleration(report):
    print(f'Renderer: {report.effective_renderer}')
    assert check_hardware(report) == []


def test_nvidia_gpu(report):
    if report.os_family == 'mac':
        pytest.skip('NVIDIA GPUs are not used on macOS hosts')
    assert check_nvidia(report) == []


@pytest.mark.skipif(platform.system() != 'Linux', reason='Vulkan is the Linux launch backend')
def test_vulkan_backend(report):
    assert report.is_vulkan_backend, f'Renderer {report.effective_renderer!r} is not Vulkan/ANGLE'


@pytest.mark.parametrize('context_type', ['webgl', 'webgl2'])
def test_context_types(page, context_type):
    page.goto(BLANK_PAGE)
    report = probe_webgl(page, context_type)
    assert report.context_type == context_type, report.reason
    assert report.max_texture_size >= 2048
    if context_type == 'webgl2':
        assert report.webgl2_limits is not None
    else:
        assert report.webgl2_limits is None


def test_probe_is_idempotent(page, report):
    assert check_idempotent(report, probe_webgl(page)) == []


def test_gpu_report_page(page, artifacts_dir):
    report = render_report(page)
    path = artifacts_dir / 'gpu-report.png'
    path.write_bytes(page.screenshot(full_page=True))
    print(f'GPU report saved as {path}: {report}')
    assert check_render_report(report) == []
    assert page.locator('#results').inner_text() != 'Loading...'
