import pytest

from gpu_acceptance.models import (
    CanvasActivity,
    CapabilityReport,
    ComputeResult,
    DrawCallResult,
    WebGPUReport,
)

LINUX_UA = 'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 Chrome/128.0.0.0 Safari/537.36'
MAC_UA = 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 Chrome/128.0.0.0'


def probe_payload(**overrides):
    payload = {
        'webgl': True,
        'webgl2': True,
        'webgpu': False,
        'platform': 'Linux x86_64',
        'user_agent': LINUX_UA,
        'max_touch_points': 0,
        'context_type': 'webgl2',
        'vendor': 'WebKit',
        'renderer': 'WebKit WebGL',
        'version': 'WebGL 2.0 (OpenGL ES 3.0 Chromium)',
        'shading_language_version': 'WebGL GLSL ES 3.00',
        'unmasked_vendor': 'Google Inc. (NVIDIA)',
        'unmasked_renderer': 'ANGLE (NVIDIA, Vulkan 1.3.277 (NVIDIA GeForce RTX 4090))',
        'limits': {
            'max_texture_size': 16384,
            'max_viewport_dims': [32767, 32767],
            'max_combined_texture_image_units': 64,
        },
        'webgl2_limits': {'max_color_attachments': 8, 'max_3d_texture_size': 2048},
        'extensions': ['EXT_color_buffer_float', 'OES_texture_float_linear'],
        'unexpected_key': 'ignored',
    }
    payload.update(overrides)
    return payload


def test_capability_report_from_probe_ignores_unknown_keys():
    report = CapabilityReport.from_probe(probe_payload())
    assert report.webgl and report.webgl2
    assert report.max_texture_size == 16384
    assert not hasattr(report, 'unexpected_key')


def test_capability_report_unsupported():
    report = CapabilityReport.from_probe(
        {'webgl': False, 'webgl2': False, 'webgpu': False, 'reason': 'No auto context'}
    )
    assert report.max_texture_size == 0
    assert report.effective_renderer == ''
    assert report.gpu_string == ''
    assert report.metrics()['webgl'] == 0


def test_effective_renderer_prefers_unmasked():
    report = CapabilityReport.from_probe(probe_payload())
    assert report.effective_renderer.startswith('ANGLE (NVIDIA')
    masked = CapabilityReport.from_probe(probe_payload(unmasked_renderer=None))
    assert masked.effective_renderer == 'WebKit WebGL'
    assert 'Google Inc. (NVIDIA)' in report.gpu_string


@pytest.mark.parametrize(
    'platform, user_agent, expected',
    [
        ('Linux x86_64', LINUX_UA, 'linux'),
        ('MacIntel', MAC_UA, 'mac'),
        ('Win32', 'Mozilla/5.0 (Windows NT 10.0; Win64; x64)', 'windows'),
        ('', '', 'other'),
    ],
)
def test_os_family(platform, user_agent, expected):
    report = CapabilityReport.from_probe(probe_payload(platform=platform, user_agent=user_agent))
    assert report.os_family == expected


def test_is_apple_silicon():
    apple = CapabilityReport.from_probe(
        probe_payload(
            platform='MacIntel',
            user_agent=MAC_UA,
            unmasked_renderer='ANGLE (Apple, ANGLE Metal Renderer: Apple M2 Pro, Unspecified Version)',
        )
    )
    assert apple.is_apple_silicon
    intel_mac = CapabilityReport.from_probe(
        probe_payload(
            platform='MacIntel',
            user_agent=MAC_UA,
            unmasked_vendor='Intel Inc.',
            unmasked_renderer='Intel(R) Iris(TM) Plus Graphics 655',
        )
    )
    assert not intel_mac.is_apple_silicon
    touch = CapabilityReport.from_probe(
        probe_payload(
            platform='MacIntel',
            user_agent=MAC_UA,
            max_touch_points=5,
            unmasked_vendor=None,
            unmasked_renderer=None,
        )
    )
    assert touch.is_apple_silicon
    assert not CapabilityReport.from_probe(probe_payload(max_touch_points=5)).is_apple_silicon


def test_is_vulkan_backend():
    assert CapabilityReport.from_probe(probe_payload()).is_vulkan_backend
    report = CapabilityReport.from_probe(
        probe_payload(unmasked_renderer='Mesa Intel(R) UHD Graphics 630 (CFL GT2)')
    )
    assert not report.is_vulkan_backend


def test_capability_metrics():
    metrics = CapabilityReport.from_probe(probe_payload()).metrics()
    assert metrics['webgl'] == 1
    assert metrics['webgl2'] == 1
    assert metrics['extension_count'] == 2
    assert metrics['max_texture_size'] == 16384
    assert metrics['max_color_attachments'] == 8
    # lists such as the viewport dimensions are not thresholdable
    assert 'max_viewport_dims' not in metrics


def test_webgpu_report_metrics():
    report = WebGPUReport.from_probe(
        {
            'supported': True,
            'info': {'vendor': 'nvidia', 'architecture': 'lovelace'},
            'features': ['shader-f16'],
            'limits': {'maxTextureDimension2D': 16384, 'maxBindGroups': 4},
            'device': {'label': '', 'queue': True},
        }
    )
    assert report.metrics() == {'max_texture_dimension_2d': 16384}
    assert WebGPUReport(supported=False).metrics() == {'max_texture_dimension_2d': 0}


def test_compute_result_matches():
    result = ComputeResult.from_probe(
        {
            'supported': True,
            'array_size': 3,
            'input1': [0.1, 0.2, 0.3],
            'input2': [0.5, 0.25, 0.125],
            'output': [0.6, 0.45, 0.425],
        }
    )
    assert result.all_match()
    assert result.max_error < 1e-6
    verification = result.verification(samples=2)
    assert len(verification) == 2
    assert verification[0]['expected'] == pytest.approx(0.6)
    assert all(sample['match'] for sample in verification)


def test_compute_result_mismatch():
    result = ComputeResult(
        supported=True, array_size=3, input1=[1, 2, 3], input2=[1, 1, 1], output=[2, 3, 5]
    )
    assert not result.all_match()
    assert result.max_error == pytest.approx(1)
    assert [sample['match'] for sample in result.verification()] == [True, True, False]


def test_compute_result_length_mismatch():
    result = ComputeResult(
        supported=True, array_size=3, input1=[1, 2], input2=[1, 1], output=[2, 3]
    )
    assert not result.all_match()
    assert not ComputeResult(supported=False).all_match()


def test_draw_call_metrics():
    result = DrawCallResult.from_probe(
        {
            'draw_calls': 1000,
            'total_time': 12.5,
            'average_time_per_draw': 0.0125,
            'triangles_per_second': 80000,
            'context_type': 'webgl2',
        }
    )
    assert result.error is None
    assert result.metrics() == {
        'draw_calls': 1000,
        'total_time_ms': 12.5,
        'average_time_per_draw_ms': 0.0125,
        'triangles_per_second': 80000,
    }


def test_canvas_webgpu_working():
    activity = CanvasActivity(
        exists=True, width=800, height=600, has_webgpu_context=True, screenshot_size=20000
    )
    assert not activity.webgpu_working
    activity.animated = True
    assert activity.webgpu_working
    activity.screenshot_size = 500
    assert not activity.webgpu_working


def test_compute_result_unequal_inputs():
    result = ComputeResult(
        supported=True, array_size=3, input1=[1, 2, 3], input2=[1, 1], output=[2, 3, 4]
    )
    assert not result.lengths_match
    assert not result.all_match()
    assert result.max_error == 0
    assert len(result.verification()) == 2
