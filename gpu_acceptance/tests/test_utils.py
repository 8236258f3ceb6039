from gpu_acceptance.utils import SUMMARY_COLUMNS, flatten_violations, summarize_runs

RECORDS = [
    {
        'run': 1,
        'passed': True,
        'provider': 'aws',
        'browser_version': '128.0.6613.18',
        'capabilities': {
            'unmasked_renderer': 'ANGLE (NVIDIA, Vulkan 1.3.277 (NVIDIA GeForce RTX 4090))',
            'limits': {'max_texture_size': 32768},
        },
        'webgpu': {'supported': True},
        'diagnostics': {'graphics_backend': 'Vulkan'},
        'draw_calls': {'total_time': 42.0},
        'violations': {'capabilities': [], 'webgpu': []},
    },
    {
        'run': 2,
        'passed': False,
        'provider': 'aws',
        'error': 'BaselineCapabilityError: WebGL is not available: No auto context',
        'violations': {},
    },
    {
        'run': 3,
        'passed': False,
        'provider': 'aws',
        'browser_version': '128.0.6613.18',
        'capabilities': {'limits': {'max_texture_size': 2048}},
        'violations': {
            'capabilities': ['max_texture_size: 2048 is below the minimum of 4096'],
            'diagnostics': ['No feature is hardware accelerated', 'Canvas: software'],
        },
    },
]


def test_summarize_runs():
    summary = summarize_runs(RECORDS)
    assert len(summary) == 3
    assert summary['run'].tolist() == [1, 2, 3]
    assert summary['violations'].tolist() == [0, 0, 3]
    assert summary.loc[0, 'capabilities.limits.max_texture_size'] == 32768
    assert summary.loc[0, 'diagnostics.graphics_backend'] == 'Vulkan'


def test_summarize_runs_empty():
    summary = summarize_runs([])
    assert summary.empty
    assert list(summary.columns) == [*SUMMARY_COLUMNS, 'violations']


def test_flatten_violations():
    violations = flatten_violations(RECORDS)
    assert len(violations) == 3
    assert violations['run'].tolist() == [3, 3, 3]
    assert violations['check'].tolist() == ['capabilities', 'diagnostics', 'diagnostics']
    assert flatten_violations(RECORDS[:2]).empty
