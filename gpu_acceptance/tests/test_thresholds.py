import pandas as pd
import pytest

from gpu_acceptance.models import CapabilityReport
from gpu_acceptance.thresholds import THRESHOLDS, select_thresholds, thresholds_for, violations


def minimum(thresholds, metric):
    row = thresholds.loc[metric]
    assert row['bound'] == 'min'
    return row['value']


def test_threshold_table_shape():
    assert list(THRESHOLDS.columns) == ['scope', 'match', 'metric', 'bound', 'value']
    assert set(THRESHOLDS['bound']) == {'min', 'max'}


def test_default_thresholds():
    thresholds = select_thresholds()
    assert minimum(thresholds, 'webgl') == 1
    assert minimum(thresholds, 'max_texture_size') == 2048
    assert minimum(thresholds, 'extension_count') == 6
    assert 'max_color_attachments' not in thresholds.index


@pytest.mark.parametrize(
    'kwargs, expected',
    [
        ({'os_family': 'linux'}, 4096),
        ({'os_family': 'mac'}, 8192),
        ({'os_family': 'windows'}, 2048),
        ({'os_family': 'mac', 'apple_silicon': True}, 16384),
        ({'renderer': 'ANGLE (NVIDIA, Vulkan 1.3 (NVIDIA GeForce RTX 4090))'}, 8192),
        ({'renderer': 'AMD Radeon Pro 5500M'}, 4096),
        ({'renderer': 'Mesa Intel(R) UHD Graphics 630'}, 2048),
        ({'renderer': 'ANGLE Metal Renderer: Apple M1'}, 16384),
        ({'hardware': True}, 8192),
        # the strictest applicable row wins
        ({'os_family': 'linux', 'renderer': 'Intel(R) Iris Xe'}, 4096),
    ],
)
def test_texture_size_floor(kwargs, expected):
    assert minimum(select_thresholds(**kwargs), 'max_texture_size') == expected


def test_renderer_match_uses_word_boundaries():
    # 'm1' inside another word must not select the Apple rows
    thresholds = select_thresholds(renderer='Adreno (TM) gm15')
    assert minimum(thresholds, 'max_texture_size') == 2048
    assert 'webgl2' not in thresholds.index


def test_extension_floors():
    assert minimum(select_thresholds(hardware=True), 'extension_count') == 11
    assert minimum(select_thresholds(unnamed_hardware=True, scopes=()), 'extension_count') == 21


def test_draw_call_thresholds():
    thresholds = select_thresholds(scopes=('draw_calls',))
    assert thresholds.loc['total_time_ms', 'bound'] == 'max'
    assert thresholds.loc['total_time_ms', 'value'] == 5000
    assert thresholds.loc['average_time_per_draw_ms', 'value'] == 1
    smoke = select_thresholds(scopes=('draw_calls_smoke',))
    assert smoke.loc['total_time_ms', 'value'] == 1000
    assert minimum(smoke, 'triangles_per_second') == 101


def test_select_from_custom_table():
    table = pd.DataFrame(
        [('default', None, 'max_texture_size', 'min', 1024)],
        columns=['scope', 'match', 'metric', 'bound', 'value'],
    )
    assert minimum(select_thresholds(table=table), 'max_texture_size') == 1024
    assert select_thresholds(scopes=(), table=table).empty


def test_thresholds_for_report():
    report = CapabilityReport(
        webgl=True,
        webgl2=True,
        platform='MacIntel',
        user_agent='Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)',
        unmasked_renderer='ANGLE (Apple, ANGLE Metal Renderer: Apple M3, Unspecified Version)',
        webgl2_limits={'max_color_attachments': 8},
    )
    thresholds = thresholds_for(report)
    assert minimum(thresholds, 'max_texture_size') == 16384
    assert minimum(thresholds, 'max_combined_texture_image_units') == 32
    assert minimum(thresholds, 'max_color_attachments') == 4


def test_violations():
    thresholds = select_thresholds(scopes=('default', 'draw_calls'))
    values = {
        'webgl': 1,
        'max_texture_size': 1024,
        'total_time_ms': 6000,
        'average_time_per_draw_ms': 0.5,
    }
    messages = violations(values, thresholds)
    assert 'max_texture_size: 1024 is below the minimum of 2048' in messages
    assert 'total_time_ms: 6000 is above the maximum of 5000' in messages
    assert 'extension_count: not reported (expected min 6)' in messages
    assert len(messages) == 3


def test_no_violations():
    values = {'webgl': 1, 'max_texture_size': 2048, 'extension_count': 6}
    assert violations(values, select_thresholds()) == []
