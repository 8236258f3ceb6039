import pytest

from gpu_acceptance.assertions import check_diagnostics
from gpu_acceptance.diagnostics import FEATURE_STATUS_HEADING, collect_snapshot, print_summary
from gpu_acceptance.models import FeatureStatus

pytestmark = [pytest.mark.browser, pytest.mark.gpu]


@pytest.fixture(scope='module')
def snapshot(browser, artifacts_dir):
    context = browser.new_context()
    page = context.new_page()
    snapshot = collect_snapshot(page)
    if not snapshot.error:
        (artifacts_dir / 'chrome-gpu.png').write_bytes(page.screenshot(full_page=True))
    context.close()
    print_summary(snapshot)
    return snapshot


def test_gpu_information_extracted(snapshot):
    assert snapshot.error is None
    assert snapshot.rows, f'No rows under {FEATURE_STATUS_HEADING}'
    assert snapshot.hardware_accelerated
    assert snapshot.backend is not None
    assert snapshot.version_info


def test_gpu_hardware_acceleration(snapshot):
    assert check_diagnostics(snapshot) == []


@pytest.mark.parametrize('feature', ['Canvas', 'Rasterization', 'WebGL', 'WebGL2', 'Compositing'])
def test_feature_accelerated(snapshot, feature):
    assert snapshot.accelerated(feature), f'{feature}: {snapshot.status(feature).value}'


@pytest.mark.parametrize('feature', ['Video Decode', 'Video Encode'])
def test_video_not_software_only(snapshot, feature):
    status = snapshot.status(feature)
    if status is FeatureStatus.UNKNOWN:
        pytest.skip(f'{feature} is not listed')
    assert status is not FeatureStatus.SOFTWARE


def test_opengl_enabled(snapshot):
    assert snapshot.status('OpenGL') in {FeatureStatus.ENABLED, FeatureStatus.HARDWARE}
