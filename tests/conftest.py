import pytest
import upath
from playwright.sync_api import Error, sync_playwright

from gpu_acceptance.flags import DEFAULT_CHANNEL, chrome_args
from gpu_acceptance.probes import RENDERING_URL, save_failure_screenshot


def pytest_addoption(parser):
    group = parser.getgroup('gpu-acceptance')
    group.addoption(
        '--non-headless', action='store_true', default=False, help='Run Chromium with a window'
    )
    group.addoption(
        '--channel', default=DEFAULT_CHANNEL, help='Playwright browser channel, e.g. chrome'
    )
    group.addoption(
        '--artifacts-dir', default='artifacts', help='Where screenshots are written (local or s3)'
    )
    group.addoption(
        '--webgpu-timeout',
        type=int,
        default=5000,
        help='Timeout for WebGPU adapter and device requests in milliseconds',
    )
    group.addoption(
        '--extra-flag',
        action='append',
        default=[],
        dest='extra_flags',
        help='Additional Chromium flag, may be repeated',
    )
    group.addoption('--rendering-url', default=RENDERING_URL, help='External WebGPU page')


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f'rep_{report.when}', report)


@pytest.fixture(scope='session')
def launch_args(pytestconfig):
    return chrome_args(extra=pytestconfig.getoption('extra_flags'))


@pytest.fixture(scope='session')
def browser(pytestconfig, launch_args):
    with sync_playwright() as p:
        try:
            browser = p.chromium.launch(
                headless=not pytestconfig.getoption('non_headless'),
                channel=pytestconfig.getoption('channel') or None,
                args=launch_args,
            )
        except Error as exc:
            pytest.skip(f'Chromium could not be launched: {exc.message}')
        print(f'Chromium {browser.version} launched with {" ".join(launch_args)}')
        yield browser
        browser.close()


@pytest.fixture(scope='session')
def artifacts_dir(pytestconfig):
    path = upath.UPath(pytestconfig.getoption('artifacts_dir'))
    path.mkdir(exist_ok=True, parents=True)
    return path


@pytest.fixture(scope='session')
def webgpu_timeout(pytestconfig):
    return pytestconfig.getoption('webgpu_timeout')


@pytest.fixture(scope='session')
def rendering_url(pytestconfig):
    return pytestconfig.getoption('rendering_url')


@pytest.fixture
def page(request, browser, artifacts_dir):
    context = browser.new_context()
    page = context.new_page()
    page.on('console', lambda msg: print(f'Browser console: {msg.text}'))
    yield page
    report = getattr(request.node, 'rep_call', None)
    try:
        if report is not None and report.failed:
            save_failure_screenshot(page, artifacts_dir / f'failure-{request.node.name}.png')
    finally:
        context.close()
