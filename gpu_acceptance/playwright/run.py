import dataclasses
import datetime
import importlib.metadata
import json

import upath
from playwright.async_api import Error, async_playwright
from rich import print
from rich.markup import escape

from ..assertions import (
    check_canvas_activity,
    check_capabilities,
    check_compute,
    check_diagnostics,
    check_draw_calls,
    check_hardware,
    check_idempotent,
    check_render_report,
    check_webgl2_limits,
    check_webgpu,
    require_baseline,
)
from ..diagnostics import collect_snapshot_async, print_summary
from ..flags import DEFAULT_CHANNEL, chrome_args
from ..models import (
    CapabilityReport,
    ComputeResult,
    DrawCallResult,
    RenderReport,
    WebGPUReport,
)
from ..probes import (
    BLANK_PAGE,
    CANVAS_INFO_PROBE,
    DRAW_CALL_PROMISE,
    GPU_REPORT_PAGE,
    GPU_REPORT_PROMISE,
    WEBGL_PROBE,
    WEBGPU_COMPUTE_PROBE,
    WEBGPU_PROBE,
    ProbeTimeoutError,
    activity_from_screenshots,
    await_page_promise_async,
    collect_console_errors,
    draw_call_page,
)
from ..thresholds import select_thresholds

# Get current timestamp
now = datetime.datetime.now(datetime.timezone.utc).strftime('%Y-%m-%dT%H-%M-%S')

# Initialize data storage
all_data = []


# Define console logging function
def log_console_message(msg):
    print(f'Browser console: {escape(msg.text)}')


async def probe_capabilities(page) -> CapabilityReport:
    return CapabilityReport.from_probe(await page.evaluate(WEBGL_PROBE, {'contextType': 'auto'}))


async def run_draw_calls(
    page, draw_calls: int, *, transform: bool, timeout: int
) -> DrawCallResult:
    await page.set_content(draw_call_page(draw_calls, transform=transform))
    try:
        data = await await_page_promise_async(page, DRAW_CALL_PROMISE, timeout)
    except (Error, ProbeTimeoutError) as exc:
        return DrawCallResult(error=str(exc))
    return DrawCallResult.from_probe(data)


async def check_rendering(
    page, url: str, *, screenshot_path: upath.UPath, settle: int = 3000, timeout: int = 15000
):
    """Load an external page and confirm its first canvas is drawing."""
    console_errors = []
    listener = collect_console_errors(console_errors)
    page.on('console', listener)
    try:
        await page.goto(url, wait_until='networkidle')
        canvas = page.locator('canvas').first
        await canvas.wait_for(state='visible', timeout=timeout)
        await page.wait_for_timeout(settle)
        info = await page.evaluate(CANVAS_INFO_PROBE)
        first = await canvas.screenshot()
        await page.wait_for_timeout(1000)
        second = await canvas.screenshot()
    finally:
        page.remove_listener('console', listener)
    screenshot_path.write_bytes(second)
    return activity_from_screenshots(info, first, second, console_errors)


async def save_failure_screenshot(page, path: upath.UPath):
    try:
        path.write_bytes(await page.screenshot())
    except Error as exc:
        print(f'[yellow]Could not take a failure screenshot: {escape(exc.message)}[/yellow]')
        return
    print(f"[bold red]📸 Failure screenshot saved as '{path}'[/bold red]")


# Define main acceptance run
async def run(
    *,
    playwright,
    runs: int,
    run_number: int,
    timeout: int,
    webgpu_timeout: int,
    artifacts_dir: upath.UPath,
    playwright_python_version: str | None = None,
    provider_name: str | None = None,
    headless: bool = True,
    channel: str | None = DEFAULT_CHANNEL,
    extra_flags: list | None = None,
    skip_diagnostics: bool = False,
    rendering_url: str | None = None,
    hardware: bool = False,
):
    args = chrome_args(extra=extra_flags)
    browser = await playwright.chromium.launch(headless=headless, args=args, channel=channel)
    context = await browser.new_context()
    page = await context.new_page()

    # Log console messages
    page.on('console', log_console_message)

    print(f'[bold cyan]🚀 Starting acceptance run: {run_number}/{runs}...[/bold cyan]')
    print(f'🔧 Chromium flags: {" ".join(args)}')

    violations = {}
    try:
        await page.goto(BLANK_PAGE)
        report = await probe_capabilities(page)
        require_baseline(report)
        print(f'🎮 Renderer: {report.effective_renderer} ({report.context_type})')
        violations['capabilities'] = (
            check_hardware(report) if hardware else check_capabilities(report)
        )
        violations['webgl2_limits'] = check_webgl2_limits(report)
        violations['idempotent'] = check_idempotent(report, await probe_capabilities(page))

        webgpu = WebGPUReport.from_probe(
            await page.evaluate(
                WEBGPU_PROBE, {'timeout': webgpu_timeout, 'requestDevice': True}
            )
        )
        violations['webgpu'] = check_webgpu(webgpu)
        if webgpu.supported:
            print(f'⚡ WebGPU adapter: {webgpu.info.get("vendor")} {webgpu.info.get("device")}')
            compute = ComputeResult.from_probe(
                await page.evaluate(
                    WEBGPU_COMPUTE_PROBE, {'size': 1000, 'timeout': webgpu_timeout}
                )
            )
            violations['compute'] = check_compute(compute)
        else:
            print(f'[yellow]WebGPU not available: {webgpu.reason}[/yellow]')
            compute = ComputeResult(supported=False, reason=webgpu.reason)

        smoke = await run_draw_calls(page, 1000, transform=False, timeout=timeout)
        violations['draw_calls_smoke'] = check_draw_calls(
            smoke, 1000, select_thresholds(scopes=('draw_calls_smoke',))
        )
        draw_calls = await run_draw_calls(page, 10000, transform=True, timeout=timeout)
        violations['draw_calls'] = check_draw_calls(
            draw_calls, 10000, select_thresholds(scopes=('draw_calls',))
        )
        print(
            f'📊 {draw_calls.draw_calls} draw calls in {draw_calls.total_time:.1f} ms '
            f'({draw_calls.triangles_per_second} triangles/s)'
        )

        await page.set_content(GPU_REPORT_PAGE)
        render = RenderReport.from_probe(
            await await_page_promise_async(page, GPU_REPORT_PROMISE, timeout)
        )
        violations['render_report'] = check_render_report(render)
        report_path = artifacts_dir / f'gpu-report-{now}-{run_number}.png'
        report_path.write_bytes(await page.screenshot(full_page=True))
        print(f"[bold cyan]📸 GPU report saved as '{report_path}'[/bold cyan]")

        diagnostics = {}
        if not skip_diagnostics:
            snapshot = await collect_snapshot_async(page, timeout)
            print_summary(snapshot)
            violations['diagnostics'] = check_diagnostics(snapshot)
            diagnostics = {
                **snapshot.summary(),
                'rows': {name: status.value for name, status in snapshot.rows.items()},
                'problems': snapshot.problems,
                'error': snapshot.error,
            }
            if not snapshot.error:
                gpu_path = artifacts_dir / f'chrome-gpu-{now}-{run_number}.png'
                gpu_path.write_bytes(await page.screenshot(full_page=True))

        canvas = None
        if rendering_url:
            activity = await check_rendering(
                page,
                rendering_url,
                screenshot_path=artifacts_dir / f'rendering-{now}-{run_number}.png',
            )
            violations['rendering'] = check_canvas_activity(activity)
            canvas = dataclasses.asdict(activity)
    except Exception:
        await save_failure_screenshot(page, artifacts_dir / f'failure-{now}-{run_number}.png')
        raise
    finally:
        browser_version = browser.version
        await browser.close()

    for check, problems in violations.items():
        for problem in problems:
            print(f'[red]❌ {check}: {escape(problem)}[/red]')
    passed = not any(violations.values())
    print(f'[bold {"green" if passed else "red"}]Run {run_number} passed: {passed}[/]')

    # Record run
    data = {
        'run': run_number,
        'passed': passed,
        'playwright_python_version': playwright_python_version,
        'provider': provider_name,
        'browser_name': playwright.chromium.name,
        'browser_version': browser_version,
        'chrome_args': args,
        'timeout': timeout,
        'capabilities': dataclasses.asdict(report),
        'webgpu': dataclasses.asdict(webgpu),
        'compute': {
            'supported': compute.supported,
            'reason': compute.reason,
            'array_size': compute.array_size,
            'max_error': compute.max_error if compute.supported else None,
            'verification': compute.verification() if compute.supported else [],
        },
        'draw_calls_smoke': dataclasses.asdict(smoke),
        'draw_calls': dataclasses.asdict(draw_calls),
        'render_report': dataclasses.asdict(render),
        'diagnostics': diagnostics,
        'canvas': canvas,
        'violations': violations,
    }

    all_data.append(data)
    return data


# Define main function
async def start(
    *,
    runs: int,
    timeout: int,
    webgpu_timeout: int,
    data_dir: upath.UPath,
    headless: bool = True,
    channel: str | None = DEFAULT_CHANNEL,
    provider_name: str | None = None,
    extra_flags: list | None = None,
    skip_diagnostics: bool = False,
    rendering_url: str | None = None,
    hardware: bool = False,
) -> list:
    try:
        playwright_python_version = importlib.metadata.version('playwright')
    except importlib.metadata.PackageNotFoundError:
        playwright_python_version = None

    async with async_playwright() as playwright:
        for run_number in range(runs):
            try:
                await run(
                    playwright=playwright,
                    runs=runs,
                    run_number=run_number + 1,
                    timeout=timeout,
                    webgpu_timeout=webgpu_timeout,
                    artifacts_dir=data_dir,
                    playwright_python_version=playwright_python_version,
                    provider_name=provider_name,
                    headless=headless,
                    channel=channel,
                    extra_flags=extra_flags,
                    skip_diagnostics=skip_diagnostics,
                    rendering_url=rendering_url,
                    hardware=hardware,
                )
            except Exception as exc:
                print(f'[bold red]{run_number + 1} failed : {escape(str(exc))}[/bold red]')
                all_data.append(
                    {
                        'run': run_number + 1,
                        'passed': False,
                        'provider': provider_name,
                        'error': f'{type(exc).__name__}: {exc}',
                        'violations': {},
                    }
                )
                continue

    # Write the data to a json file
    data_path = data_dir / f'data-{now}.json'
    data_path.write_text(json.dumps(all_data, indent=2, sort_keys=True, default=str))
    print(f"[bold cyan]📊 Results saved as '{data_path}'[/bold cyan]")
    return all_data
