# In-page probes. Each constant is a JavaScript function source passed to
# page.evaluate; whatever it returns crosses the process boundary, so it is
# plain data only.

from playwright.sync_api import Error
from rich import print
from rich.markup import escape

from .models import (
    CanvasActivity,
    CapabilityReport,
    ComputeResult,
    DrawCallResult,
    RenderReport,
    WebGPUReport,
)

BLANK_PAGE = 'data:text/html,<!DOCTYPE html><html><body></body></html>'
RENDERING_URL = 'https://wgpu.rs/examples/?backend=webgpu&example=water'
CANVAS_PAGE = (
    'data:text/html,<!DOCTYPE html><html><body><canvas id="canvas"></canvas></body></html>'
)

WEBGL_PROBE = """
    ({ contextType = 'auto' } = {}) => {
        const release = (gl) => {
            const lose = gl && gl.getExtension('WEBGL_lose_context');
            if (lose) lose.loseContext();
        };
        const base = {
            webgl: false,
            webgl2: false,
            webgpu: !!navigator.gpu,
            platform: navigator.platform,
            user_agent: navigator.userAgent,
            max_touch_points: navigator.maxTouchPoints || 0,
        };
        try {
            // separate canvases: a canvas keeps the first context type it hands out
            const probe1 = document.createElement('canvas').getContext('webgl');
            const probe2 = document.createElement('canvas').getContext('webgl2');
            base.webgl = !!probe1;
            base.webgl2 = !!probe2;
            release(probe1);
            release(probe2);

            const canvas = document.createElement('canvas');
            let gl = null;
            if (contextType === 'webgl') {
                gl = canvas.getContext('webgl');
            } else if (contextType === 'webgl2') {
                gl = canvas.getContext('webgl2');
            } else {
                gl = canvas.getContext('webgl2') || canvas.getContext('webgl');
            }
            if (!gl) {
                return { ...base, reason: `No ${contextType} context` };
            }
            const isWebGL2 = typeof WebGL2RenderingContext !== 'undefined'
                && gl instanceof WebGL2RenderingContext;

            const debugInfo = gl.getExtension('WEBGL_debug_renderer_info');
            const anisotropic = gl.getExtension('EXT_texture_filter_anisotropic');
            const report = {
                ...base,
                context_type: isWebGL2 ? 'webgl2' : 'webgl',
                vendor: gl.getParameter(gl.VENDOR),
                renderer: gl.getParameter(gl.RENDERER),
                version: gl.getParameter(gl.VERSION),
                shading_language_version: gl.getParameter(gl.SHADING_LANGUAGE_VERSION),
                unmasked_vendor: debugInfo ? gl.getParameter(debugInfo.UNMASKED_VENDOR_WEBGL) : null,
                unmasked_renderer: debugInfo
                    ? gl.getParameter(debugInfo.UNMASKED_RENDERER_WEBGL)
                    : null,
                limits: {
                    max_texture_size: gl.getParameter(gl.MAX_TEXTURE_SIZE),
                    max_viewport_dims: Array.from(gl.getParameter(gl.MAX_VIEWPORT_DIMS)),
                    max_vertex_attribs: gl.getParameter(gl.MAX_VERTEX_ATTRIBS),
                    max_vertex_uniform_vectors: gl.getParameter(gl.MAX_VERTEX_UNIFORM_VECTORS),
                    max_fragment_uniform_vectors: gl.getParameter(gl.MAX_FRAGMENT_UNIFORM_VECTORS),
                    max_combined_texture_image_units: gl.getParameter(
                        gl.MAX_COMBINED_TEXTURE_IMAGE_UNITS
                    ),
                    max_renderbuffer_size: gl.getParameter(gl.MAX_RENDERBUFFER_SIZE),
                },
                webgl2_limits: null,
                extensions: gl.getSupportedExtensions() || [],
                important_extensions: {
                    anisotropic_filtering: !!anisotropic,
                    float_textures: !!gl.getExtension('OES_texture_float'),
                    half_float_textures: !!gl.getExtension('OES_texture_half_float'),
                    vertex_array_object: !!gl.getExtension('OES_vertex_array_object'),
                    instanced_arrays: !!gl.getExtension('ANGLE_instanced_arrays'),
                    multiple_render_targets: !!gl.getExtension('WEBGL_draw_buffers'),
                },
                max_anisotropy: anisotropic
                    ? gl.getParameter(anisotropic.MAX_TEXTURE_MAX_ANISOTROPY_EXT)
                    : 0,
                context_attributes: gl.getContextAttributes(),
            };
            if (isWebGL2) {
                report.webgl2_limits = {
                    max_color_attachments: gl.getParameter(gl.MAX_COLOR_ATTACHMENTS),
                    max_draw_buffers: gl.getParameter(gl.MAX_DRAW_BUFFERS),
                    max_3d_texture_size: gl.getParameter(gl.MAX_3D_TEXTURE_SIZE),
                    max_array_texture_layers: gl.getParameter(gl.MAX_ARRAY_TEXTURE_LAYERS),
                    max_transform_feedback_separate_attribs: gl.getParameter(
                        gl.MAX_TRANSFORM_FEEDBACK_SEPARATE_ATTRIBS
                    ),
                    max_uniform_buffer_bindings: gl.getParameter(gl.MAX_UNIFORM_BUFFER_BINDINGS),
                };
            }
            release(gl);
            return report;
        } catch (error) {
            return { ...base, reason: error.message };
        }
    }
"""

# Shared by the adapter and compute probes: request with a timeout race.
_REQUEST_ADAPTER = """
        const withTimeout = (promise, ms, what) => Promise.race([
            promise,
            new Promise((_, reject) => setTimeout(
                () => reject(new Error(`Timeout after ${ms} ms waiting for ${what}`)), ms
            )),
        ]);
        // a device that resolves after losing the race is destroyed on arrival
        const releaseLate = (pending) => pending.then((late) => late && late.destroy(), () => {});
"""

WEBGPU_PROBE = (
    """
    async ({ timeout = 5000, requestDevice = true } = {}) => {
"""
    + _REQUEST_ADAPTER
    + """
        const base = { platform: navigator.platform, user_agent: navigator.userAgent };
        if (!navigator.gpu) {
            return { ...base, supported: false, reason: 'navigator.gpu not available' };
        }
        let adapter = null;
        try {
            adapter = await withTimeout(navigator.gpu.requestAdapter(), timeout, 'adapter');
        } catch (error) {
            return { ...base, supported: false, reason: error.message };
        }
        if (!adapter) {
            return { ...base, supported: false, reason: 'No adapter available' };
        }

        const info = adapter.info || {};
        const limits = {};
        for (const key in adapter.limits) {
            const value = adapter.limits[key];
            if (typeof value === 'number') limits[key] = value;
        }
        const report = {
            ...base,
            supported: true,
            info: {
                vendor: info.vendor || 'Unknown',
                architecture: info.architecture || 'Unknown',
                device: info.device || 'Unknown',
                description: info.description || 'Unknown',
            },
            features: Array.from(adapter.features || []),
            limits,
            device: null,
            device_error: null,
        };
        if (requestDevice) {
            let device = null;
            let pending = null;
            try {
                pending = adapter.requestDevice();
                device = await withTimeout(pending, timeout, 'device');
                report.device = { label: device.label, queue: !!device.queue };
            } catch (error) {
                report.device_error = error.message;
            } finally {
                if (device) device.destroy();
                else if (pending) releaseLate(pending);
            }
        }
        return report;
    }
"""
)

WEBGPU_COMPUTE_PROBE = (
    """
    async ({ size = 1000, timeout = 5000 } = {}) => {
"""
    + _REQUEST_ADAPTER
    + """
        if (!navigator.gpu) {
            return { supported: false, reason: 'navigator.gpu not available' };
        }
        const shaderCode = `
            @group(0) @binding(0) var<storage, read> input1: array<f32>;
            @group(0) @binding(1) var<storage, read> input2: array<f32>;
            @group(0) @binding(2) var<storage, read_write> output: array<f32>;

            @compute @workgroup_size(64)
            fn main(@builtin(global_invocation_id) global_id: vec3<u32>) {
                let index = global_id.x;
                if (index >= arrayLength(&output)) {
                    return;
                }
                output[index] = input1[index] + input2[index];
            }
        `;
        let device = null;
        let pending = null;
        const buffers = [];
        try {
            const adapter = await withTimeout(navigator.gpu.requestAdapter(), timeout, 'adapter');
            if (!adapter) {
                return { supported: false, reason: 'No adapter available' };
            }
            pending = adapter.requestDevice();
            device = await withTimeout(pending, timeout, 'device');

            const pipeline = device.createComputePipeline({
                layout: 'auto',
                compute: { module: device.createShaderModule({ code: shaderCode }), entryPoint: 'main' },
            });
            const input1 = new Float32Array(size).map(() => Math.random());
            const input2 = new Float32Array(size).map(() => Math.random());
            const makeBuffer = (usage) => {
                const buffer = device.createBuffer({ size: input1.byteLength, usage });
                buffers.push(buffer);
                return buffer;
            };
            const input1Buffer = makeBuffer(GPUBufferUsage.STORAGE | GPUBufferUsage.COPY_DST);
            const input2Buffer = makeBuffer(GPUBufferUsage.STORAGE | GPUBufferUsage.COPY_DST);
            const outputBuffer = makeBuffer(GPUBufferUsage.STORAGE | GPUBufferUsage.COPY_SRC);
            const stagingBuffer = makeBuffer(GPUBufferUsage.MAP_READ | GPUBufferUsage.COPY_DST);
            device.queue.writeBuffer(input1Buffer, 0, input1);
            device.queue.writeBuffer(input2Buffer, 0, input2);

            const bindGroup = device.createBindGroup({
                layout: pipeline.getBindGroupLayout(0),
                entries: [
                    { binding: 0, resource: { buffer: input1Buffer } },
                    { binding: 1, resource: { buffer: input2Buffer } },
                    { binding: 2, resource: { buffer: outputBuffer } },
                ],
            });
            const encoder = device.createCommandEncoder();
            const pass = encoder.beginComputePass();
            pass.setPipeline(pipeline);
            pass.setBindGroup(0, bindGroup);
            pass.dispatchWorkgroups(Math.ceil(size / 64));
            pass.end();
            encoder.copyBufferToBuffer(outputBuffer, 0, stagingBuffer, 0, input1.byteLength);
            device.queue.submit([encoder.finish()]);

            await withTimeout(stagingBuffer.mapAsync(GPUMapMode.READ), timeout, 'readback');
            const output = Array.from(new Float32Array(stagingBuffer.getMappedRange()));
            stagingBuffer.unmap();
            return {
                supported: true,
                array_size: size,
                input1: Array.from(input1),
                input2: Array.from(input2),
                output,
            };
        } catch (error) {
            return { supported: false, reason: error.message };
        } finally {
            buffers.forEach((buffer) => buffer.destroy());
            if (device) device.destroy();
            else if (pending) releaseLate(pending);
        }
    }
"""
)

# Races a promise the page stored on window against a timeout.
AWAIT_PAGE_PROMISE = """
    ([name, timeout]) => Promise.race([
        window[name] || Promise.reject(new Error(`${name}: no such promise on window`)),
        new Promise((_, reject) => setTimeout(
            () => reject(new Error(`${name}: ${timeout} ms threshold timeout reached.`)),
            timeout
        )),
    ])
"""

CANVAS_INFO_PROBE = """
    () => {
        const canvas = document.querySelector('canvas');
        const scratch = document.createElement('canvas');
        const gl = scratch.getContext('webgl');
        const lose = gl && gl.getExtension('WEBGL_lose_context');
        if (lose) lose.loseContext();
        const result = {
            exists: !!canvas,
            width: canvas ? canvas.width : 0,
            height: canvas ? canvas.height : 0,
            has_webgpu_context: false,
            has_webgl: !!gl,
            has_2d: !!document.createElement('canvas').getContext('2d'),
        };
        if (canvas) {
            try {
                result.has_webgpu_context = !!canvas.getContext('webgpu');
            } catch (error) {
                result.has_webgpu_context = false;
            }
        }
        return result;
    }
"""

DRAW_CALL_PROMISE = 'drawCallBenchmark'
GPU_REPORT_PROMISE = 'gpuReport'


def draw_call_page(draw_calls: int = 1000, *, transform: bool = False, size: int = 512) -> str:
    """
    HTML page that times ``draw_calls`` triangle draws and ends with gl.finish()

    The page stores a promise on ``window.drawCallBenchmark``; await it with
    AWAIT_PAGE_PROMISE. With ``transform`` each draw gets its own matrix and
    color uniforms.
    """
    return f"""<!DOCTYPE html>
<html>
<body>
<canvas id="canvas" width="{size}" height="{size}"></canvas>
<script>
window.{DRAW_CALL_PROMISE} = new Promise((resolve, reject) => {{
    const canvas = document.getElementById('canvas');
    const gl = canvas.getContext('webgl2') || canvas.getContext('webgl');
    if (!gl) {{
        reject(new Error('No WebGL context'));
        return;
    }}
    const contextType = (typeof WebGL2RenderingContext !== 'undefined'
        && gl instanceof WebGL2RenderingContext) ? 'webgl2' : 'webgl';
    const start = performance.now();

    const compile = (type, source) => {{
        const shader = gl.createShader(type);
        gl.shaderSource(shader, source);
        gl.compileShader(shader);
        return shader;
    }};
    const program = gl.createProgram();
    gl.attachShader(program, compile(gl.VERTEX_SHADER, `
        attribute vec3 position;
        uniform mat4 matrix;
        void main() {{
            gl_Position = matrix * vec4(position, 1.0);
        }}
    `));
    gl.attachShader(program, compile(gl.FRAGMENT_SHADER, `
        precision mediump float;
        uniform vec4 color;
        void main() {{
            gl_FragColor = color;
        }}
    `));
    gl.linkProgram(program);
    if (!gl.getProgramParameter(program, gl.LINK_STATUS)) {{
        reject(new Error('Program link failed: ' + gl.getProgramInfoLog(program)));
        return;
    }}
    gl.useProgram(program);

    const buffer = gl.createBuffer();
    gl.bindBuffer(gl.ARRAY_BUFFER, buffer);
    gl.bufferData(gl.ARRAY_BUFFER, new Float32Array([
        0, 0.5, 0, -0.5, -0.5, 0, 0.5, -0.5, 0
    ]), gl.STATIC_DRAW);
    const positionLocation = gl.getAttribLocation(program, 'position');
    gl.enableVertexAttribArray(positionLocation);
    gl.vertexAttribPointer(positionLocation, 3, gl.FLOAT, false, 0, 0);
    const matrixLocation = gl.getUniformLocation(program, 'matrix');
    const colorLocation = gl.getUniformLocation(program, 'color');

    gl.viewport(0, 0, canvas.width, canvas.height);
    gl.clearColor(0, 0, 0, 1);
    gl.clear(gl.COLOR_BUFFER_BIT);
    gl.uniformMatrix4fv(matrixLocation, false, new Float32Array([
        1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1
    ]));
    gl.uniform4f(colorLocation, 1.0, 0.0, 0.0, 1.0);

    const drawCalls = {int(draw_calls)};
    const transform = {'true' if transform else 'false'};
    for (let i = 0; i < drawCalls; i++) {{
        if (transform) {{
            const scale = 0.01 + (i % 100) * 0.001;
            const rotation = (i * 0.01) % (2 * Math.PI);
            const x = (i % 100) * 0.02 - 1;
            const y = Math.floor(i / 100) * 0.02 - 1;
            const cos = Math.cos(rotation) * scale;
            const sin = Math.sin(rotation) * scale;
            gl.uniformMatrix4fv(matrixLocation, false, new Float32Array([
                cos, sin, 0, 0, -sin, cos, 0, 0, 0, 0, 1, 0, x, y, 0, 1
            ]));
            gl.uniform4f(colorLocation,
                Math.sin(i * 0.1) * 0.5 + 0.5,
                Math.cos(i * 0.1) * 0.5 + 0.5,
                Math.sin(i * 0.05) * 0.5 + 0.5,
                1.0
            );
        }}
        gl.drawArrays(gl.TRIANGLES, 0, 3);
    }}
    gl.finish();

    const totalTime = performance.now() - start;
    resolve({{
        draw_calls: drawCalls,
        total_time: totalTime,
        average_time_per_draw: totalTime / drawCalls,
        triangles_per_second: Math.round(drawCalls / Math.max(totalTime, 1e-3) * 1000),
        context_type: contextType,
    }});
}});
</script>
</body>
</html>
"""


GPU_REPORT_PAGE = f"""<!DOCTYPE html>
<html>
<head>
<title>GPU Acceleration Test</title>
<style>
    body {{ font-family: Arial, sans-serif; margin: 20px; }}
    .section {{ margin: 20px 0; padding: 15px; border: 1px solid #ccc; border-radius: 5px; }}
    .pass {{ color: green; }} .fail {{ color: red; }} .info {{ color: blue; }}
    canvas {{ border: 1px solid #000; margin: 10px 0; }}
</style>
</head>
<body>
<h1>GPU Acceleration Test Results</h1>
<div id="results">Loading...</div>
<canvas id="test-canvas" width="300" height="200"></canvas>
<script>
window.{GPU_REPORT_PROMISE} = new Promise((resolve) => {{
    const results = document.getElementById('results');
    const canvas = document.getElementById('test-canvas');
    const report = {{ webgl: false, webgl2: false, webgpu: !!navigator.gpu, rendered: false,
                      pixel: [], extension_count: 0, error: null }};
    const row = (label, value) => '<p><strong>' + label + ':</strong> ' + value + '</p>';
    let output = '';
    try {{
        const gl = canvas.getContext('webgl');
        if (gl) {{
            report.webgl = true;
            const debugInfo = gl.getExtension('WEBGL_debug_renderer_info');
            report.vendor = debugInfo
                ? gl.getParameter(debugInfo.UNMASKED_VENDOR_WEBGL) : gl.getParameter(gl.VENDOR);
            report.renderer = debugInfo
                ? gl.getParameter(debugInfo.UNMASKED_RENDERER_WEBGL) : gl.getParameter(gl.RENDERER);
            output += '<div class="section"><h2 class="pass">WebGL Supported</h2>';
            output += row('GL Vendor', gl.getParameter(gl.VENDOR));
            output += row('GL Renderer', gl.getParameter(gl.RENDERER));
            output += row('GL Version', gl.getParameter(gl.VERSION));
            output += row('GLSL Version', gl.getParameter(gl.SHADING_LANGUAGE_VERSION));
            output += row('Unmasked Vendor', report.vendor);
            output += row('Unmasked Renderer', report.renderer);
            output += '<h3>GPU Capabilities</h3>';
            output += row('Max Texture Size', gl.getParameter(gl.MAX_TEXTURE_SIZE));
            output += row('Max Viewport', gl.getParameter(gl.MAX_VIEWPORT_DIMS));
            output += row('Max Vertex Attributes', gl.getParameter(gl.MAX_VERTEX_ATTRIBS));
            output += row('Max Fragment Uniform Vectors',
                          gl.getParameter(gl.MAX_FRAGMENT_UNIFORM_VECTORS));
            const attrs = gl.getContextAttributes();
            output += '<h3>Context Attributes</h3>';
            for (const key of ['alpha', 'antialias', 'depth', 'stencil', 'premultipliedAlpha']) {{
                output += row(key, attrs[key]);
            }}

            const compile = (type, source) => {{
                const shader = gl.createShader(type);
                gl.shaderSource(shader, source);
                gl.compileShader(shader);
                return shader;
            }};
            const program = gl.createProgram();
            gl.attachShader(program, compile(gl.VERTEX_SHADER, `
                attribute vec2 a_position;
                void main() {{ gl_Position = vec4(a_position, 0.0, 1.0); }}
            `));
            gl.attachShader(program, compile(gl.FRAGMENT_SHADER, `
                precision mediump float;
                uniform vec2 u_resolution;
                void main() {{
                    vec2 st = gl_FragCoord.xy / u_resolution.xy;
                    gl_FragColor = vec4(st.x, st.y, 0.5, 1.0);
                }}
            `));
            gl.linkProgram(program);
            gl.useProgram(program);
            gl.bindBuffer(gl.ARRAY_BUFFER, gl.createBuffer());
            gl.bufferData(gl.ARRAY_BUFFER, new Float32Array([
                -1, -1, 1, -1, -1, 1, -1, 1, 1, -1, 1, 1
            ]), gl.STATIC_DRAW);
            const positionLocation = gl.getAttribLocation(program, 'a_position');
            gl.enableVertexAttribArray(positionLocation);
            gl.vertexAttribPointer(positionLocation, 2, gl.FLOAT, false, 0, 0);
            gl.uniform2f(gl.getUniformLocation(program, 'u_resolution'), canvas.width, canvas.height);
            gl.viewport(0, 0, canvas.width, canvas.height);
            gl.clearColor(0, 0, 0, 1);
            gl.clear(gl.COLOR_BUFFER_BIT);
            gl.drawArrays(gl.TRIANGLES, 0, 6);

            // the centre of the gradient is roughly (0.5, 0.5, 0.5)
            const pixel = new Uint8Array(4);
            gl.readPixels(canvas.width / 2, canvas.height / 2, 1, 1, gl.RGBA, gl.UNSIGNED_BYTE, pixel);
            report.pixel = Array.from(pixel);
            report.rendered = pixel[0] > 64 && pixel[1] > 64 && pixel[2] > 64;
            output += report.rendered
                ? '<p class="pass">GPU Rendering Test: Gradient pattern drawn successfully</p>'
                : '<p class="fail">GPU Rendering Test Failed: unexpected pixel ' + report.pixel + '</p>';
            output += '</div>';

            const extensions = (gl.getSupportedExtensions() || []).sort();
            report.extension_count = extensions.length;
            output += '<div class="section"><h3>Supported Extensions (' + extensions.length + ')</h3>';
            output += '<p style="font-size: 12px;">' + extensions.join(', ') + '</p></div>';
        }} else {{
            output += '<div class="section"><h2 class="fail">WebGL Not Supported</h2></div>';
        }}

        const gl2 = document.createElement('canvas').getContext('webgl2');
        if (gl2) {{
            report.webgl2 = true;
            output += '<div class="section"><h2 class="pass">WebGL 2.0 Supported</h2>';
            output += row('Max 3D Texture Size', gl2.getParameter(gl2.MAX_3D_TEXTURE_SIZE));
            output += row('Max Array Texture Layers', gl2.getParameter(gl2.MAX_ARRAY_TEXTURE_LAYERS));
            output += row('Max Color Attachments', gl2.getParameter(gl2.MAX_COLOR_ATTACHMENTS));
            output += '</div>';
        }} else {{
            output += '<div class="section"><h2 class="info">WebGL 2.0 Not Supported</h2></div>';
        }}
        if (report.webgpu) {{
            output += '<div class="section"><h2 class="info">WebGPU Available (Experimental)</h2></div>';
        }}
    }} catch (error) {{
        report.error = error.message;
        output += '<div class="section"><h2 class="fail">Error during GPU testing: '
            + error.message + '</h2></div>';
    }}
    results.innerHTML = output;
    resolve(report);
}});
</script>
</body>
</html>
"""


class ProbeTimeoutError(RuntimeError):
    """An in-page promise did not settle before its threshold."""


def _timeout_or_raise(exc: Error):
    if 'threshold timeout reached' in exc.message:
        raise ProbeTimeoutError(exc.message) from exc
    raise exc


def await_page_promise(page, name: str, timeout: int = 10000):
    """Wait for ``window[name]`` on a sync Playwright page."""
    try:
        return page.evaluate(AWAIT_PAGE_PROMISE, [name, timeout])
    except Error as exc:
        _timeout_or_raise(exc)


async def await_page_promise_async(page, name: str, timeout: int = 10000):
    """Wait for ``window[name]`` on an async Playwright page."""
    try:
        return await page.evaluate(AWAIT_PAGE_PROMISE, [name, timeout])
    except Error as exc:
        _timeout_or_raise(exc)


def probe_webgl(page, context_type: str = 'auto') -> CapabilityReport:
    return CapabilityReport.from_probe(page.evaluate(WEBGL_PROBE, {'contextType': context_type}))


def probe_webgpu(page, timeout: int = 5000, request_device: bool = True) -> WebGPUReport:
    return WebGPUReport.from_probe(
        page.evaluate(WEBGPU_PROBE, {'timeout': timeout, 'requestDevice': request_device})
    )


def probe_compute(page, size: int = 1000, timeout: int = 5000) -> ComputeResult:
    return ComputeResult.from_probe(
        page.evaluate(WEBGPU_COMPUTE_PROBE, {'size': size, 'timeout': timeout})
    )


def run_draw_calls(
    page, draw_calls: int = 1000, *, transform: bool = False, timeout: int = 10000
) -> DrawCallResult:
    page.set_content(draw_call_page(draw_calls, transform=transform))
    return DrawCallResult.from_probe(await_page_promise(page, DRAW_CALL_PROMISE, timeout))


def render_report(page, timeout: int = 10000) -> RenderReport:
    page.set_content(GPU_REPORT_PAGE)
    return RenderReport.from_probe(await_page_promise(page, GPU_REPORT_PROMISE, timeout))


def collect_console_errors(errors: list):
    """A ``console`` listener that appends error messages to ``errors``."""

    def collect(msg):
        if msg.type == 'error':
            errors.append(msg.text)

    return collect


def activity_from_screenshots(
    info: dict, first: bytes, second: bytes, console_errors: list
) -> CanvasActivity:
    activity = CanvasActivity(**info)
    activity.screenshot_size = len(second)
    activity.animated = first != second
    activity.console_errors = console_errors
    return activity


def canvas_activity(
    page, url: str, *, settle: int = 3000, timeout: int = 15000
) -> CanvasActivity:
    """Load ``url`` and report whether its first canvas is drawing."""
    console_errors = []
    listener = collect_console_errors(console_errors)
    page.on('console', listener)
    try:
        page.goto(url, wait_until='networkidle')
        canvas = page.locator('canvas').first
        canvas.wait_for(state='visible', timeout=timeout)
        page.wait_for_timeout(settle)
        info = page.evaluate(CANVAS_INFO_PROBE)
        first = canvas.screenshot()
        page.wait_for_timeout(1000)
        second = canvas.screenshot()
    finally:
        page.remove_listener('console', listener)
    return activity_from_screenshots(info, first, second, console_errors)


def save_failure_screenshot(page, path) -> bool:
    try:
        path.write_bytes(page.screenshot())
    except Error as exc:
        print(f'[yellow]Could not take a failure screenshot: {escape(exc.message)}[/yellow]')
        return False
    print(f"[bold red]📸 Failure screenshot saved as '{path}'[/bold red]")
    return True
