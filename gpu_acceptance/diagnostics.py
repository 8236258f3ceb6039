# Reading chrome://gpu. The page is built from nested shadow roots, so both
# strategies below share one walker that descends into every shadow root.
# The structured strategy reads sections by their h3 heading; the text
# strategy is a best-effort fallback for when the layout changes.

import re

from playwright.sync_api import Error
from rich import print
from rich.markup import escape

from .models import BACKEND_PRIORITY, DiagnosticsSnapshot, FeatureStatus

GPU_INTERNALS_URL = 'chrome://gpu'
FEATURE_STATUS_HEADING = 'Graphics Feature Status'
PROBLEMS_HEADING = 'Problems Detected'
SECTION_HEADINGS = (
    FEATURE_STATUS_HEADING,
    PROBLEMS_HEADING,
    'Version Information',
    'Driver Information',
    'Driver Bug Workarounds',
    'Dawn Info',
    'ANGLE Features',
)

# Iterative walk over the document and every shadow root. visit(node)
# returning false stops the walk from descending into that node.
_WALKER = """
        const walk = (root, visit) => {
            const stack = [root];
            while (stack.length) {
                const node = stack.pop();
                if (visit(node) === false) continue;
                const children = node.childNodes || [];
                for (let i = children.length - 1; i >= 0; i--) stack.push(children[i]);
                if (node.shadowRoot) stack.push(node.shadowRoot);
            }
        };
        const text = (node) => (node.textContent || '').replace(/\\s+/g, ' ').trim();
        const cells = (row) => Array.from(row.children)
            .filter((cell) => cell.tagName === 'TD' || cell.tagName === 'TH')
            .map(text);
"""

WALK_SECTIONS = (
    """
    () => {
"""
    + _WALKER
    + """
        const sections = [];
        walk(document, (node) => {
            if (node.nodeType !== Node.ELEMENT_NODE || node.tagName !== 'H3') return true;
            const section = {
                heading: text(node),
                visible: node.getClientRects().length > 0,
                items: [],
                rows: [],
                subsections: [],
            };
            // the section runs from this heading to the next one
            let started = false;
            let done = false;
            let current = null;
            walk(node.parentNode, (child) => {
                if (done) return false;
                if (child === node) {
                    started = true;
                    return false;
                }
                if (child.nodeType !== Node.ELEMENT_NODE) return true;
                if (child.tagName === 'H3') {
                    done = started;
                    return false;
                }
                if (!started) return true;
                if (child.tagName === 'H4') {
                    current = { heading: text(child), items: [] };
                    section.subsections.push(current);
                    return false;
                }
                if (child.tagName === 'LI') {
                    section.items.push(text(child));
                    if (current) current.items.push(text(child));
                    return false;
                }
                if (child.tagName === 'TR') {
                    section.rows.push(cells(child));
                    return false;
                }
                return true;
            });
            sections.push(section);
            return false;
        });
        return sections;
    }
"""
)

WALK_TEXT = (
    """
    () => {
"""
    + _WALKER
    + """
        const lines = [];
        walk(document, (node) => {
            if (node.nodeType === Node.TEXT_NODE) {
                const value = text(node);
                if (value) lines.push(value);
                return false;
            }
            if (node.nodeType !== Node.ELEMENT_NODE) return true;
            if (node.hidden || node.tagName === 'STYLE' || node.tagName === 'SCRIPT') return false;
            if (node.tagName === 'TR') {
                lines.push(cells(node).join('\\t'));
                return false;
            }
            if (['LI', 'H3', 'H4'].includes(node.tagName)) {
                const value = text(node);
                if (value) lines.push(value);
                return false;
            }
            return true;
        });
        return lines;
    }
"""
)

# Ordered: the first pattern that matches decides the row status.
STATUS_PATTERNS = [
    (FeatureStatus.HARDWARE, re.compile(r'hardware accelerated', re.I)),
    (FeatureStatus.SOFTWARE, re.compile(r'software only', re.I)),
    (FeatureStatus.DISABLED, re.compile(r'\b(disabled|unavailable)\b', re.I)),
    (FeatureStatus.PROBLEM, re.compile(r'problem|blocklisted|blacklisted', re.I)),
    (FeatureStatus.ENABLED, re.compile(r'\benabled\b', re.I)),
]

BACKEND_PATTERNS = {
    'Metal': re.compile(r'\bmetal\b', re.I),
    'Vulkan': re.compile(r'vulkan', re.I),
    'DirectX': re.compile(r'directx|direct3d|\bd3d1[12]\b', re.I),
    'OpenGL': re.compile(r'opengl|angle=gl\b', re.I),
    'ANGLE': re.compile(r'\bangle\b', re.I),
}

PROBLEM_PATTERN = re.compile(r'problem|blocklisted|blacklisted', re.I)

_STYLE_OR_SCRIPT = [
    re.compile(r'[{}]'),
    re.compile(r':host'),
    re.compile(r'@media'),
    re.compile(r'=>'),
    re.compile(r'[\w-]+="[^"]*"'),
    re.compile(r'^[\w.$-]+\s*=\s*[^=]'),
    re.compile(r';\s*$'),
]

_ROW = re.compile(r'^([A-Za-z][\w ./()+-]{0,60}?)\s*:\s*(.+)$')


def is_style_or_script(line: str) -> bool:
    """True for text that looks like embedded CSS or JavaScript."""
    return any(pattern.search(line) for pattern in _STYLE_OR_SCRIPT)


def parse_status(text: str) -> FeatureStatus:
    for status, pattern in STATUS_PATTERNS:
        if pattern.search(text):
            return status
    return FeatureStatus.UNKNOWN


def find_backends(text: str) -> list:
    return [name for name in BACKEND_PRIORITY if BACKEND_PATTERNS[name].search(text)]


def _add_backends(snapshot: DiagnosticsSnapshot, text: str):
    for name in find_backends(text):
        if name not in snapshot.backends:
            snapshot.backends.append(name)


def _add_feature_row(snapshot: DiagnosticsSnapshot, line: str) -> bool:
    match = _ROW.match(line)
    if not match:
        return False
    name, value = match.group(1).strip(), match.group(2).strip()
    status = parse_status(value)
    if status is FeatureStatus.UNKNOWN:
        return False
    snapshot.rows.setdefault(name, status)
    snapshot.features.append(line)
    if status not in (FeatureStatus.DISABLED, FeatureStatus.PROBLEM):
        _add_backends(snapshot, line)
    return True


def _pick_sections(sections: list) -> dict:
    # chrome://gpu renders hidden copies of some sections; prefer visible ones with content
    picked = {}
    for section in sections:
        heading = section.get('heading', '')
        has_content = bool(section.get('items') or section.get('rows'))
        best = picked.get(heading)
        if best is None:
            picked[heading] = section
        elif has_content and not (best.get('items') or best.get('rows')):
            picked[heading] = section
        elif has_content and section.get('visible') and not best.get('visible'):
            picked[heading] = section
    return picked


def _table(section: dict) -> dict:
    table = {}
    for row in section.get('rows', []):
        if len(row) >= 2 and row[0].strip() and row[1].strip():
            table.setdefault(row[0].strip(), row[1].strip())
    return table


def snapshot_from_sections(sections: list) -> DiagnosticsSnapshot:
    """
    Build a snapshot from the sections collected by WALK_SECTIONS

    Parameters
    ----------

    sections: list
        Dicts with ``heading``, ``visible``, ``items``, ``rows`` and
        ``subsections`` keys.

    Returns
    -------
    snapshot : DiagnosticsSnapshot
    """
    snapshot = DiagnosticsSnapshot(source='sections')
    picked = _pick_sections(sections)

    def section(title):
        for heading, value in picked.items():
            if title in heading:
                return value
        return {}

    for item in section(FEATURE_STATUS_HEADING).get('items', []):
        _add_feature_row(snapshot, item.strip())

    snapshot.version_info = _table(section('Version Information'))
    snapshot.driver_info = _table(section('Driver Information'))
    for value in snapshot.driver_info.values():
        _add_backends(snapshot, value)

    for subsection in section('Dawn Info').get('subsections', []):
        items = [item.strip() for item in subsection.get('items', []) if item.strip()]
        if '[WebGPU Status]' in subsection.get('heading', '') and items:
            snapshot.webgpu_status = snapshot.webgpu_status or items[0]
        if '[Adapter Supported Features]' in subsection.get('heading', ''):
            if not snapshot.adapter_features:
                snapshot.adapter_features = items

    snapshot.problems = [
        item.strip() for item in section(PROBLEMS_HEADING).get('items', []) if item.strip()
    ]
    snapshot.angle_features = [
        item.strip() for item in section('ANGLE Features').get('items', []) if item.strip()
    ]
    snapshot.text_length = sum(
        len(section.get('heading', ''))
        + sum(len(item) for item in section.get('items', []))
        + sum(len(cell) for row in section.get('rows', []) for cell in row)
        for section in picked.values()
    )
    return snapshot


def snapshot_from_lines(lines: list) -> DiagnosticsSnapshot:
    """Best-effort snapshot from the free text collected by WALK_TEXT."""
    snapshot = DiagnosticsSnapshot(source='text')
    lines = [line.strip() for line in lines if line and line.strip()]
    lines = [line for line in lines if not is_style_or_script(line)]
    snapshot.text_length = sum(len(line) for line in lines)

    heading = None
    for index, line in enumerate(lines):
        if line in SECTION_HEADINGS:
            heading = line
            continue
        if heading == PROBLEMS_HEADING:
            snapshot.problems.append(line)
            continue
        if '\t' in line:
            key, _, value = line.partition('\t')
            if key.strip() and value.strip():
                snapshot.driver_info.setdefault(key.strip(), value.strip())
                _add_backends(snapshot, value)
            continue
        if line == '[WebGPU Status]' and index + 1 < len(lines):
            snapshot.webgpu_status = snapshot.webgpu_status or lines[index + 1]
            continue
        # a row already carries its status; only problem rows count as problems
        is_row = _add_feature_row(snapshot, line)
        status = parse_status(line.partition(':')[2]) if is_row else None
        if PROBLEM_PATTERN.search(line) and status in (None, FeatureStatus.PROBLEM):
            snapshot.problems.append(line)
    return snapshot


def _unreachable(exc: Error) -> DiagnosticsSnapshot:
    message = escape(exc.message)
    print(f'[bold yellow]⚠️  Could not read {GPU_INTERNALS_URL}: {message}[/bold yellow]')
    return DiagnosticsSnapshot(error=exc.message)


def _falling_back(reason: str):
    print(f'[yellow]{escape(reason)}, falling back to text[/yellow]')


def collect_snapshot(page, timeout: int = 10000) -> DiagnosticsSnapshot:
    """Navigate a sync Playwright page to chrome://gpu and read it."""
    try:
        page.goto(GPU_INTERNALS_URL)
    except Error as exc:
        return _unreachable(exc)
    try:
        page.locator('h3').filter(has_text=FEATURE_STATUS_HEADING).first.wait_for(
            timeout=timeout
        )
        snapshot = snapshot_from_sections(page.evaluate(WALK_SECTIONS))
        if snapshot.rows:
            return snapshot
        _falling_back('No feature rows in structured sections')
    except Error as exc:
        _falling_back(f'Structured read failed ({exc.message})')
    try:
        return snapshot_from_lines(page.evaluate(WALK_TEXT))
    except Error as exc:
        return _unreachable(exc)


async def collect_snapshot_async(page, timeout: int = 10000) -> DiagnosticsSnapshot:
    """Navigate an async Playwright page to chrome://gpu and read it."""
    try:
        await page.goto(GPU_INTERNALS_URL)
    except Error as exc:
        return _unreachable(exc)
    try:
        await page.locator('h3').filter(has_text=FEATURE_STATUS_HEADING).first.wait_for(
            timeout=timeout
        )
        snapshot = snapshot_from_sections(await page.evaluate(WALK_SECTIONS))
        if snapshot.rows:
            return snapshot
        _falling_back('No feature rows in structured sections')
    except Error as exc:
        _falling_back(f'Structured read failed ({exc.message})')
    try:
        return snapshot_from_lines(await page.evaluate(WALK_TEXT))
    except Error as exc:
        return _unreachable(exc)


def print_summary(snapshot: DiagnosticsSnapshot):
    summary = snapshot.summary()
    print('[bold cyan]🎯 GPU Status Summary[/bold cyan]')
    for key, value in summary.items():
        print(f'   {key}: {escape(str(value))}')
    for feature in snapshot.features:
        if 'WebGPU' in feature or 'WebGL' in feature or 'Hardware accelerated' in feature:
            print(f'   ✅ {escape(feature)}')
    if snapshot.adapter_features:
        print(f'🔧 WebGPU supported features: {len(snapshot.adapter_features)}')
        for feature in snapshot.adapter_features[:5]:
            print(f'   • {escape(feature)}')
    for problem in snapshot.problems:
        print(f'   ⚠️  {escape(problem)}')
