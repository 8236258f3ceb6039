# Minimum capability policy. Thresholds are rows of data; the checks select
# the rows that apply to a host and keep the strictest value per metric.

import re

import pandas as pd

COLUMNS = ['scope', 'match', 'metric', 'bound', 'value']

THRESHOLDS = pd.DataFrame(
    [
        # every host
        ('default', None, 'webgl', 'min', 1),
        ('default', None, 'max_texture_size', 'min', 2048),
        ('default', None, 'extension_count', 'min', 6),
        # platform floors, matched against CapabilityReport.os_family
        ('platform', 'linux', 'max_texture_size', 'min', 4096),
        ('platform', 'mac', 'max_texture_size', 'min', 8192),
        ('apple_silicon', None, 'max_texture_size', 'min', 16384),
        ('apple_silicon', None, 'webgl2', 'min', 1),
        ('apple_silicon', None, 'max_combined_texture_image_units', 'min', 32),
        # GPU vendor, matched against the renderer string
        ('renderer', r'nvidia', 'max_texture_size', 'min', 8192),
        ('renderer', r'amd|radeon', 'max_texture_size', 'min', 4096),
        ('renderer', r'intel', 'max_texture_size', 'min', 2048),
        ('renderer', r'apple|\bm[1-9]\b', 'max_texture_size', 'min', 16384),
        ('renderer', r'apple|\bm[1-9]\b', 'webgl2', 'min', 1),
        # asserted hardware acceleration
        ('hardware', None, 'max_texture_size', 'min', 8192),
        ('hardware', None, 'extension_count', 'min', 11),
        # hardware confirmed by capabilities alone, no GPU vendor named
        ('unnamed_hardware', None, 'max_texture_size', 'min', 8192),
        ('unnamed_hardware', None, 'extension_count', 'min', 21),
        ('webgl2', None, 'max_color_attachments', 'min', 4),
        ('webgl2', None, 'max_3d_texture_size', 'min', 256),
        ('webgl2', None, 'max_array_texture_layers', 'min', 256),
        ('webgpu', None, 'max_texture_dimension_2d', 'min', 4097),
        # 10000 transformed draw calls
        ('draw_calls', None, 'total_time_ms', 'max', 5000),
        ('draw_calls', None, 'average_time_per_draw_ms', 'max', 1),
        # 1000 plain draw calls
        ('draw_calls_smoke', None, 'total_time_ms', 'max', 1000),
        ('draw_calls_smoke', None, 'triangles_per_second', 'min', 101),
    ],
    columns=COLUMNS,
)


def _applies(row, *, os_family: str, renderer: str, scopes: set) -> bool:
    if row['scope'] == 'platform':
        return row['match'] == os_family
    if row['scope'] == 'renderer':
        return bool(renderer) and re.search(row['match'], renderer, re.I) is not None
    return row['scope'] in scopes


def select_thresholds(
    *,
    os_family: str = 'other',
    renderer: str = '',
    apple_silicon: bool = False,
    hardware: bool = False,
    unnamed_hardware: bool = False,
    webgl2: bool = False,
    scopes: tuple = ('default',),
    table: pd.DataFrame | None = None,
) -> pd.DataFrame:
    """
    Select the thresholds that apply to a host

    Parameters
    ----------

    os_family: str
        One of 'linux', 'mac', 'windows' or 'other'.

    renderer: str
        Renderer/vendor string used for the vendor rows.

    apple_silicon, hardware, unnamed_hardware, webgl2: bool
        Switch on the rows of the scope with the same name.

    scopes: tuple
        Other scopes to include, e.g. ('webgpu',) or ('draw_calls',).

    table: pd.DataFrame
        Threshold table, defaults to THRESHOLDS.

    Returns
    -------
    thresholds : DataFrame indexed by metric with 'bound' and 'value' columns
    """
    table = THRESHOLDS if table is None else table
    active = set(scopes)
    for name, enabled in [
        ('apple_silicon', apple_silicon),
        ('hardware', hardware),
        ('unnamed_hardware', unnamed_hardware),
        ('webgl2', webgl2),
    ]:
        if enabled:
            active.add(name)

    mask = table.apply(
        _applies, axis=1, os_family=os_family, renderer=renderer or '', scopes=active
    )
    selected = table[mask] if len(table) else table
    if selected.empty:
        return pd.DataFrame(columns=['bound', 'value']).rename_axis('metric')

    minimums = selected[selected['bound'] == 'min'].groupby('metric')['value'].max()
    maximums = selected[selected['bound'] == 'max'].groupby('metric')['value'].min()
    return pd.concat(
        [
            pd.DataFrame({'bound': 'min', 'value': minimums}),
            pd.DataFrame({'bound': 'max', 'value': maximums}),
        ]
    ).rename_axis('metric')


def thresholds_for(report, **kwargs) -> pd.DataFrame:
    """Thresholds for a CapabilityReport, keyed off its platform and renderer."""
    return select_thresholds(
        os_family=report.os_family,
        renderer=report.gpu_string,
        apple_silicon=report.is_apple_silicon,
        webgl2=report.webgl2_limits is not None,
        **kwargs,
    )


def violations(values: dict, thresholds: pd.DataFrame) -> list:
    """
    Compare measured values with thresholds

    Returns
    -------
    messages : list
        One message per metric that is missing or out of bounds
    """
    messages = []
    for metric, row in thresholds.iterrows():
        value = values.get(metric)
        if value is None:
            messages.append(f'{metric}: not reported (expected {row["bound"]} {row["value"]})')
        elif row['bound'] == 'min' and value < row['value']:
            messages.append(f'{metric}: {value} is below the minimum of {row["value"]}')
        elif row['bound'] == 'max' and value > row['value']:
            messages.append(f'{metric}: {value} is above the maximum of {row["value"]}')
    return messages
