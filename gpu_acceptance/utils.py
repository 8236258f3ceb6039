import pandas as pd

SUMMARY_COLUMNS = [
    'run',
    'passed',
    'provider',
    'browser_version',
    'capabilities.unmasked_renderer',
    'capabilities.limits.max_texture_size',
    'webgpu.supported',
    'diagnostics.graphics_backend',
    'draw_calls.total_time',
]


def summarize_runs(records: list) -> pd.DataFrame:
    """
    Flatten run records into one row per run

    Parameters
    ----------

    records: list
        Run records as written by the runner, nested dicts.

    Returns
    -------
    summary : DataFrame with the SUMMARY_COLUMNS that are present plus a
        'violations' column counting failed checks
    """
    if not records:
        return pd.DataFrame(columns=[*SUMMARY_COLUMNS, 'violations'])
    df = pd.json_normalize(records, max_level=3)
    df['violations'] = [
        sum(len(problems) for problems in record.get('violations', {}).values())
        for record in records
    ]
    columns = [column for column in SUMMARY_COLUMNS if column in df.columns]
    return df[[*columns, 'violations']]


def flatten_violations(records: list) -> pd.DataFrame:
    """One row per violation with the run number and the check that raised it."""
    rows = [
        {'run': record.get('run'), 'check': check, 'message': message}
        for record in records
        for check, messages in record.get('violations', {}).items()
        for message in messages
    ]
    return pd.DataFrame(rows, columns=['run', 'check', 'message'])
