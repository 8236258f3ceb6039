import platform

# https://chromium.googlesource.com/chromium/src/+/master/ui/gl/gl_switches.cc
COMMON_FLAGS = ['--no-sandbox', '--enable-unsafe-webgpu', '--ignore-gpu-blocklist']

# keyed by platform.system()
LAUNCH_FLAGS = {
    'Linux': [
        '--use-angle=vulkan',
        '--enable-features=Vulkan',
        '--disable-vulkan-surface',
        '--enable-gpu',
    ],
    'Darwin': ['--use-angle=metal'],
    'Windows': ['--use-angle=d3d11'],
}


def chrome_args(os_name: str | None = None, extra: list | None = None) -> list:
    """
    Build the Chromium command line for the current (or given) platform

    Parameters
    ----------

    os_name: str
        Name as returned by ``platform.system()``. Defaults to the host.

    extra: list
        Additional flags appended after the platform flags.

    Returns
    -------
    args : list
        Flags with duplicates removed, first occurrence wins
    """
    os_name = os_name or platform.system()
    args = [*COMMON_FLAGS, *LAUNCH_FLAGS.get(os_name, []), *(extra or [])]
    return list(dict.fromkeys(args))

# the 'chromium' channel runs the new headless mode, which keeps the GPU process
DEFAULT_CHANNEL = 'chromium'
