from importlib.metadata import PackageNotFoundError, version as _version

try:
    __version__ = _version('gpu-acceptance')
except PackageNotFoundError:  # pragma: no cover
    __version__ = '0.0.0'
