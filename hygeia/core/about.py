"""Package metadata."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hygeia")
except PackageNotFoundError:
    # Running from a source checkout
    __version__ = "0.3.0"
