"""deckhub operator console: shell sessions and device commands for capture agents."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("deckhub")
except PackageNotFoundError:
    # Source-tree runs without an installed distribution
    __version__ = "0.0.0"

__all__ = ["__version__"]
