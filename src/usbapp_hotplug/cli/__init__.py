"""Command-line front-end for the hotplug engine."""

from .. import __version__

__all__ = ["__version__"]
