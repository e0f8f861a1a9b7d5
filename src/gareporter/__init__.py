"""Fire-and-forget Google Analytics Measurement Protocol reporter."""

from gareporter.reporter import Reporter, get_reporter, reset_reporter
from gareporter.version import __version__

__all__ = ["Reporter", "__version__", "get_reporter", "reset_reporter"]
