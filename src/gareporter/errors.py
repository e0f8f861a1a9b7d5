"""Error taxonomy for the reporting pipeline.

None of these escape the public tracking calls; the reporter catches them and
turns them into dropped hits plus an optional diagnostic.
"""

from __future__ import annotations

from dataclasses import dataclass


class ReporterError(Exception):
    """Base class for reporter failures."""


class NotConfigured(ReporterError):
    def __str__(self) -> str:
        return "Tracker ID is not set; call configure() with a UA-XXXXX-XX identifier"


class OptedOut(ReporterError):
    def __str__(self) -> str:
        return "User opted out from analytics"


@dataclass(slots=True)
class EncodingError(ReporterError):
    reason: str
    path: str = ""
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.reason}: {self.detail}"
        return self.reason


class TransportError(ReporterError):
    """Delivery of a hit failed at the HTTP layer."""


class StorageError(ReporterError):
    """A value could not be written to the key-value store."""
