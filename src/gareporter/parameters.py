"""Merging of base, context and call-site Measurement Protocol parameters."""

from __future__ import annotations

from collections.abc import Mapping

from gareporter.config.models import TrackerConfig
from gareporter.context import ContextSnapshot
from gareporter.errors import NotConfigured
from gareporter.identity import IdentityStore

PROTOCOL_VERSION = "1"

ParameterSet = dict[str, str]


class ParameterMerger:
    """Builds the full parameter set for one hit.

    Precedence, lowest to highest: base parameters, hit type, custom
    dimensions, anonymize-IP flag, call-site parameters.
    """

    def __init__(
        self,
        config: TrackerConfig,
        context: ContextSnapshot,
        identity: IdentityStore,
    ) -> None:
        self.config = config
        self.context = context
        self.identity = identity

    def merge(self, hit_type: str | None, parameters: Mapping[str, str] | None = None) -> ParameterSet:
        tracker_id = self.config.tracker_id
        if not tracker_id:
            raise NotConfigured()

        merged: ParameterSet = {
            "tid": tracker_id,
            "aid": self.context.app_identifier,
            "cid": self.identity.identifier(),
            "an": self.context.app_name,
            "av": self.context.formatted_version,
            "ua": self.context.user_agent,
            "ul": self.context.user_language,
            "sr": self.context.screen_resolution,
            "v": PROTOCOL_VERSION,
        }

        if hit_type:
            merged["t"] = hit_type

        if self.config.custom_dimensions:
            merged.update(self.config.custom_dimensions)

        if self.config.anonymize_ip:
            merged["aip"] = "1"

        if parameters:
            merged.update(parameters)
        return merged


def combined(parameters: Mapping[str, str] | None, fixed: Mapping[str, str]) -> ParameterSet:
    """Overlay a hit's own keys on the caller's extra parameters."""
    result: ParameterSet = dict(parameters or {})
    result.update(fixed)
    return result
