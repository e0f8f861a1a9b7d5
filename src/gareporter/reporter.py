"""Reporter facade: tracks screen views, sessions, events, exceptions and timings.

Hits are sent through the Google Analytics Measurement Protocol v1
(https://developers.google.com/analytics/devguides/collection/protocol/v1/reference).
Screen views are reported as pageviews with the app identifier as the
document host, so the tracking property has to be set up as a website.

A tracker ID must be set with `configure()` before anything is reported.
Until then, and while the user is opted out, every call is a logged no-op.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from datetime import timedelta

from gareporter.config.models import ReporterSettings, TrackerConfig
from gareporter.context import ContextSnapshot
from gareporter.device import DeviceInfoProvider, PlatformDeviceInfo
from gareporter.dispatch import Dispatcher, HttpClient
from gareporter.encoding import RequestEncoder, TrackingRequest
from gareporter.errors import EncodingError, NotConfigured, OptedOut
from gareporter.identity import IdentityStore
from gareporter.parameters import ParameterMerger, combined
from gareporter.runtime_logging import RuntimeLogger, get_runtime_logger
from gareporter.storage import JsonFileStore, KeyValueStore

Parameters = Mapping[str, str]


class Reporter:
    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        device: DeviceInfoProvider | None = None,
        store: KeyValueStore | None = None,
        http_client: HttpClient | None = None,
        encoder: RequestEncoder | None = None,
        logger: RuntimeLogger | None = None,
    ) -> None:
        self.config = config or TrackerConfig()
        self.logger = logger or get_runtime_logger()
        self.device = device or PlatformDeviceInfo()
        self.dispatcher = Dispatcher(self.config, http_client, logger=self.logger)
        self.context = ContextSnapshot(
            self.device,
            self.config,
            launcher=self.dispatcher.submit,
            logger=self.logger,
        )
        self.identity = IdentityStore(
            store if store is not None else JsonFileStore(),
            self.device,
            self.config,
            logger=self.logger,
        )
        self.merger = ParameterMerger(self.config, self.context, self.identity)
        self.encoder = encoder or RequestEncoder()

    @classmethod
    def from_settings(cls, settings: ReporterSettings, **kwargs) -> "Reporter":
        kwargs.setdefault(
            "device",
            PlatformDeviceInfo(
                name=settings.app.name,
                identifier=settings.app.identifier,
                version=settings.app.version,
                build=settings.app.build,
            ),
        )
        return cls(settings.tracker.model_copy(deep=True), **kwargs)

    # -- configuration -------------------------------------------------

    def configure(self, tracker_id: str) -> None:
        """Set the Google Analytics tracker ID (UA-XXXXX-XX).

        Once configured the reporter stays configured: a blank ID is ignored.
        """
        tracker_id = tracker_id.strip()
        if not tracker_id:
            self._diagnostic("warning", "report.configure_ignored", current=self.config.tracker_id)
            return
        self.config.tracker_id = tracker_id

    @property
    def tracker_id(self) -> str | None:
        return self.config.tracker_id

    @property
    def quiet_mode(self) -> bool:
        return self.config.quiet_mode

    @quiet_mode.setter
    def quiet_mode(self, value: bool) -> None:
        self.config.quiet_mode = value

    @property
    def uses_vendor_identifier(self) -> bool:
        return self.config.uses_vendor_identifier

    @uses_vendor_identifier.setter
    def uses_vendor_identifier(self, value: bool) -> None:
        self.config.uses_vendor_identifier = value

    @property
    def anonymize_ip(self) -> bool:
        return self.config.anonymize_ip

    @anonymize_ip.setter
    def anonymize_ip(self, value: bool) -> None:
        self.config.anonymize_ip = value

    @property
    def opted_out(self) -> bool:
        return self.config.opted_out

    @opted_out.setter
    def opted_out(self, value: bool) -> None:
        self.config.opted_out = value

    @property
    def custom_dimension_arguments(self) -> dict[str, str] | None:
        return self.config.custom_dimensions

    @custom_dimension_arguments.setter
    def custom_dimension_arguments(self, value: Parameters | None) -> None:
        self.config.custom_dimensions = dict(value) if value is not None else None

    @property
    def identifier(self) -> str:
        return self.identity.identifier()

    # -- hits ----------------------------------------------------------

    def screen_view(self, name: str, parameters: Parameters | None = None) -> None:
        """Track a screen as a pageview: `dh` app identifier, `dp` /name, `dt` name."""
        data = combined(
            parameters,
            {
                "dh": self.context.app_identifier,
                "dp": "/" + name.replace(" ", ""),
                "dt": name,
            },
        )
        self.send("pageview", data)

    def session(self, start: bool, parameters: Parameters | None = None) -> None:
        """Track a session start (True) or end (False); `dp` is the app name."""
        data = combined(
            parameters,
            {
                "sc": "start" if start else "end",
                "dp": self.context.app_name,
            },
        )
        self.send(None, data)

    def event(
        self,
        category: str,
        action: str,
        label: str = "",
        parameters: Parameters | None = None,
    ) -> None:
        data = combined(parameters, {"ec": category, "ea": action, "el": label})
        self.send("event", data)

    def exception(self, description: str, is_fatal: bool, parameters: Parameters | None = None) -> None:
        data = combined(
            parameters,
            {
                "exd": description,
                "exf": "true" if is_fatal else "false",
            },
        )
        self.send("exception", data)

    def timing(
        self,
        category: str,
        name: str,
        label: str = "",
        *,
        time: float | timedelta,
        parameters: Parameters | None = None,
    ) -> None:
        """Track a user timing; `time` is seconds or a timedelta, sent as whole ms.

        NaN and infinite durations have no millisecond value and are dropped.
        """
        try:
            milliseconds = to_milliseconds(time)
        except (ValueError, OverflowError) as exc:
            self._diagnostic("warning", "report.invalid_timing", category=category, name=name, error=str(exc))
            return
        data = combined(
            parameters,
            {
                "utc": category,
                "utv": name,
                "utl": label,
                "utt": str(milliseconds),
            },
        )
        self.send("timing", data)

    # -- pipeline ------------------------------------------------------

    def build(self, hit_type: str | None, parameters: Parameters | None = None) -> TrackingRequest:
        """Merge and encode a hit without sending it.

        Raises NotConfigured, OptedOut or EncodingError.
        """
        if not self.config.tracker_id:
            raise NotConfigured()
        if self.config.opted_out:
            raise OptedOut()
        merged = self.merger.merge(hit_type, parameters)
        return self.encoder.encode(merged)

    def send(self, hit_type: str | None, parameters: Parameters | None = None) -> None:
        try:
            request = self.build(hit_type, parameters)
        except NotConfigured as exc:
            self._diagnostic("warning", "report.not_configured", hit_type=hit_type, reason=str(exc))
            return
        except OptedOut:
            self._diagnostic("info", "report.opted_out", hit_type=hit_type)
            return
        except EncodingError as exc:
            self._diagnostic("error", "report.encoding_failed", hit_type=hit_type, reason=str(exc), path=exc.path)
            return

        self._diagnostic("debug", "report.sending", hit_type=hit_type, url=request.url)
        self.dispatcher.send(request)

    def flush(self, timeout: float | None = None) -> bool:
        return self.dispatcher.flush(timeout)

    def close(self) -> None:
        self.dispatcher.close()

    def _diagnostic(self, level: str, event: str, **fields: object) -> None:
        if self.config.quiet_mode:
            return
        self.logger.log(level, event, **fields)


def to_milliseconds(value: float | timedelta) -> int:
    """Whole milliseconds, truncated toward zero for seconds and timedeltas alike."""
    if isinstance(value, timedelta):
        return int(value / timedelta(milliseconds=1))
    return int(value * 1000)


_default_reporter: Reporter | None = None
_default_lock = threading.Lock()


def get_reporter() -> Reporter:
    """Return the process-wide reporter, creating it on first use."""
    global _default_reporter
    with _default_lock:
        if _default_reporter is None:
            _default_reporter = Reporter()
        return _default_reporter


def reset_reporter() -> None:
    """Close and drop the process-wide reporter (mainly for tests)."""
    global _default_reporter
    with _default_lock:
        reporter, _default_reporter = _default_reporter, None
    if reporter is not None:
        reporter.close()
