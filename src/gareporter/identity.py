"""Stable anonymous client identifier (the `cid` parameter)."""

from __future__ import annotations

import threading
import uuid

from gareporter.config.models import TrackerConfig
from gareporter.device import DeviceInfoProvider
from gareporter.errors import StorageError
from gareporter.runtime_logging import RuntimeLogger, get_runtime_logger
from gareporter.storage import KeyValueStore

IDENTIFIER_KEY = "co.kristian.GoogleReporter.uniqueUserIdentifier"


class IdentityStore:
    """Resolves the client id once and serves the cached value afterwards.

    A vendor identifier from the device provider wins when enabled; it is not
    persisted because the platform already keeps it stable. Otherwise the id
    is read from the key-value store, or generated and written there.
    """

    def __init__(
        self,
        store: KeyValueStore,
        device: DeviceInfoProvider,
        config: TrackerConfig,
        logger: RuntimeLogger | None = None,
    ) -> None:
        self.store = store
        self.device = device
        self.config = config
        self._logger = logger or get_runtime_logger()
        self._lock = threading.Lock()
        self._identifier: str | None = None

    def identifier(self) -> str:
        cached = self._identifier
        if cached is not None:
            return cached
        with self._lock:
            if self._identifier is None:
                self._identifier = self._resolve()
            return self._identifier

    def _resolve(self) -> str:
        if self.config.uses_vendor_identifier:
            vendor = self.device.vendor_identifier()
            if vendor:
                return vendor

        stored = self.store.get(IDENTIFIER_KEY)
        if stored:
            return stored

        identifier = str(uuid.uuid4()).upper()
        try:
            self.store.set(IDENTIFIER_KEY, identifier)
        except (OSError, StorageError) as exc:
            if not self.config.quiet_mode:
                self._logger.warning("identity.persist_failed", error=str(exc))
        else:
            if not self.config.quiet_mode:
                self._logger.info("identity.created", identifier=identifier)
        return identifier
