"""Session-level hit context computed once per reporter."""

from __future__ import annotations

import threading
from typing import Any, Callable, Coroutine, Generic, TypeVar

from gareporter.config.models import TrackerConfig
from gareporter.device import DeviceInfoProvider
from gareporter.runtime_logging import RuntimeLogger, get_runtime_logger

NOT_SET = "(not set)"

T = TypeVar("T")
Launcher = Callable[[Coroutine[Any, Any, Any]], None]


class OnceCell(Generic[T]):
    """Lock-guarded compute-once value."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._ready = False
        self._value: T | None = None

    def get(self) -> T:
        if self._ready:
            return self._value  # type: ignore[return-value]
        with self._lock:
            if not self._ready:
                self._value = self._factory()
                self._ready = True
        return self._value  # type: ignore[return-value]

    @property
    def ready(self) -> bool:
        return self._ready


def format_dimension(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class ContextSnapshot:
    def __init__(
        self,
        device: DeviceInfoProvider,
        config: TrackerConfig,
        *,
        launcher: Launcher | None = None,
        logger: RuntimeLogger | None = None,
    ) -> None:
        self.device = device
        self.config = config
        self._launcher = launcher
        self._logger = logger or get_runtime_logger()

        self._app_name = OnceCell(lambda: self.device.app_name() or NOT_SET)
        self._app_identifier = OnceCell(lambda: self.device.app_identifier() or NOT_SET)
        self._app_version = OnceCell(lambda: self.device.app_version() or NOT_SET)
        self._app_build = OnceCell(lambda: self.device.app_build() or NOT_SET)
        self._formatted_version = OnceCell(lambda: f"{self.app_version} ({self.app_build})")
        self._user_language = OnceCell(self._first_language)
        self._screen_resolution = OnceCell(self._format_screen)
        self._user_agent_started = OnceCell(self._start_user_agent)
        # Replaced wholesale by the probe; str assignment is atomic for readers.
        self._user_agent: str = ""

    @property
    def app_name(self) -> str:
        return self._app_name.get()

    @property
    def app_identifier(self) -> str:
        return self._app_identifier.get()

    @property
    def app_version(self) -> str:
        return self._app_version.get()

    @property
    def app_build(self) -> str:
        return self._app_build.get()

    @property
    def formatted_version(self) -> str:
        return self._formatted_version.get()

    @property
    def user_language(self) -> str:
        return self._user_language.get()

    @property
    def screen_resolution(self) -> str:
        return self._screen_resolution.get()

    @property
    def user_agent(self) -> str:
        self._user_agent_started.get()
        return self._user_agent

    def _first_language(self) -> str:
        languages = self.device.preferred_languages()
        if not languages or not languages[0]:
            return NOT_SET
        return languages[0]

    def _format_screen(self) -> str:
        width, height = self.device.screen_size()
        return f"{format_dimension(width)}x{format_dimension(height)}"

    def _start_user_agent(self) -> bool:
        self._user_agent = self.device.fallback_user_agent()
        if self._launcher is not None:
            self._launcher(self._probe_user_agent())
        return True

    async def _probe_user_agent(self) -> None:
        try:
            agent = await self.device.probe_user_agent()
        except Exception as exc:
            if not self.config.quiet_mode:
                self._logger.warning("context.user_agent_probe_failed", error=str(exc))
            return
        if agent:
            self._user_agent = agent
            self._logger.debug("context.user_agent_updated", user_agent=agent)
