"""Device and application introspection used to build hit context."""

from __future__ import annotations

import locale
import os
import platform
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

ScreenSize = tuple[float, float]


class DeviceInfoProvider(Protocol):
    def app_name(self) -> str | None: ...

    def app_identifier(self) -> str | None: ...

    def app_version(self) -> str | None: ...

    def app_build(self) -> str | None: ...

    def preferred_languages(self) -> list[str]: ...

    def screen_size(self) -> ScreenSize: ...

    def fallback_user_agent(self) -> str: ...

    async def probe_user_agent(self) -> str | None: ...

    def vendor_identifier(self) -> str | None: ...


def _normalize_language(value: str) -> str:
    # "en_US.UTF-8" -> "en-US"
    tag = value.split(".", 1)[0].split("@", 1)[0]
    return tag.replace("_", "-")


def _env_languages() -> list[str]:
    languages: list[str] = []
    for var in ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG"):
        raw = os.getenv(var)
        if not raw:
            continue
        for item in raw.split(":"):
            tag = _normalize_language(item.strip())
            if tag and tag not in {"C", "POSIX"} and tag not in languages:
                languages.append(tag)
    return languages


def _platform_token() -> str:
    system = platform.system()
    machine = platform.machine() or "unknown"
    if system == "Darwin":
        version = platform.mac_ver()[0].replace(".", "_")
        return f"Macintosh; Intel Mac OS X {version}" if version else "Macintosh"
    if system == "Windows":
        return f"Windows NT {platform.version() or platform.release()}; {machine}"
    if system == "Linux":
        return f"X11; Linux {machine}"
    return f"{system} {platform.release()}".strip()


@dataclass(slots=True)
class PlatformDeviceInfo:
    """Context for a desktop/server Python process.

    There is no bundle metadata to read, so application fields come from the
    constructor and default to the running script name.
    """

    name: str | None = None
    identifier: str | None = None
    version: str | None = None
    build: str | None = None
    screen: ScreenSize = (0, 0)

    def app_name(self) -> str | None:
        if self.name:
            return self.name
        script = Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ""
        return script or None

    def app_identifier(self) -> str | None:
        return self.identifier

    def app_version(self) -> str | None:
        return self.version

    def app_build(self) -> str | None:
        return self.build

    def preferred_languages(self) -> list[str]:
        languages = _env_languages()
        if languages:
            return languages
        current = locale.getlocale()[0]
        return [_normalize_language(current)] if current else []

    def screen_size(self) -> ScreenSize:
        return self.screen

    def fallback_user_agent(self) -> str:
        app = self.app_name() or "Python"
        version = self.version or platform.python_version()
        return f"Mozilla/5.0 ({_platform_token()}) Python/{platform.python_version()} {app}/{version}"

    async def probe_user_agent(self) -> str | None:
        return None

    def vendor_identifier(self) -> str | None:
        return None


@dataclass(slots=True)
class StaticDeviceInfo:
    """Fixed values, for embedding hosts that already know their context."""

    name: str | None = None
    identifier: str | None = None
    version: str | None = None
    build: str | None = None
    languages: list[str] = field(default_factory=list)
    screen: ScreenSize = (0, 0)
    user_agent: str = "Mozilla/5.0"
    probed_user_agent: str | None = None
    vendor_id: str | None = None

    def app_name(self) -> str | None:
        return self.name

    def app_identifier(self) -> str | None:
        return self.identifier

    def app_version(self) -> str | None:
        return self.version

    def app_build(self) -> str | None:
        return self.build

    def preferred_languages(self) -> list[str]:
        return list(self.languages)

    def screen_size(self) -> ScreenSize:
        return self.screen

    def fallback_user_agent(self) -> str:
        return self.user_agent

    async def probe_user_agent(self) -> str | None:
        return self.probed_user_agent

    def vendor_identifier(self) -> str | None:
        return self.vendor_id
