"""Settings schema for gareporter."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class TrackerConfig(BaseModel):
    tracker_id: str | None = Field(default=None, description="Google Analytics property, UA-XXXXX-XX")
    quiet_mode: bool = Field(default=True, description="Suppress reporter diagnostics")
    anonymize_ip: bool = Field(default=True)
    opted_out: bool = Field(default=False)
    uses_vendor_identifier: bool = Field(default=False)
    custom_dimensions: dict[str, str] | None = Field(default=None)

    @field_validator("tracker_id")
    @classmethod
    def strip_tracker_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @property
    def is_configured(self) -> bool:
        return bool(self.tracker_id)


class AppInfo(BaseModel):
    name: str | None = Field(default=None)
    identifier: str | None = Field(default=None, description="Reported as aid and as dh for screen views")
    version: str | None = Field(default=None)
    build: str | None = Field(default=None)


class ReporterSettings(BaseModel):
    schema_version: int = Field(default=1)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    app: AppInfo = Field(default_factory=AppInfo)

    def setting_items(self) -> list[tuple[str, str]]:
        """Flatten key/value pairs for the CLI settings listing."""

        result: list[tuple[str, str]] = []

        def walk(prefix: str, value: object) -> None:
            if isinstance(value, BaseModel):
                for key, nested in value.model_dump().items():
                    walk(f"{prefix}.{key}" if prefix else key, nested)
            elif isinstance(value, dict):
                for key, nested in value.items():
                    walk(f"{prefix}.{key}", nested)
            else:
                result.append((prefix, str(value)))

        walk("", self)
        return result
