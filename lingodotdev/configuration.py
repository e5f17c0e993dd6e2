"""Pydantic-backed configuration for the Lingo.dev engine."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence

import pydantic
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError

DEFAULT_API_URL = "https://engine.lingo.dev"
MAX_BATCH_SIZE = 250
MAX_IDEAL_BATCH_ITEM_SIZE = 2500

ENV_KEYS = {
    "LINGODOTDEV_API_KEY": "api_key",
    "LINGODOTDEV_API_URL": "api_url",
    "LINGODOTDEV_BATCH_SIZE": "batch_size",
    "LINGODOTDEV_IDEAL_BATCH_ITEM_SIZE": "ideal_batch_item_size",
    "LINGODOTDEV_REQUEST_TIMEOUT": "request_timeout",
    "LINGODOTDEV_DEBUG": "debug",
}


class EngineConfig(BaseModel):
    """Schema describing all supported engine options."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    api_key: str = Field(min_length=1, description="Lingo.dev API key.")
    api_url: str = Field(
        default=DEFAULT_API_URL,
        pattern=r"^https?://.+",
        description="Base URL of the localization service.",
    )
    batch_size: int = Field(
        default=25,
        ge=1,
        le=MAX_BATCH_SIZE,
        strict=True,
        description="Maximum number of entries per chunk.",
    )
    ideal_batch_item_size: int = Field(
        default=250,
        ge=1,
        le=MAX_IDEAL_BATCH_ITEM_SIZE,
        strict=True,
        description="Word count above which a chunk is closed.",
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Connect and read timeout for each request, in seconds.",
    )
    debug: bool = Field(default=False)

    @field_validator("api_key", mode="before")
    @classmethod
    def _require_api_key(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("API key is required")
        return value


def build_config(**options: Any) -> EngineConfig:
    """Validate engine options, raising the SDK's ValidationError on failure."""

    try:
        return EngineConfig(**options)
    except pydantic.ValidationError as exc:
        raise ValidationError(_format_validation_errors(exc.errors())) from exc


def update_config(config: EngineConfig, **changes: Any) -> None:
    """Apply changes to an existing config with the same validation rules."""

    try:
        validated = EngineConfig.model_validate({**config.model_dump(), **changes})
    except pydantic.ValidationError as exc:
        raise ValidationError(_format_validation_errors(exc.errors())) from exc
    # Nothing is written unless the whole change set is valid.
    for name in changes:
        setattr(config, name, getattr(validated, name))


@lru_cache(maxsize=4)
def _load_settings(app_dir: Path) -> EngineConfig:
    """Load configuration layers once and cache the validated model."""

    combined: Dict[str, Any] = {}
    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        _merge_env_values(combined, dotenv_values(dotenv_path))
    _merge_env_values(combined, os.environ)

    if "api_key" not in combined:
        raise ValidationError(
            "No API key configured. Set LINGODOTDEV_API_KEY in the environment "
            "or in a local .env file."
        )

    return build_config(**_coerce_integers(combined))


def _merge_env_values(target: Dict[str, Any], values: Mapping[str, Any]) -> None:
    """Merge recognised variables into the target mapping, later layers winning."""

    for key, value in sorted(values.items()):
        if value is None:
            continue
        option = ENV_KEYS.get(key)
        if option is None:
            continue
        target[option] = value


def _coerce_integers(values: Dict[str, Any]) -> Dict[str, Any]:
    """Environment values are strings; batch limits are validated strictly."""

    coerced = dict(values)
    for name in ("batch_size", "ideal_batch_item_size"):
        raw = coerced.get(name)
        if isinstance(raw, str):
            try:
                coerced[name] = int(raw.strip())
            except ValueError as exc:
                raise ValidationError(
                    f"Configuration validation errors detected:\n- {name}: "
                    f"expected an integer, got {raw!r}"
                ) from exc
    return coerced


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("loc") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("msg") or "Invalid value")
        message = message.removeprefix("Value error, ")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def get_settings(app_dir: Path | None = None) -> EngineConfig:
    """Return the validated configuration built from .env and the environment."""

    return _load_settings((app_dir or Path.cwd()).resolve())
