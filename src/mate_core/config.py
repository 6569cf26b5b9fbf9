"""mate config loading from config.json plus env overrides."""

from __future__ import annotations

import json
import os
from pathlib import Path
import shlex
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _env_path(name: str, fallback: Path) -> Path:
    raw = os.environ.get(name, "").strip()
    return Path(raw).expanduser() if raw else fallback.expanduser()


_USER_HOME = Path.home()
_XDG_CONFIG_HOME = _env_path("XDG_CONFIG_HOME", _USER_HOME / ".config")
DEFAULT_CONFIG_HOME = _XDG_CONFIG_HOME / "mate"
DEFAULT_MATE_CONFIG_JSON = _env_path("MATE_CONFIG_JSON", DEFAULT_CONFIG_HOME / "config.json")

SECTIONS = {"runtime", "logging", "auth"}


def invoking_uid() -> int:
    """Uid of the user who started us, seeing through sudo."""
    raw = os.environ.get("SUDO_UID", "").strip()
    if raw:
        try:
            return int(raw)
        except ValueError:
            pass
    return os.getuid()


def default_socket_path() -> Path:
    return Path(f"/tmp/textmate-{invoking_uid()}.sock")


class RuntimeConfig(BaseModel):
    socket_path: Path = Field(default_factory=default_socket_path)
    read_chunk_size: int = Field(default=1024, gt=0)
    stdin_chunk_size: int = Field(default=1024, gt=0)
    connect_timeout_seconds: float = Field(default=30.0, ge=0)
    connect_retry_interval: float = Field(default=0.5, gt=0)
    launch_command: list[str] = Field(default_factory=list)

    @field_validator("launch_command", mode="before")
    @classmethod
    def _split_launch_command(cls, value: Any) -> Any:
        if isinstance(value, str):
            return shlex.split(value)
        return value


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    log_file: Path | None = None

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.strip().upper() or "WARNING"


class AuthConfig(BaseModel):
    authorization_token: str | None = None


class AppConfig(BaseModel):
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)

    def expanded(self) -> "AppConfig":
        clone = self.model_copy(deep=True)
        clone.runtime.socket_path = clone.runtime.socket_path.expanduser()
        if clone.logging.log_file is not None:
            clone.logging.log_file = clone.logging.log_file.expanduser()
        return clone

    def ensure_dirs(self) -> None:
        expanded = self.expanded()
        if expanded.logging.log_file is not None:
            expanded.logging.log_file.parent.mkdir(parents=True, exist_ok=True)


def _coerce_env_value(value: str) -> Any:
    lower = value.lower()
    if lower in {"true", "false"}:
        return lower == "true"
    if "," in value:
        return [part.strip() for part in value.split(",") if part.strip()]
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _read_mate_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return {}

    if isinstance(loaded, dict):
        return loaded
    return {}


def _extract_mate_config(data: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for section in SECTIONS:
        value = data.get(section)
        if isinstance(value, dict):
            out[section] = value
    return out


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    result = dict(data)
    for key, raw in os.environ.items():
        if not key.startswith("MATE_") or key == "MATE_CONFIG_JSON":
            continue
        tokens = key[len("MATE_") :].lower().split("_")
        section = tokens[0]
        if section not in SECTIONS or len(tokens) == 1:
            continue
        field = "_".join(tokens[1:])
        section_obj = dict(result.get(section, {}))
        # Paths and commands are taken verbatim.
        if field in {"socket_path", "log_file", "launch_command", "authorization_token", "level"}:
            section_obj[field] = raw
        else:
            section_obj[field] = _coerce_env_value(raw)
        result[section] = section_obj
    return result


def load_config() -> AppConfig:
    raw = _read_mate_json(DEFAULT_MATE_CONFIG_JSON)
    from_file = _extract_mate_config(raw)
    merged = _apply_env_overrides(from_file)
    cfg = AppConfig.model_validate(merged).expanded()
    cfg.ensure_dirs()
    return cfg
