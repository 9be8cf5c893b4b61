"""Configuration management for the CampusConnect portal."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

DEFAULT_PORT = 3000
DEFAULT_EMAIL_DOMAIN = "@tut4life.ac.za"

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _split_list(value: object) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError(f"Expected a list or comma separated string, got {type(value).__name__}")
    return tuple(item.strip() for item in items if item.strip())


def _resolve_path(raw: object, base_path: Path | None) -> Path:
    candidate = Path(str(raw)).expanduser()
    if not candidate.is_absolute() and base_path is not None:
        candidate = base_path / candidate
    return candidate.resolve(strict=False)


def _normalize_domain(value: str) -> str:
    cleaned = value.strip().lower()
    if not cleaned:
        raise ValueError("Email domain must not be empty")
    if not cleaned.startswith("@"):
        cleaned = "@" + cleaned
    return cleaned


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the portal server and its record store."""

    data_dir: Path = field(default_factory=lambda: (_PROJECT_ROOT / "data").resolve(strict=False))
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    email_domain: str = DEFAULT_EMAIL_DOMAIN
    admin_tokens: Tuple[str, ...] = ()
    cors_origins: Tuple[str, ...] = ("*",)
    static_dir: Optional[Path] = None

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw mapping data, e.g. a parsed YAML file."""
        known = {"data_dir", "host", "port", "email_domain", "admin_tokens", "cors_origins", "static_dir"}
        unknown = set(data.keys()) - known
        if unknown:
            raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        settings = Settings()
        updates: Dict[str, object] = {}
        if data.get("data_dir"):
            updates["data_dir"] = _resolve_path(data["data_dir"], base_path)
        if data.get("host"):
            updates["host"] = str(data["host"]).strip()
        if data.get("port") is not None:
            updates["port"] = int(data["port"])  # type: ignore[arg-type]
        if data.get("email_domain"):
            updates["email_domain"] = _normalize_domain(str(data["email_domain"]))
        if "admin_tokens" in data:
            updates["admin_tokens"] = _split_list(data["admin_tokens"])
        if "cors_origins" in data:
            updates["cors_origins"] = _split_list(data["cors_origins"])
        if data.get("static_dir"):
            updates["static_dir"] = _resolve_path(data["static_dir"], base_path)
        return replace(settings, **updates)

    def with_env(self, env: Mapping[str, str]) -> "Settings":
        """Return a copy with environment variable overrides applied."""
        updates: Dict[str, object] = {}
        if env.get("CAMPUS_DATA_DIR"):
            updates["data_dir"] = _resolve_path(env["CAMPUS_DATA_DIR"], None)
        if env.get("CAMPUS_HOST"):
            updates["host"] = env["CAMPUS_HOST"].strip()
        if env.get("PORT"):
            updates["port"] = int(env["PORT"])
        if env.get("CAMPUS_EMAIL_DOMAIN"):
            updates["email_domain"] = _normalize_domain(env["CAMPUS_EMAIL_DOMAIN"])
        if "CAMPUS_ADMIN_TOKENS" in env:
            updates["admin_tokens"] = _split_list(env["CAMPUS_ADMIN_TOKENS"])
        if env.get("CAMPUS_CORS_ORIGINS"):
            updates["cors_origins"] = _split_list(env["CAMPUS_CORS_ORIGINS"])
        if env.get("CAMPUS_STATIC_DIR"):
            updates["static_dir"] = _resolve_path(env["CAMPUS_STATIC_DIR"], None)
        return replace(self, **updates)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the optional YAML configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (_PROJECT_ROOT / "config" / "campusconnect.yaml").resolve(strict=False)


def load_settings(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from defaults, an optional YAML file and the environment."""
    if env is None:
        env = os.environ
    if config_path is None:
        config_path = resolve_config_path(env.get("CAMPUS_CONFIG"))

    settings = Settings()
    if config_path.is_file():
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        settings = Settings.from_dict(raw, base_path=config_path.parent)

    return settings.with_env(env)


__all__ = ["Settings", "load_settings", "resolve_config_path", "DEFAULT_PORT", "DEFAULT_EMAIL_DOMAIN"]
