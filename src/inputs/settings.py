# src/inputs/settings.py
"""
Settings loader for the property reconciler.

Goals
-----
- File-first, validated configuration (JSON) with sane defaults when absent.
- Light environment-variable overrides for CI/CLI convenience.

JSON shape (every section optional)
-----------------------------------
   {
     "cache":     { "max_size": 100, "default_ttl_s": 3600, "sweep_interval_s": 300 },
     "valuation": { "api_key": "...", "base_url": "https://api.rentcast.io/v1", ... },
     "reconcile": { "include_valuation_api": true, "strategy": "flip", ... },
     "log_level": "INFO",
     "log_file":  "logs/reconciler.log"
   }

Environment overrides (optional)
--------------------------------
- PROPREC_CACHE_MAX_SIZE    -> cache.max_size (int)
- PROPREC_CACHE_TTL_S       -> cache.default_ttl_s (float)
- PROPREC_SWEEP_INTERVAL_S  -> cache.sweep_interval_s (float)
- PROPREC_LOG_LEVEL         -> log_level
- PROPREC_LOG_FILE          -> log_file
- RENTCAST_API_KEY          -> valuation.api_key
- RENTCAST_API_URL          -> valuation.base_url

Malformed or out-of-range overrides are ignored; the validated value is kept.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.schemas.models import CachePolicy, ReconcileOptions, ValuationPolicy


class AppSettings(BaseModel):
    """Everything a reconciler process needs at startup."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    cache: CachePolicy = Field(default_factory=CachePolicy)
    valuation: ValuationPolicy = Field(default_factory=ValuationPolicy)
    reconcile: ReconcileOptions = Field(default_factory=ReconcileOptions)
    log_level: str = Field("INFO", description="Root level for the package logger.")
    log_file: str | None = Field(None, description="Optional rotating log file path.")


# (env suffix, section, field, caster); section None targets AppSettings itself
_PREFIXED_OVERRIDES: tuple[tuple[str, str | None, str, type], ...] = (
    ("CACHE_MAX_SIZE", "cache", "max_size", int),
    ("CACHE_TTL_S", "cache", "default_ttl_s", float),
    ("SWEEP_INTERVAL_S", "cache", "sweep_interval_s", float),
    ("LOG_LEVEL", None, "log_level", str),
    ("LOG_FILE", None, "log_file", str),
)

_PROVIDER_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("RENTCAST_API_KEY", "valuation", "api_key"),
    ("RENTCAST_API_URL", "valuation", "base_url"),
)


@dataclass(frozen=True)
class SettingsLoader:
    """
    File-first settings loader with light env overrides.

    Default search (when path=None): ./config/reconciler.json, then built-in
    defaults; a missing default file is not an error.
    """

    env_prefix: str = "PROPREC_"

    # ---------- Public API ----------

    def load(self, path: str | Path | None = None) -> AppSettings:
        raw = self._read_json_file(self._resolve_path(path)) if path is not None else self._default_raw()
        return self._apply_env_overrides(self._parse_root(raw))

    def load_json(self, text: str) -> AppSettings:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON payload: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError("Settings JSON must be an object")
        return self._apply_env_overrides(self._parse_root(raw))

    # ---------- Internals ----------

    def _resolve_path(self, path: str | Path) -> Path:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Settings file not found: {p}")
        return p

    def _default_raw(self) -> dict[str, Any]:
        candidate = Path("config/reconciler.json")
        return self._read_json_file(candidate) if candidate.exists() else {}

    def _read_json_file(self, p: Path) -> dict[str, Any]:
        if p.suffix.lower() != ".json":
            raise ValueError(f"Unsupported settings format for {p.name}; only .json is supported.")
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {p}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Settings in {p} must be a JSON object")
        return data

    def _parse_root(self, data: dict[str, Any]) -> AppSettings:
        try:
            return AppSettings.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Settings validation failed:\n{e}") from e

    def _apply_env_overrides(self, cfg: AppSettings) -> AppSettings:
        for suffix, section, field, caster in _PREFIXED_OVERRIDES:
            raw = os.getenv(f"{self.env_prefix}{suffix}")
            if not raw:
                continue
            try:
                value = caster(raw.strip())
            except ValueError:
                # Ignore bad value; keep validated setting
                continue
            cfg = self._override(cfg, section, field, value)

        for env_name, section, field in _PROVIDER_OVERRIDES:
            raw = os.getenv(env_name)
            if raw:
                cfg = self._override(cfg, section, field, raw.strip())
        return cfg

    @staticmethod
    def _override(cfg: AppSettings, section: str | None, field: str, value: Any) -> AppSettings:
        """Validated copy with one value replaced; invalid values leave cfg unchanged."""
        try:
            if section is None:
                return AppSettings.model_validate({**cfg.model_dump(), field: value})
            current = getattr(cfg, section)
            updated = type(current).model_validate({**current.model_dump(), field: value})
        except ValidationError:
            return cfg
        return cfg.model_copy(update={section: updated})


def load_settings(path: str | Path | None = None) -> AppSettings:
    """Convenience wrapper for one-shot callers."""
    return SettingsLoader().load(path)


__all__ = ["AppSettings", "SettingsLoader", "load_settings"]
