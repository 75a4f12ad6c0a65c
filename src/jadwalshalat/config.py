from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from jadwalshalat.bimas_client import DEFAULT_BASE_URL


class ConfigError(ValueError):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class ApiConfig:
    base_url: str
    timeout_seconds: int


@dataclass(frozen=True)
class CacheConfig:
    directory: str


@dataclass(frozen=True)
class LocationConfig:
    province: str
    regency: str


@dataclass(frozen=True)
class LoggingConfig:
    file_path: Optional[str]


@dataclass(frozen=True)
class AppConfig:
    api: ApiConfig
    cache: CacheConfig
    location: LocationConfig
    logging: LoggingConfig


DEFAULTS: Dict[str, Any] = {
    "api": {"base_url": DEFAULT_BASE_URL, "timeout_seconds": 10},
    "cache": {"directory": "~/.cache/jadwal-shalat"},
    "location": {"province": "", "regency": ""},
    "logging": {"file_path": None},
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Failed to read config file: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected mapping at root of config file: {path}")
    return data


class ConfigLoader:
    def __init__(
        self, root_dir: Path | None = None, config_path: Path | None = None
    ) -> None:
        self._root_dir = root_dir
        self._config_path = config_path

    def load(self) -> AppConfig:
        merged: Dict[str, Any] = dict(DEFAULTS)

        if self._config_path is not None:
            # An explicit file replaces the directory lookup and must exist.
            if not self._config_path.exists():
                raise ConfigError(f"Missing config file: {self._config_path}")
            merged = _deep_merge(merged, _load_yaml(self._config_path))
        else:
            root_dir = self._resolve_root_dir()
            config_path = root_dir / "config.yml"
            if config_path.exists():
                merged = _deep_merge(merged, _load_yaml(config_path))
            config_d = root_dir / "config.d"
            if config_d.exists():
                for path in sorted(config_d.glob("*.yml")):
                    merged = _deep_merge(merged, _load_yaml(path))

        merged = _deep_merge(merged, self._env_overrides())
        config = self._build_config(merged)
        self._validate(config)
        return config

    def _resolve_root_dir(self) -> Path:
        if self._root_dir is not None:
            return self._root_dir
        env_dir = os.getenv("JADWAL_SHALAT_CONFIG_DIR")
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "jadwal-shalat"

    def _env_overrides(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        cache_dir = os.getenv("JADWAL_SHALAT_CACHE_DIR")
        if cache_dir:
            overrides["cache"] = {"directory": cache_dir}
        log_path = os.getenv("JADWAL_SHALAT_LOG_PATH")
        if log_path:
            overrides["logging"] = {"file_path": log_path}
        return overrides

    def _build_config(self, data: Dict[str, Any]) -> AppConfig:
        try:
            api_data = data["api"]
            cache_data = data["cache"]
            location_data = data["location"]
            logging_data = data["logging"]
        except KeyError as exc:
            raise ConfigError(f"Missing config section: {exc.args[0]}") from exc

        try:
            timeout_seconds = int(api_data["timeout_seconds"])
        except (TypeError, ValueError) as exc:
            raise ConfigError("api.timeout_seconds must be an integer") from exc

        file_path = logging_data.get("file_path")
        return AppConfig(
            api=ApiConfig(
                base_url=str(api_data["base_url"]),
                timeout_seconds=timeout_seconds,
            ),
            cache=CacheConfig(directory=str(cache_data["directory"])),
            location=LocationConfig(
                province=str(location_data.get("province") or ""),
                regency=str(location_data.get("regency") or ""),
            ),
            logging=LoggingConfig(file_path=str(file_path) if file_path else None),
        )

    def _validate(self, config: AppConfig) -> None:
        if not config.api.base_url.startswith(("http://", "https://")):
            raise ConfigError(f"api.base_url must be an http(s) URL: {config.api.base_url}")
        if config.api.timeout_seconds <= 0:
            raise ConfigError(
                f"api.timeout_seconds must be positive: {config.api.timeout_seconds}"
            )
        if not config.cache.directory:
            raise ConfigError("cache.directory is required")
