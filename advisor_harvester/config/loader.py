"""Configuration loading helpers for advisor-harvester."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import yaml

from .models import HarvestConfig

HOME_ENV = "ADVISOR_HARVESTER_HOME"
CONFIG_FILENAME = "harvest_config.yaml"

# Environment variable -> dotted config field. Only integers are read.
ENV_OVERRIDES = {
    "CACHE_TTL": "cache.ttl_seconds",
    "PAGE_SIZE": "page_size",
    "MAX_RETRIES": "max_retries",
    "BATCH_SIZE": "batch_size",
    "DELAY_BETWEEN_BATCHES_MS": "batch_delay_ms",
}
API_KEY_ENV = "WEBSHARE_PROXY_API_KEY"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def _env_int(environ: Mapping[str, str], name: str) -> int | None:
    """Parse an integer env var; empty, invalid or zero values are ignored."""

    raw = environ.get(name, "").strip()
    try:
        value = int(raw)
    except ValueError:
        return None
    return value or None


def apply_env_overrides(payload: dict, environ: Mapping[str, str] | None = None) -> dict:
    environ = os.environ if environ is None else environ
    merged = dict(payload)
    for env_name, dotted in ENV_OVERRIDES.items():
        value = _env_int(environ, env_name)
        if value is None:
            continue
        target = merged
        *parents, leaf = dotted.split(".")
        for parent in parents:
            target[parent] = dict(target.get(parent) or {})
            target = target[parent]
        target[leaf] = value
    api_key = environ.get(API_KEY_ENV, "").strip()
    if api_key:
        proxy = dict(merged.get("proxy_pool") or {})
        proxy["api_key"] = api_key
        proxy.setdefault("enabled", True)
        merged["proxy_pool"] = proxy
    return merged


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO, env overrides and schema validation."""

    def __init__(
        self,
        locator: ConfigLocator | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.locator = locator or ConfigLocator()
        self._environ = environ
        self._cache: HarvestConfig | None = None

    def load_config(self) -> HarvestConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        payload = _read_file(path) if path.exists() else {}
        config = HarvestConfig.model_validate(apply_env_overrides(payload, self._environ))
        self._cache = config
        return config

    def save_config(self, config: HarvestConfig) -> Path:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = None
        return path

    def output_path(self) -> Path:
        return self.load_config().resolved_output_path(self.locator.project_root)

    def cache_dir(self) -> Path:
        return self.load_config().resolved_cache_dir(self.locator.project_root)


__all__ = [
    "API_KEY_ENV",
    "ConfigLocator",
    "ConfigRepository",
    "ENV_OVERRIDES",
    "HOME_ENV",
    "apply_env_overrides",
]
