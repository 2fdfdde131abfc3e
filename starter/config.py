"""Configuration loading for starter daemon mode."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CACHE_DIR = Path("~/.starter")


class ConfigError(RuntimeError):
    """Raised when the configuration file is missing or cannot be parsed."""


@dataclass
class APIConfig:
    """Bind settings for the HTTP transport."""

    address: str = "127.0.0.1"
    port: int = 9090


@dataclass
class DaemonConfig:
    """Represents the settings defined in the daemon configuration file."""

    api: APIConfig = field(default_factory=APIConfig)
    templates: Optional[Path] = None
    templates_url: Optional[str] = None
    branch: str = "master"
    use_registry: bool = False
    cache_dir: Path = DEFAULT_CACHE_DIR

    def resolved_cache_dir(self) -> Path:
        return self.cache_dir.expanduser().resolve()


def load_config(config_path: Path) -> DaemonConfig:
    """Load daemon configuration from disk."""
    config_file = Path(config_path).expanduser()
    if not config_file.is_file():
        raise ConfigError(f"Configuration file not found: {config_file}")
    root = config_file.parent.resolve()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    api = APIConfig()
    api_data = _as_dict(data.get("api"))
    if api_data:
        address = _as_str(api_data.get("address"))
        if address:
            api.address = address
        if "port" in api_data:
            port = _as_int(api_data.get("port"))
            if port is None or not 0 < port < 65536:
                raise ConfigError(f"Invalid api.port in {config_file.name}: {api_data.get('port')!r}")
            api.port = port

    templates_url = _as_str(data.get("templates_url")) or None

    templates_str = _as_str(data.get("templates"))
    templates = _resolve(root, templates_str) if templates_str else None

    cache_str = _as_str(data.get("cache_dir"))
    cache_dir = _resolve(root, cache_str) if cache_str else DEFAULT_CACHE_DIR

    use_registry = _as_bool(data.get("use_registry"))
    if data.get("use_registry") is not None and use_registry is None:
        raise ConfigError(f"Invalid use_registry in {config_file.name}: {data.get('use_registry')!r}")

    return DaemonConfig(
        api=api,
        templates=templates,
        templates_url=templates_url,
        branch=_as_str(data.get("branch")) or "master",
        use_registry=bool(use_registry),
        cache_dir=cache_dir,
    )


def _resolve(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return root / path


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = ["APIConfig", "ConfigError", "DaemonConfig", "load_config"]
