from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from .command import FFMPEG, YT_DLP, ToolRegistry, registry

DEFAULT_SETTINGS_PATH = "settings.yaml"
KNOWN_TOOLS = (FFMPEG, YT_DLP)


def _settings_path(path: str | None) -> Path:
    return Path(path or os.getenv("TUNEGRAB_SETTINGS_PATH", DEFAULT_SETTINGS_PATH)).expanduser()


def load_settings(path: str | None = None) -> dict[str, Any]:
    config_path = _settings_path(path)
    if not config_path.exists():
        return {}
    return yaml.safe_load(config_path.read_text()) or {}


def save_settings(settings: dict[str, Any], path: str | None = None) -> Path:
    config_path = _settings_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.safe_dump(settings, sort_keys=False))
    return config_path


def default_save_directory(settings: dict[str, Any]) -> Path | None:
    value = settings.get("default_save_directory")
    if not value:
        return None
    return Path(str(value)).expanduser()


def playback_volume(settings: dict[str, Any]) -> float:
    try:
        value = float(settings.get("playback_volume", 1.0))
    except (TypeError, ValueError):
        return 1.0
    return min(max(value, 0.0), 1.0)


def tool_overrides(settings: dict[str, Any]) -> dict[str, str | None]:
    tools = settings.get("tools") or {}
    return {name: (str(tools[name]) if tools.get(name) else None) for name in KNOWN_TOOLS}


def tool_timeout(settings: dict[str, Any]) -> float | None:
    value = settings.get("tool_timeout_sec")
    if value in (None, "", 0):
        return None
    return float(value)


def thumbnail_timeout(settings: dict[str, Any]) -> int:
    return int((settings.get("thumbnail") or {}).get("request_timeout_sec", 30))


def log_level(settings: dict[str, Any]) -> str:
    level = os.getenv("TUNEGRAB_LOG_LEVEL") or (settings.get("logging") or {}).get("level") or "INFO"
    return str(level).upper()


def apply_tool_overrides(settings: dict[str, Any], target: ToolRegistry | None = None) -> None:
    target = target or registry
    for name, path in tool_overrides(settings).items():
        target.set_tool_path(name, path)
    target.set_timeout(tool_timeout(settings))
