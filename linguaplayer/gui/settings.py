"""
Persistent settings for LinguaPlayer, stored through QSettings.
"""

from typing import Any, Dict, Optional

from PySide6.QtCore import QSettings


ORGANIZATION = "LinguaPlayer"
APPLICATION = "LinguaPlayer"

DEFAULT_SETTINGS: Dict[str, Any] = {
    # Boundary editing
    "min_duration": 2.0,
    # Waveform
    "window_segments": 5,
    "cursor_interval_ms": 16,
    # Transport
    "replay_threshold": 0.1,
    # Logging
    "log_level": "INFO",
    "log_file": "",
    # Last opened files
    "last_audio_path": "",
    "last_subtitle_path": "",
}


def open_settings() -> QSettings:
    return QSettings(ORGANIZATION, APPLICATION)


def _coerce(value: Any, default: Any) -> Any:
    # QSettings hands back strings for INI/plist backends
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(default, int):
        return int(float(value))
    if isinstance(default, float):
        return float(value)
    return str(value)


def load_settings(settings: Optional[QSettings] = None) -> Dict[str, Any]:
    """Read every known key, falling back to DEFAULT_SETTINGS on bad values."""
    settings = settings or open_settings()
    result: Dict[str, Any] = {}
    for key, default in DEFAULT_SETTINGS.items():
        raw = settings.value(key, default)
        if raw is None:
            result[key] = default
            continue
        try:
            result[key] = _coerce(raw, default)
        except (TypeError, ValueError):
            result[key] = default

    if result["min_duration"] <= 0:
        result["min_duration"] = DEFAULT_SETTINGS["min_duration"]
    if result["window_segments"] < 1:
        result["window_segments"] = DEFAULT_SETTINGS["window_segments"]
    if result["cursor_interval_ms"] < 1:
        result["cursor_interval_ms"] = DEFAULT_SETTINGS["cursor_interval_ms"]
    return result


def save_setting(key: str, value: Any, settings: Optional[QSettings] = None) -> None:
    if key not in DEFAULT_SETTINGS:
        raise KeyError(f"Unknown setting: {key}")
    settings = settings or open_settings()
    settings.setValue(key, value)
    settings.sync()
