import json
import logging
import os
from copy import deepcopy
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

SETTINGS_FILE = Path("data/certificate_settings.json")

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "participants_source": "data/participants.json",
    "background_source": "assets/certificate-bg.png",
    "event_label": "Sadri-Marathon-2025",

    # Seconds.
    "background_timeout": 3.0,
    "pacing_delay": 0.8,
    "request_timeout": 10.0,

    # Canvas geometry; the name is centred horizontally.
    "canvas_width": 800,
    "canvas_height": 600,
    "name_y": 465,
    "name_max_width": 300,
    "name_max_font_size": 36,
    "name_min_font_size": 16,
    "name_font_step": 2,

    "font_path": "assets/Inter-Bold.ttf",
    "text_color": "#1f2937",
    "gradient_start": "#f8fafc",
    "gradient_end": "#e2e8f0",
    "border_color": "#0d9488",
    "border_width": 8,
    "border_inset": 20,
}

# Environment variable -> settings key.
ENV_OVERRIDES = {
    "CERT_PARTICIPANTS_SOURCE": "participants_source",
    "CERT_BACKGROUND_SOURCE": "background_source",
    "CERT_EVENT_LABEL": "event_label",
    "CERT_PACING_DELAY": "pacing_delay",
    "CERT_BACKGROUND_TIMEOUT": "background_timeout",
}


@dataclass(frozen=True)
class CertificateSettings:
    participants_source: str
    background_source: str
    event_label: str
    background_timeout: float
    pacing_delay: float
    request_timeout: float
    canvas_width: int
    canvas_height: int
    name_y: int
    name_max_width: int
    name_max_font_size: int
    name_min_font_size: int
    name_font_step: int
    font_path: str
    text_color: str
    gradient_start: str
    gradient_end: str
    border_color: str
    border_width: int
    border_inset: int

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> "CertificateSettings":
        """Build settings from a (possibly partial) dict, coercing to default types."""
        out: Dict[str, Any] = {}
        for f in fields(cls):
            default = DEFAULT_SETTINGS[f.name]
            raw = values.get(f.name, default)
            out[f.name] = _coerce(f.name, raw, default)
        _clamp_font_sizes(out)
        return cls(**out)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(key: str, raw: Any, default: Any) -> Any:
    # bool is an int subclass; none of the settings are booleans.
    kind = type(default)
    if isinstance(raw, kind) and not isinstance(raw, bool):
        return raw
    try:
        if kind is int:
            return int(float(raw))
        if kind is float:
            return float(raw)
        return str(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid value %r for setting %s; using default %r", raw, key, default)
        return default


def _clamp_font_sizes(values: Dict[str, Any]) -> None:
    # step >= 1, 1 <= floor <= max size.
    clamped = {
        "name_font_step": max(1, values["name_font_step"]),
        "name_max_font_size": max(1, values["name_max_font_size"]),
    }
    clamped["name_min_font_size"] = max(1, min(values["name_min_font_size"], clamped["name_max_font_size"]))
    for key, val in clamped.items():
        if values[key] != val:
            logger.warning("Setting %s=%r is out of range; using %r", key, values[key], val)
            values[key] = val


def load_settings(path: Optional[str | Path] = None) -> CertificateSettings:
    """Load certificate settings: defaults, then the JSON file, then environment."""
    merged = deepcopy(DEFAULT_SETTINGS)
    settings_file = Path(path) if path else SETTINGS_FILE

    if settings_file.exists():
        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read settings file %s: %s", settings_file, exc)
            loaded = {}

        if not isinstance(loaded, dict):
            logger.warning("Settings file %s is not a JSON object; ignoring it", settings_file)
            loaded = {}

        for k, v in loaded.items():
            if k not in DEFAULT_SETTINGS:
                logger.warning("Ignoring unknown setting %r in %s", k, settings_file)
                continue
            merged[k] = v

    for env_name, key in ENV_OVERRIDES.items():
        val = os.environ.get(env_name)
        if val:
            merged[key] = val

    return CertificateSettings.from_mapping(merged)
