"""Runtime settings: built-in defaults, ~/.prayertime/config.json, then env vars."""

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayertime")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")
ENV_PREFIX = "PRAYERTIME_"

ALADHAN_BASE = "https://api.aladhan.com/v1"

# Aladhan method codes: 1 = University of Islamic Sciences, Karachi, 2 = ISNA
METHOD_KARACHI = 1
METHOD_ISNA = 2

# Pakistan Standard Time, no daylight saving
DEFAULT_TIMEZONE = "Asia/Karachi"
DEFAULT_UTC_OFFSET = 5.0


@dataclass(frozen=True)
class Settings:
    timezone: str = DEFAULT_TIMEZONE
    utc_offset_hours: float = DEFAULT_UTC_OFFSET
    primary_url: str = ALADHAN_BASE
    primary_method: int = METHOD_KARACHI
    fallback_url: str = ALADHAN_BASE
    fallback_method: int = METHOD_ISNA
    request_timeout: float = 10.0
    asr_shadow_factor: int = 1
    sync_workers: int = 4
    cache_file: Optional[str] = None
    sync_marker_file: Optional[str] = None
    locations_file: Optional[str] = None

    @property
    def school(self) -> int:
        """Aladhan `school` selector for the configured Asr shadow factor."""
        return 1 if self.asr_shadow_factor == 2 else 0


def _coerce(name: str, raw, default):
    """Convert a raw config value to the type of the field's default."""
    if raw is None:
        return None
    if name in ("cache_file", "sync_marker_file", "locations_file"):
        return os.path.expanduser(str(raw))
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


def _load_file(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {path}: expected a JSON object")
        return {}
    return data


def load_settings(config_file: str = None, environ: dict = None) -> Settings:
    """
    Build Settings from defaults, then the JSON config file, then environment
    variables named PRAYERTIME_<FIELD>. Invalid values are logged and skipped.
    """
    if config_file is None:
        config_file = CONFIG_FILE
    if environ is None:
        environ = os.environ

    overrides = {}
    file_values = _load_file(config_file)
    for field in fields(Settings):
        default = field.default
        candidates = []
        if field.name in file_values:
            candidates.append((f"{config_file}:{field.name}", file_values[field.name]))
        env_name = ENV_PREFIX + field.name.upper()
        if env_name in environ:
            candidates.append((env_name, environ[env_name]))
        for origin, raw in candidates:
            try:
                overrides[field.name] = _coerce(field.name, raw, default)
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring invalid setting {origin}={raw!r}: {e}")

    settings = replace(Settings(), **overrides)
    if settings.asr_shadow_factor not in (1, 2):
        logger.warning(f"Unsupported asr_shadow_factor {settings.asr_shadow_factor}, using 1")
        settings = replace(settings, asr_shadow_factor=1)
    if settings.sync_workers < 1:
        settings = replace(settings, sync_workers=1)
    return settings
