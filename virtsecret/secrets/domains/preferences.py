"""Preferences manager for virtsecret.

Persistent user preferences live in the XDG Base Directory location:
~/.config/virtsecret/preferences.json

The only preference today is CONFIG_PATH, the config file to load instead of
~/.config/virtsecret/config.yml. Unknown keys are rejected so a typo cannot
silently create a preference nothing reads.
"""
import json
from pathlib import Path
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "virtsecret"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

CONFIG_PATH = "config_path"
KNOWN_KEYS = frozenset({CONFIG_PATH})


def _check_key(key: str) -> None:
    if key not in KNOWN_KEYS:
        raise ValueError(f"Unknown preference '{key}'. Known preferences: {', '.join(sorted(KNOWN_KEYS))}")


def _load_preferences() -> Dict[str, Any]:
    """
    Read the preferences file.

    A missing, unreadable or corrupt file counts as no preferences; entries
    with unknown keys are dropped with a warning.
    """
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse preferences file {PREFERENCES_FILE}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Preferences file {PREFERENCES_FILE} does not hold a JSON object, ignoring it")
        return {}

    unknown = set(data) - KNOWN_KEYS
    if unknown:
        logger.warning(f"Ignoring unknown preferences in {PREFERENCES_FILE}: {', '.join(sorted(unknown))}")
    return {key: value for key, value in data.items() if key in KNOWN_KEYS}


def _save_preferences(preferences: Dict[str, Any]) -> None:
    try:
        PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
        with open(PREFERENCES_FILE, 'w') as f:
            json.dump(preferences, f, indent=2)
    except OSError as e:
        logger.error(f"Failed to save preferences to {PREFERENCES_FILE}: {e}")
        raise


def get_preference(key: str) -> Optional[str]:
    _check_key(key)
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    _check_key(key)
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove a preference. Clearing one that is not set is a no-op."""
    _check_key(key)
    preferences = _load_preferences()
    if key not in preferences:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
        return
    del preferences[key]
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' cleared")


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()


def get_config_path() -> Optional[Path]:
    """Config file chosen with 'virtsecret config set-path', if any."""
    value = get_preference(CONFIG_PATH)
    return Path(value) if value else None


def set_config_path(path: Path) -> Path:
    """
    Remember a config file path, stored absolute.

    Returns:
        The resolved path that was stored
    """
    resolved = Path(path).expanduser().resolve()
    set_preference(CONFIG_PATH, str(resolved))
    return resolved


def clear_config_path() -> None:
    clear_preference(CONFIG_PATH)
