"""Preferences manager for pulp-bootstrap.

Remembers where the bootstrap settings file and the Clowder config live, in
the XDG Base Directory location ~/.config/pulp-bootstrap/preferences.json
"""
import json
from pathlib import Path
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

PREFERENCES_DIR = Path.home() / ".config" / "pulp-bootstrap"
PREFERENCES_FILE = PREFERENCES_DIR / "preferences.json"

SETTINGS_PATH = "settings_path"
CLOWDER_CONFIG_PATH = "clowder_config_path"
KNOWN_PREFERENCES = (SETTINGS_PATH, CLOWDER_CONFIG_PATH)


def _load_preferences() -> Dict[str, Any]:
    """
    Load preferences from JSON file.

    Returns:
        Dictionary of preferences, or empty dict if the file is missing or unreadable
    """
    if not PREFERENCES_FILE.exists():
        return {}

    try:
        with open(PREFERENCES_FILE, 'r') as f:
            preferences = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read preferences file {PREFERENCES_FILE}: {e}")
        return {}

    if not isinstance(preferences, dict):
        logger.error(f"Ignoring preferences file {PREFERENCES_FILE}: expected a JSON object")
        return {}
    return preferences


def _save_preferences(preferences: Dict[str, Any]) -> None:
    PREFERENCES_DIR.mkdir(parents=True, exist_ok=True)
    with open(PREFERENCES_FILE, 'w') as f:
        json.dump(preferences, f, indent=2)


def _check_key(key: str) -> None:
    if key not in KNOWN_PREFERENCES:
        raise KeyError(f"Unknown preference '{key}', expected one of: {', '.join(KNOWN_PREFERENCES)}")


def get_preference(key: str) -> Optional[str]:
    """Get preference value by key, or None if unset."""
    _check_key(key)
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    """
    Set preference value.

    Args:
        key: One of KNOWN_PREFERENCES
        value: Preference value

    Raises:
        KeyError: If the key is not a known preference
    """
    _check_key(key)
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Remove a preference; clearing an unset preference is a no-op."""
    _check_key(key)
    preferences = _load_preferences()
    if key in preferences:
        del preferences[key]
        _save_preferences(preferences)
        logger.info(f"Preference '{key}' cleared")
    else:
        logger.debug(f"Preference '{key}' not set, nothing to clear")
