import json
from pathlib import Path
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.util.misc import now_iso

_SCHEMA_VERSION = 1

#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.settings
DEFAULT_DATABASE_PATH = PATHS.database

# Default values for every settings key, and the type each one must load as.
_SETTINGS_DEFAULTS = {
    "database_path": None,
    "tick_interval_ms": 1000,
    "checkpoint_every_ticks": 1,
    "default_task_name": "New Task",
    "default_project_id": 1,
    "default_client_id": 1,
    "theme": "Light",
    "always_on_top": False,
    "show_compact_tracker": False,
    "pomodoro_minutes": 25,
}
_SETTINGS_TYPES = {
    "database_path": (str, type(None)),
    "tick_interval_ms": int,
    "checkpoint_every_ticks": int,
    "default_task_name": str,
    "default_project_id": int,
    "default_client_id": int,
    "theme": str,
    "always_on_top": bool,
    "show_compact_tracker": bool,
    "pomodoro_minutes": int,
}
# Numeric settings that must be at least this big to make sense.
_SETTINGS_MINIMUMS = {
    "tick_interval_ms": 100,
    "checkpoint_every_ticks": 1,
    "default_project_id": 1,
    "default_client_id": 1,
    "pomodoro_minutes": 1,
}

# Helper to return a truly fresh, default settings dict.
def build_default_settings():
    return {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        **_SETTINGS_DEFAULTS,
    }

# bool is a subclass of int, so `True` would otherwise pass as a tick interval.
def _has_type(value, expected):
    expected = expected if isinstance(expected, tuple) else (expected,)
    if isinstance(value, bool) and bool not in expected:
        return False
    return isinstance(value, expected)

# Where the task database lives, honouring a user override in settings.
def database_path(settings) -> Path:
    return Path(settings["database_path"]) if settings.get("database_path") else DEFAULT_DATABASE_PATH

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings.json, filling in and reporting any missing or wrongly-typed keys. A missing or unreadable
# file yields the defaults.
def load_settings():
    try:
        if not SETTINGS_PATH.exists():
            log.info("No existing settings.json found, loading default settings.")
            return build_default_settings()

        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            settings = json.load(f)
        if not isinstance(settings, dict):
            raise TypeError(f"settings.json holds a {type(settings).__name__}, not an object")
        defaulted_values = set()

        # Validate the meta dict
        if "meta" not in settings or not isinstance(settings["meta"], dict):
            defaulted_values.add("meta")
            settings["meta"] = {"saved_at": now_iso()}
        if not isinstance(settings["meta"].get("schema_version"), int):
            defaulted_values.add("meta.schema_version")
            settings["meta"]["schema_version"] = _SCHEMA_VERSION

        # Validate each setting's presence, type and lower bound
        for key, default in _SETTINGS_DEFAULTS.items():
            value = settings.get(key, default)
            if key not in settings or not _has_type(value, _SETTINGS_TYPES[key]):
                defaulted_values.add(key)
                settings[key] = default
            elif key in _SETTINGS_MINIMUMS and value < _SETTINGS_MINIMUMS[key]:
                defaulted_values.add(key)
                settings[key] = default
        if not settings["default_task_name"].strip():
            defaulted_values.add("default_task_name")
            settings["default_task_name"] = _SETTINGS_DEFAULTS["default_task_name"]

        # Log results
        if defaulted_values:
            log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing or invalid values that were "
                        f"defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
        return settings
    # Fall back to defaults in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.",
                    exc_info=True)
        return build_default_settings()

# Write the given settings to disk.
def save_settings(settings):
    settings.setdefault("meta", {})["saved_at"] = now_iso()
    settings["meta"].setdefault("schema_version", _SCHEMA_VERSION)
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===
