"""
Configuration loading.

Layers, lowest precedence first:
    model defaults < user config < project config < BOARDSYNC_* env vars

User config lives at $XDG_CONFIG_HOME/boardsync/config.json and project
config at .boardsync.json in the project directory. The merged result is
validated once and cached for the rest of the process.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, NamedTuple

from .models import BoardSyncConfig

logger = logging.getLogger(__name__)

APP_DIR = "boardsync"
PROJECT_CONFIG_NAME = ".boardsync.json"

_config_cache: BoardSyncConfig | None = None


def _xdg_dir(var: str, *fallback: str) -> Path:
    value = os.environ.get(var)
    return Path(value) if value else Path.home().joinpath(*fallback)


def get_xdg_config_home() -> Path:
    """$XDG_CONFIG_HOME, or ~/.config."""
    return _xdg_dir("XDG_CONFIG_HOME", ".config")


def get_xdg_data_home() -> Path:
    """$XDG_DATA_HOME, or ~/.local/share."""
    return _xdg_dir("XDG_DATA_HOME", ".local", "share")


def get_user_config_path() -> Path:
    return get_xdg_config_home() / APP_DIR / "config.json"


def get_project_config_path(cwd: Path | None = None) -> Path:
    return (cwd or Path.cwd()) / PROJECT_CONFIG_NAME


def get_storage_path(config: BoardSyncConfig) -> Path:
    """
    Resolve the file backing the local data source.

    ``storage.path`` wins when set. Otherwise the file is named from the
    storage prefix and format version, so a format bump starts a new file
    instead of misreading an old one.
    """
    storage = config.storage
    if storage.path is not None:
        return Path(storage.path).expanduser()
    return get_xdg_data_home() / APP_DIR / f"{storage.prefix}{storage.version}_data.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Return ``base`` updated with ``override``, recursing into nested dicts.

    Neither argument is modified. Non-dict values, lists included, are
    replaced wholesale.
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Read a JSON object from ``path``.

    Returns:
        The object, or None when the file is missing, unreadable, not valid
        JSON, or holds something other than an object
    """
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config at %s: top level is not an object", path)
        return None
    return data


# ==============================================================================
# Environment overrides
# ==============================================================================


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() not in ("false", "0", "no", "off", "")


def _parse_positive_float(raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise ValueError("must be > 0")
    return value


def _parse_non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise ValueError("must be >= 0")
    return value


class EnvOverride(NamedTuple):
    """An environment variable mapped onto a config key."""

    var: str
    path: tuple[str, ...]
    parse: Callable[[str], Any] = str


ENV_OVERRIDES: tuple[EnvOverride, ...] = (
    EnvOverride("BOARDSYNC_DATA_SOURCE", ("data_source",), lambda raw: raw.strip().lower()),
    EnvOverride("BOARDSYNC_API_URL", ("api", "base_url")),
    EnvOverride("BOARDSYNC_API_TIMEOUT", ("api", "timeout"), _parse_positive_float),
    EnvOverride("BOARDSYNC_API_MAX_RETRIES", ("api", "max_retries"), _parse_non_negative_int),
    EnvOverride("BOARDSYNC_STORAGE_PATH", ("storage", "path")),
    EnvOverride("BOARDSYNC_SERIALIZE_MUTATIONS", ("store", "serialize_mutations"), _parse_bool),
    EnvOverride("BOARDSYNC_LOG_EVENTS", ("logging", "events"), _parse_bool),
)


def _nest(path: tuple[str, ...], value: Any) -> dict[str, Any]:
    head, *rest = path
    return {head: _nest(tuple(rest), value) if rest else value}


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Layer the BOARDSYNC_* variables in ``ENV_OVERRIDES`` over ``config_dict``.

    A variable whose value does not parse is logged and skipped, leaving
    the file-based value in place. The input dict is not modified.
    """
    result = config_dict
    for override in ENV_OVERRIDES:
        raw = os.environ.get(override.var)
        if not raw:
            continue
        try:
            value = override.parse(raw)
        except ValueError as e:
            logger.warning("Ignoring %s=%r: %s", override.var, raw, e)
            continue
        result = deep_merge(result, _nest(override.path, value))
    return result


# ==============================================================================
# Loading
# ==============================================================================


def get_default_config() -> dict[str, Any]:
    """The model defaults as a plain dict, the bottom layer of the merge."""
    return BoardSyncConfig().model_dump(mode="json", exclude_none=True)


def load_config(project_dir: Path | None = None, use_cache: bool = True) -> BoardSyncConfig:
    """
    Merge every configuration layer and validate the result.

    Args:
        project_dir: Directory holding .boardsync.json (defaults to cwd)
        use_cache: Return the config from an earlier call when there is one

    Returns:
        Validated configuration

    Raises:
        pydantic.ValidationError: If the merged values are invalid
    """
    global _config_cache

    if use_cache and _config_cache is not None:
        return _config_cache

    merged = get_default_config()
    for path in (get_user_config_path(), get_project_config_path(project_dir)):
        layer = load_json_file(path)
        if layer:
            logger.debug("Merging config from %s", path)
            merged = deep_merge(merged, layer)

    _config_cache = BoardSyncConfig(**apply_env_overrides(merged))
    return _config_cache


def clear_cache() -> None:
    """Forget the cached configuration so the next load re-reads every layer."""
    global _config_cache
    _config_cache = None
