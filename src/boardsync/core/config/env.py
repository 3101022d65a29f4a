"""Layered .env loading.

Sources, lowest precedence first:
- $XDG_CONFIG_HOME/boardsync/.env
- .env and .env.local in the project directory
- the file named by BOARDSYNC_ENV_FILE, if set
- the process environment, which .env files never override

Typical use is keeping BOARDSYNC_API_URL or BOARDSYNC_DATA_SOURCE per project
without exporting them in the shell.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_FILE_VAR = "BOARDSYNC_ENV_FILE"


def _read_env(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    return {k: v for k, v in dotenv_values(path).items() if k and v is not None}


def default_env_paths(project_dir: Path) -> list[Path]:
    """Env files in precedence order (later files win)."""
    xdg_home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    paths = [
        xdg_home / "boardsync" / ".env",
        project_dir / ".env",
        project_dir / ".env.local",
    ]
    if explicit := os.environ.get(ENV_FILE_VAR):
        paths.append(Path(explicit).expanduser())
    return paths


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> dict[str, Path]:
    """Apply .env files to ``os.environ``.

    Args:
        project_dir: Directory holding the project .env files (defaults to cwd)
        user_env_paths: Replace the user-level files
        project_env_paths: Replace the project-level files

    Returns:
        Each key that was set, mapped to the file it came from
    """
    defaults = default_env_paths(project_dir or Path.cwd())
    user = list(user_env_paths) if user_env_paths is not None else defaults[:1]
    project = list(project_env_paths) if project_env_paths is not None else defaults[1:]

    preexisting = set(os.environ)
    applied: dict[str, Path] = {}
    for path in [*user, *project]:
        for key, value in _read_env(Path(path)).items():
            if key in preexisting:
                continue
            os.environ[key] = value
            applied[key] = Path(path)

    for key, path in applied.items():
        logger.debug("Loaded %s from %s", key, path)
    return applied
