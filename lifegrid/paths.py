from __future__ import annotations

import os
from pathlib import Path

APP_DIR_NAME = "LifeGrid"
HOME_ENV_VAR = "LIFEGRID_HOME"
DATABASE_FILENAME = "lifegrid.sqlite3"


def data_directory() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        local_appdata = os.environ.get("LOCALAPPDATA")
        if local_appdata:
            base = Path(local_appdata)
        else:
            base = Path.home() / "AppData" / "Local"
        return base / APP_DIR_NAME
    return Path.home() / ".lifegrid"


def database_path(base: Path | None = None) -> Path:
    return (base or data_directory()) / DATABASE_FILENAME


def ensure_directories(base: Path | None = None) -> Path:
    directory = base or data_directory()
    directory.mkdir(parents=True, exist_ok=True)
    return directory
