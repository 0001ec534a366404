import os
import sys
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories if missing, and optionally error out when a path
# doesn't exist.
def ensure_directory(path: Path,must_exist=False):
    if must_exist:
        if not path.exists():
            raise FileNotFoundError(f"Required directory is missing: {path}")
        if not path.is_dir():
            raise NotADirectoryError(f"Expected a directory, got a file: {path}")
    else:
        path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the per-user data folder. An explicit TASKTIMER_DATA_DIR always wins, then the Windows roaming
# APPDATA folder, then the XDG data home everywhere else.
def resolve_data_dir() -> Path:
    override = os.getenv("TASKTIMER_DATA_DIR")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "TaskTimer"
    xdg = os.getenv("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / "tasktimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    root: Path
    data: Path
    logs: Path

    @property
    def settings(self) -> Path:
        return self.data / "settings.json"

    @property
    def database(self) -> Path:
        return self.data / "tasktimer.db"

    @staticmethod
    def build():
        # Folder for the install itself, no user-specific files, just runtime
        if getattr(sys, "frozen", False):
            root = Path(sys.executable).resolve().parent
        else:
            root = Path(__file__).resolve().parents[2]

        # Folder for all user-specific data: the task database, settings and logs
        data = ensure_directory(resolve_data_dir())
        logs = ensure_directory(data / "logs")

        return ProjectPaths(
            root = root,
            data = data,
            logs = logs,
        )
PATHS = ProjectPaths.build()
