"""Application context: configuration plus every runtime path derived from it.

Routers and services receive this object instead of individual path strings
or environment lookups.
"""

from __future__ import annotations

import os

from scribe.config import AppConfig


class AppContext:
    """Holds the loaded configuration and the directories it implies."""

    def __init__(self, *, cwd: str, config: AppConfig) -> None:
        self._cwd = cwd
        self.config = config

    @property
    def data_dir(self) -> str:
        return self.config.data_dir or os.path.join(self._cwd, "data")

    @property
    def database_path(self) -> str:
        return os.path.join(self.data_dir, "scribe.sqlite3")

    @property
    def blobs_dir(self) -> str:
        return os.path.join(self.data_dir, "blobs")

    # Logs stay in cwd, not in data_dir.
    @property
    def logs_dir(self) -> str:
        return os.path.join(self._cwd, "logs")

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        for d in (self.data_dir, self.blobs_dir, self.logs_dir):
            os.makedirs(d, exist_ok=True)
