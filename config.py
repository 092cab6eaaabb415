# config.py

import os
from dataclasses import dataclass
from typing import Optional

# Directory used for snapshots when no explicit path is given
DATA_DIR = "data"

# File written by 'exit' when no --backup path is given
BACKUP_FILE = os.path.join(DATA_DIR, "backup.txt")

# Width of each fixed-width field in the snapshot render
COLUMN_WIDTH = 15

PROMPT = "> "

# Environment overrides
ENV_BACKUP = "RELSTORE_BACKUP"
ENV_COLUMN_WIDTH = "RELSTORE_COLUMN_WIDTH"


@dataclass
class Config:
    """Runtime settings for a REPL session."""
    backup_path: Optional[str] = BACKUP_FILE
    column_width: int = COLUMN_WIDTH

    @classmethod
    def from_env(cls, environ=None) -> "Config":
        """
        Build a Config from environment variables, falling back to the defaults.

        An empty RELSTORE_BACKUP disables the backup written on exit.
        """
        environ = os.environ if environ is None else environ
        config = cls()
        if ENV_BACKUP in environ:
            config.backup_path = environ[ENV_BACKUP] or None
        if environ.get(ENV_COLUMN_WIDTH):
            try:
                config.column_width = max(1, int(environ[ENV_COLUMN_WIDTH]))
            except ValueError:
                raise ValueError(f"{ENV_COLUMN_WIDTH} must be an integer") from None
        return config
