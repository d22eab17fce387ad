"""Database construction helpers."""

import os
from pathlib import Path
from typing import Optional

from fabbill.database.sqlalchemy_db import SQLAlchemyDatabase

DEFAULT_DB_PATH = Path.home() / ".fabbill" / "fabbill.db"


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite-backed database.

    The path is taken from ``database_path``, then FABBILL_DB_PATH, then
    ``~/.fabbill/fabbill.db``. The parent directory is created if missing.
    """
    path = Path(database_path or os.environ.get("FABBILL_DB_PATH") or DEFAULT_DB_PATH)
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return SQLAlchemyDatabase(f"sqlite:///{path}")
