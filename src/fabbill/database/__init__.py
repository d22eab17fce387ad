"""Database layer for fabbill application."""

from fabbill.database.base import Database, TotalWriter
from fabbill.database.factories import create_sqlite_database

__all__ = ["Database", "TotalWriter", "create_sqlite_database"]
