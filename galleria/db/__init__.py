"""Database access: engine/session management, row level security, models."""

from galleria.db.session import Database, get_db

__all__ = ["Database", "get_db"]
