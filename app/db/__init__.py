"""Database engine, sessions and transactions."""

from app.db.database import Base, Database

__all__ = ["Base", "Database"]
