"""Storage layer: PostgreSQL connection management."""

from tickisinator.storage.database import Database

__all__ = ["Database"]
