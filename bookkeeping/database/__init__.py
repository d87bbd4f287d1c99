from .connection import get_db
from .migrations import run_migrations
from .repository import SqliteRepository
from .schema import init_db

__all__ = ["get_db", "init_db", "run_migrations", "SqliteRepository"]
