from caresync.db.base import Base
from caresync.db.session import get_db, engine, SessionLocal
from caresync.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
