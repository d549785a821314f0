from trustprint.database.base import Base, DateTimeMixin
from trustprint.database.engine import (
    create_engine,
    create_session_factory,
    create_tables,
)

__all__ = [
    "Base",
    "DateTimeMixin",
    "create_engine",
    "create_session_factory",
    "create_tables",
]
