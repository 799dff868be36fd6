"""
Database Module
"""
from .connection import (
    init_database,
    close_database,
    create_tables,
    get_db,
    get_session_factory,
    session_scope,
)
from .models import Base
from .repository import AutopilotRepository, ShopConfig

__all__ = [
    "init_database",
    "close_database",
    "create_tables",
    "get_db",
    "get_session_factory",
    "session_scope",
    "Base",
    "AutopilotRepository",
    "ShopConfig",
]
