from .connection import Connection
from .manager import DatabaseManager
from .query import QueryBuilder

__all__ = [
    "Connection",
    "DatabaseManager",
    "QueryBuilder",
]
