"""
sql-bridge - A fluent SQL query builder and relational ORM.

This package provides:
- QueryBuilder: chainable select/insert/update/delete compiled to parameterized SQL
- Connection / DatabaseManager: lazily opened SQLite, PostgreSQL and MySQL handles
- Model: active-record models with casts, dirty tracking and relations
- Eager loading of has-one, has-many, belongs-to and many-to-many relations

Usage:
    from sqlbridge import Connection, Model, relationship

    conn = Connection("sqlite:///app.db")
    Model.set_connection(conn)

    class User(Model):
        fillable = ["name"]

        @relationship
        def posts(self):
            return self.has_many("Post")

    users = User.with_("posts").where("name", "like", "A%").get()
"""

import logging

from .config import ConnectionConfig
from .database import Connection, DatabaseManager, QueryBuilder
from .exceptions import ConfigurationError, ExecutionError, NotFoundError, SQLBridgeError
from .orm import Cast, Model, ModelQueryBuilder, Page, Repository, relationship

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Cast",
    "ConfigurationError",
    "Connection",
    "ConnectionConfig",
    "DatabaseManager",
    "ExecutionError",
    "Model",
    "ModelQueryBuilder",
    "NotFoundError",
    "Page",
    "QueryBuilder",
    "Repository",
    "SQLBridgeError",
    "relationship",
]
