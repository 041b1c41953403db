"""Shared fixtures: an in-memory SQLite connection with the test schema."""

import pytest

from sqlbridge import Connection, Model

SCHEMA = [
    """
    create table users (
        id integer primary key autoincrement,
        name text not null,
        email text,
        age integer,
        active integer default 1,
        settings text,
        created_at text,
        updated_at text
    )
    """,
    """
    create table posts (
        id integer primary key autoincrement,
        user_id integer,
        title text not null,
        views integer default 0,
        created_at text,
        updated_at text
    )
    """,
    """
    create table comments (
        id integer primary key autoincrement,
        post_id integer,
        body text,
        created_at text,
        updated_at text
    )
    """,
    """
    create table profiles (
        id integer primary key autoincrement,
        user_id integer,
        bio text,
        created_at text,
        updated_at text
    )
    """,
    """
    create table roles (
        id integer primary key autoincrement,
        name text not null
    )
    """,
    """
    create table role_user (
        user_id integer not null,
        role_id integer not null,
        granted_by text
    )
    """,
    """
    create table tags (
        code text primary key,
        label text
    )
    """,
    """
    create table events (
        id integer primary key autoincrement,
        starts_at text
    )
    """,
]


@pytest.fixture
def connection():
    """In-memory SQLite connection with every test table created."""
    conn = Connection("sqlite://")
    for statement in SCHEMA:
        conn.statement(statement)
    yield conn
    conn.disconnect()


@pytest.fixture
def db(connection):
    """Bind the connection to every model for the duration of a test."""
    Model.set_connection(connection)
    yield connection
    Model._connection = None


@pytest.fixture
def seeded(db):
    """Three users with posts, a profile and roles."""
    db.table("users").insert(
        [
            {"name": "Alice", "email": "alice@example.com", "age": 30, "active": 1},
            {"name": "Bob", "email": "bob@example.com", "age": 25, "active": 0},
            {"name": "Carol", "email": "carol@example.com", "age": 41, "active": 1},
        ]
    )
    db.table("posts").insert(
        [
            {"user_id": 1, "title": "First", "views": 10},
            {"user_id": 1, "title": "Second", "views": 5},
            {"user_id": 2, "title": "Third", "views": 7},
        ]
    )
    db.table("comments").insert(
        [
            {"post_id": 1, "body": "Nice"},
            {"post_id": 1, "body": "Agreed"},
            {"post_id": 3, "body": "Hmm"},
        ]
    )
    db.table("profiles").insert({"user_id": 1, "bio": "Alice's bio"})
    db.table("roles").insert([{"name": "admin"}, {"name": "editor"}, {"name": "viewer"}])
    db.table("role_user").insert(
        [
            {"user_id": 1, "role_id": 1, "granted_by": "root"},
            {"user_id": 1, "role_id": 2, "granted_by": "root"},
            {"user_id": 2, "role_id": 2, "granted_by": "alice"},
        ]
    )
    return db
