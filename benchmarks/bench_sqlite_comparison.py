#!/usr/bin/env python3
"""
SQLite Performance Benchmarks

Compares sql-bridge against the raw sqlite3 driver and SQLAlchemy.

Operations measured:
- Insert One: Single row insert latency through the model layer
- Insert Bulk: One multi-row insert (1000 rows)
- Select Many: Filtered select of up to 1000 rows
- Eager Load: Users with their posts (one query per relation)

Usage:
    python benchmarks/bench_sqlite_comparison.py

    # Against a file on disk instead of memory
    SQLITE_PATH=/tmp/bench.db python benchmarks/bench_sqlite_comparison.py

Environment Variables:
    SQLITE_PATH: Database file. Default: a fresh file in the temp directory

Requires the ``bench`` extra for the SQLAlchemy numbers:
    pip install -e ".[bench]"
"""

import os
import sqlite3
import tempfile
import time
from pathlib import Path
from typing import Any

from sqlbridge import Connection, Model, relationship

# =====================
# Configuration
# =====================

SQLITE_PATH = os.environ.get("SQLITE_PATH") or str(Path(tempfile.mkdtemp()) / "sqlbridge_bench.db")

FRAMEWORKS = ("sqlbridge", "sqlite3", "sqlalchemy")

TABLE_SQL = """
    CREATE TABLE {table} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        age INTEGER NOT NULL,
        created_at TEXT,
        updated_at TEXT
    )
"""

POSTS_SQL = """
    CREATE TABLE {table} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        title TEXT NOT NULL,
        created_at TEXT,
        updated_at TEXT
    )
"""


class BenchUser(Model):
    fillable = ["name", "email", "age"]

    class Settings:
        table_name = "bench_users_sqlbridge"

    @relationship
    def posts(self):
        return self.has_many(BenchPost, "user_id")


class BenchPost(Model):
    fillable = ["user_id", "title"]

    class Settings:
        table_name = "bench_posts_sqlbridge"


def make_sqlalchemy_models():
    """Declare SQLAlchemy models lazily so the script runs without the extra."""
    from sqlalchemy import ForeignKey, Integer, String
    from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship as sa_relationship

    class Base(DeclarativeBase):
        pass

    class SAUser(Base):
        __tablename__ = "bench_users_sqlalchemy"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        name: Mapped[str] = mapped_column(String)
        email: Mapped[str] = mapped_column(String)
        age: Mapped[int] = mapped_column(Integer)
        posts: Mapped[list["SAPost"]] = sa_relationship()

    class SAPost(Base):
        __tablename__ = "bench_posts_sqlalchemy"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        user_id: Mapped[int] = mapped_column(ForeignKey("bench_users_sqlalchemy.id"))
        title: Mapped[str] = mapped_column(String)

    return SAUser, SAPost


# =====================
# Benchmark Operations
# =====================

def benchmark_insert_one(framework: str, handle: Any) -> float:
    """Benchmark single row insert."""
    iterations = 200
    total_time = 0.0

    if framework == "sqlbridge":
        for i in range(iterations):
            start = time.perf_counter()
            BenchUser.create(name=f"User{i}", email=f"user{i}@test.com", age=30)
            total_time += time.perf_counter() - start

    elif framework == "sqlite3":
        for i in range(iterations):
            start = time.perf_counter()
            handle.execute(
                "INSERT INTO bench_users_sqlite3 (name, email, age) VALUES (?, ?, ?)",
                (f"User{i}", f"user{i}@test.com", 30),
            )
            handle.commit()
            total_time += time.perf_counter() - start

    elif framework == "sqlalchemy":
        from sqlalchemy.orm import Session

        SAUser, _ = handle["models"]
        for i in range(iterations):
            start = time.perf_counter()
            with Session(handle["engine"]) as session:
                session.add(SAUser(name=f"User{i}", email=f"user{i}@test.com", age=30))
                session.commit()
            total_time += time.perf_counter() - start

    return (total_time / iterations) * 1000  # Convert to ms


def benchmark_bulk_insert(framework: str, handle: Any, count: int) -> float:
    """Benchmark bulk insert operations."""
    data = [
        {"name": f"User{i}", "email": f"user{i}@test.com", "age": 20 + (i % 50)}
        for i in range(count)
    ]

    if framework == "sqlbridge":
        start = time.perf_counter()
        BenchUser.query().insert(data)
        return (time.perf_counter() - start) * 1000

    elif framework == "sqlite3":
        start = time.perf_counter()
        handle.executemany(
            "INSERT INTO bench_users_sqlite3 (name, email, age) VALUES (?, ?, ?)",
            [(d["name"], d["email"], d["age"]) for d in data],
        )
        handle.commit()
        return (time.perf_counter() - start) * 1000

    elif framework == "sqlalchemy":
        from sqlalchemy.orm import Session

        SAUser, _ = handle["models"]
        start = time.perf_counter()
        with Session(handle["engine"]) as session:
            session.add_all([SAUser(**d) for d in data])
            session.commit()
        return (time.perf_counter() - start) * 1000

    raise ValueError(f"Unknown framework: {framework}")


def benchmark_select_many(framework: str, handle: Any) -> float:
    """Benchmark a filtered select of up to 1000 rows."""
    iterations = 20
    total_time = 0.0

    for _ in range(iterations):
        start = time.perf_counter()
        if framework == "sqlbridge":
            BenchUser.where("age", ">=", 25).limit(1000).get()
        elif framework == "sqlite3":
            handle.execute("SELECT * FROM bench_users_sqlite3 WHERE age >= ? LIMIT 1000", (25,)).fetchall()
        elif framework == "sqlalchemy":
            from sqlalchemy import select
            from sqlalchemy.orm import Session

            SAUser, _ = handle["models"]
            with Session(handle["engine"]) as session:
                session.scalars(select(SAUser).where(SAUser.age >= 25).limit(1000)).all()
        total_time += time.perf_counter() - start

    return (total_time / iterations) * 1000


def benchmark_eager_load(framework: str, handle: Any) -> float:
    """Benchmark loading 100 users with their posts."""
    iterations = 20
    total_time = 0.0

    for _ in range(iterations):
        start = time.perf_counter()
        if framework == "sqlbridge":
            BenchUser.with_("posts").limit(100).get()
        elif framework == "sqlite3":
            users = handle.execute("SELECT * FROM bench_users_sqlite3 LIMIT 100").fetchall()
            ids = [row[0] for row in users]
            placeholders = ", ".join("?" for _ in ids)
            handle.execute(
                f"SELECT * FROM bench_posts_sqlite3 WHERE user_id IN ({placeholders})", ids
            ).fetchall()
        elif framework == "sqlalchemy":
            from sqlalchemy import select
            from sqlalchemy.orm import Session, selectinload

            SAUser, _ = handle["models"]
            with Session(handle["engine"]) as session:
                session.scalars(select(SAUser).options(selectinload(SAUser.posts)).limit(100)).all()
        total_time += time.perf_counter() - start

    return (total_time / iterations) * 1000


# =====================
# Main Benchmark Runner
# =====================

def seed_posts(framework: str, handle: Any) -> None:
    rows = [{"user_id": 1 + (i % 100), "title": f"Post {i}"} for i in range(500)]
    if framework == "sqlbridge":
        BenchPost.query().insert(rows)
    elif framework == "sqlite3":
        handle.executemany(
            "INSERT INTO bench_posts_sqlite3 (user_id, title) VALUES (?, ?)",
            [(r["user_id"], r["title"]) for r in rows],
        )
        handle.commit()
    elif framework == "sqlalchemy":
        from sqlalchemy.orm import Session

        _, SAPost = handle["models"]
        with Session(handle["engine"]) as session:
            session.add_all([SAPost(**r) for r in rows])
            session.commit()


def run_benchmarks():
    """Run all benchmarks and print a report."""
    print("=" * 80)
    print("SQLite Performance Benchmarks")
    print("=" * 80)
    print(f"Database: {SQLITE_PATH}")
    print("=" * 80)
    print()

    results: dict[str, dict[str, float]] = {}
    handles: dict[str, Any] = {}

    print("Initializing connections...")

    conn = Connection({"driver": "sqlite", "database": SQLITE_PATH})
    Model.set_connection(conn)
    handles["sqlbridge"] = conn

    raw = sqlite3.connect(SQLITE_PATH)
    handles["sqlite3"] = raw

    try:
        from sqlalchemy import create_engine

        engine = create_engine(f"sqlite:///{SQLITE_PATH}")
        handles["sqlalchemy"] = {"engine": engine, "models": make_sqlalchemy_models()}
    except ImportError:
        print("Warning: SQLAlchemy not installed, skipping SQLAlchemy benchmarks")

    frameworks = [fw for fw in FRAMEWORKS if fw in handles]

    print("Creating benchmark tables...")
    for fw in frameworks:
        for template, name in ((TABLE_SQL, "users"), (POSTS_SQL, "posts")):
            table = f"bench_{name}_{fw}"
            conn.statement(f"DROP TABLE IF EXISTS {table}")
            conn.statement(template.format(table=table))
    print()

    print("Benchmarking: Insert One (200 iterations)")
    results["insert_one"] = {}
    for fw in frameworks:
        time_ms = benchmark_insert_one(fw, handles[fw])
        results["insert_one"][fw] = time_ms
        print(f"  {fw:15s}: {time_ms:8.2f} ms")
    print()

    print("Benchmarking: Bulk Insert 1000 rows")
    results["bulk_insert_1000"] = {}
    for fw in frameworks:
        time_ms = benchmark_bulk_insert(fw, handles[fw], 1000)
        results["bulk_insert_1000"][fw] = time_ms
        print(f"  {fw:15s}: {time_ms:8.2f} ms")
    print()

    print("Benchmarking: Select Many (limit 1000)")
    results["select_many"] = {}
    for fw in frameworks:
        time_ms = benchmark_select_many(fw, handles[fw])
        results["select_many"][fw] = time_ms
        print(f"  {fw:15s}: {time_ms:8.2f} ms")
    print()

    print("Benchmarking: Eager Load (100 users with posts)")
    results["eager_load"] = {}
    for fw in frameworks:
        seed_posts(fw, handles[fw])
        time_ms = benchmark_eager_load(fw, handles[fw])
        results["eager_load"][fw] = time_ms
        print(f"  {fw:15s}: {time_ms:8.2f} ms")
    print()

    print("Cleaning up...")
    conn.disconnect()
    raw.close()
    if "sqlalchemy" in handles:
        handles["sqlalchemy"]["engine"].dispose()

    print()
    print("=" * 80)
    print("Benchmark Complete")
    print("=" * 80)

    print()
    print("SUMMARY:")
    print("-" * 80)

    for operation, op_results in results.items():
        print(f"\n{operation}:")
        baseline = op_results.get("sqlalchemy", op_results.get("sqlite3"))
        for fw, time_ms in op_results.items():
            speedup = baseline / time_ms if baseline and time_ms else 1.0
            print(f"  {fw:15s}: {time_ms:8.2f} ms  ({speedup:.2f}x)")


if __name__ == "__main__":
    run_benchmarks()
