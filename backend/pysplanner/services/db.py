"""
Database configuration and session management for the planner backend.

This module defines a SQLModel engine for the SQLite index of saved
plans.  The database lives in the configured storage directory unless
``PYSPLANNER_DATABASE_URL`` points elsewhere.  Keeping the engine here
isolates database configuration from the storage logic.
"""

from __future__ import annotations

from sqlmodel import Session, SQLModel, create_engine

from ..config import DATABASE_URL, STORAGE_DIR

STORAGE_DIR.mkdir(parents=True, exist_ok=True)

# SQLite connections are shared across FastAPI's worker threads.
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


def create_db_and_tables() -> None:
    """Create the saved-plan index table.

    Run from the app's startup hook; an index left by an earlier run
    is kept with its rows.
    """
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """Open a session on the saved-plan index.

    ``plans_store`` looks this up through the module on every call, so
    tests can point ``engine`` at a temporary database.
    """
    return Session(engine)
