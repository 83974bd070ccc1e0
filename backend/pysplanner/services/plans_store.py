"""
Index of saved plans.

Saved plan documents live on disk as ``.pysplan`` files; this module
keeps a ``SavedPlanRecord`` row for each of them with the plan name,
the file location and timestamps so the editor can list and reopen
plans without scanning the storage directory.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Field, SQLModel, select

from . import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedPlanRecord(SQLModel, table=True):
    """Database row describing one saved plan document."""

    saved_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    file_path: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


def init_db() -> None:
    """Create the index tables if they do not exist yet."""
    db.create_db_and_tables()


def upsert_plan_record(saved_id: str, name: str, file_path: str) -> SavedPlanRecord:
    """Insert a record, or refresh the name, path and timestamp of an existing one."""
    with db.get_session() as session:
        record = session.get(SavedPlanRecord, saved_id)
        if record is None:
            record = SavedPlanRecord(saved_id=saved_id, name=name, file_path=file_path)
        else:
            record.name = name
            record.file_path = file_path
            record.updated_at = _utcnow()
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def get_plan_record(saved_id: str) -> Optional[SavedPlanRecord]:
    with db.get_session() as session:
        return session.get(SavedPlanRecord, saved_id)


def list_plan_records() -> List[SavedPlanRecord]:
    """Return all saved plans, most recently updated first."""
    with db.get_session() as session:
        statement = select(SavedPlanRecord).order_by(SavedPlanRecord.updated_at.desc())
        return list(session.exec(statement))


def delete_plan_record(saved_id: str) -> Optional[str]:
    """Delete a record and return its file path, or ``None`` if it did not exist."""
    with db.get_session() as session:
        record = session.get(SavedPlanRecord, saved_id)
        if record is None:
            return None
        file_path = record.file_path
        session.delete(record)
        session.commit()
        return file_path
