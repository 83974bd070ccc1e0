"""
Local storage for saved plans.

Plans are written as ``.pysplan`` documents under
``<storage>/plans/{savedId}.pysplan`` and indexed in the database via
``plans_store``.  Writes go to a temporary file first and are moved into
place, so a crash never leaves a half-written document behind.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException

from ..config import PLAN_FILE_EXTENSION, STORAGE_DIR
from .plan_codec import decode_plan, encode_plan
from .plan_model import SplanContent
from .plans_store import (
    SavedPlanRecord,
    delete_plan_record,
    get_plan_record,
    upsert_plan_record,
)

logger = logging.getLogger(__name__)

# Directory for saved plan documents.  Created on demand.
PLANS_DIR = STORAGE_DIR / "plans"
PLANS_DIR.mkdir(parents=True, exist_ok=True)


def save_plan(plan: SplanContent, saved_id: Optional[str] = None) -> SavedPlanRecord:
    """Persist ``plan`` to disk and index it.

    Args:
        plan: Plan to save.
        saved_id: Identifier of an earlier save to overwrite.  A new
            identifier is generated when omitted.

    Returns:
        SavedPlanRecord: The index entry for the saved document.
    """
    saved_id = saved_id or uuid.uuid4().hex
    path = PLANS_DIR / f"{saved_id}{PLAN_FILE_EXTENSION}"
    temp_path = PLANS_DIR / f"tmp_{saved_id}"
    temp_path.write_text(encode_plan(plan, indent=2), encoding="utf-8")
    temp_path.replace(path)
    logger.info("Saved plan %r to %s", plan.name, path)
    return upsert_plan_record(saved_id, plan.name, str(path))


def load_plan(saved_id: str) -> SplanContent:
    """Load a saved plan.

    Raises:
        HTTPException: If no plan is saved under ``saved_id`` or its
            file has disappeared.
        MalformedDocument: If the stored document cannot be decoded.
    """
    record = get_plan_record(saved_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Saved plan not found")
    path = Path(record.file_path)
    if not path.is_file():
        logger.warning("Saved plan %s is indexed but %s is missing", saved_id, path)
        raise HTTPException(status_code=404, detail="Saved plan file not found")
    plan = decode_plan(path.read_text(encoding="utf-8"))
    logger.info("Loaded plan %r from %s", plan.name, path)
    return plan


def delete_saved_plan(saved_id: str) -> None:
    """Remove a saved plan's index entry and document."""
    file_path = delete_plan_record(saved_id)
    if file_path is None:
        raise HTTPException(status_code=404, detail="Saved plan not found")
    Path(file_path).unlink(missing_ok=True)
    logger.info("Deleted saved plan %s", saved_id)
