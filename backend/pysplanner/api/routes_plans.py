"""
Routes for editing, previewing and storing plans.

Each plan being edited lives in an in-memory ``PlanSession`` keyed by a
``planId``.  The endpoints below are thin commands over that session:
they translate request bodies into model values, run the command and
return a read-only snapshot of the plan.  Model errors propagate as
``PlanError`` subclasses and are turned into HTTP responses by the
handler registered in ``main.py``.

Saved plans are a separate namespace (``/saved-plans``): saving writes
the session's plan to storage, and opening a saved plan starts a new
session from the stored document.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, File, HTTPException, Query, Response, UploadFile

from ..config import CURVE_DENSITY, CURVE_TENSION, PLAN_FILE_EXTENSION
from ..services.codegen import file_stem
from ..services.path_metrics import curve_metrics
from ..services.plan_codec import decode_plan, encode_plan, plan_to_document
from ..services.plan_model import Action, DriveBase, Point, SplanContent, create_plan
from ..services.plans_store import list_plan_records
from ..services.session import CommandResult, PlanSession
from ..services.storage import delete_saved_plan, load_plan, save_plan
from .models import (
    ActionRequest,
    ActiveRunRequest,
    CurveResponse,
    DriveBaseModel,
    PlanCreateRequest,
    PlanDocument,
    PlanResponse,
    PointRequest,
    RunCreateRequest,
    RunRenameRequest,
    SavedPlanInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Editing sessions keyed by planId.  Sessions are not persisted; a
# plan survives a restart only if it was saved.
session_registry: Dict[str, PlanSession] = {}


def get_plan_session(plan_id: str) -> PlanSession:
    session = session_registry.get(plan_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return session


def _open_session(plan: SplanContent) -> str:
    plan_id = uuid.uuid4().hex
    session_registry[plan_id] = PlanSession(plan)
    logger.info("Opened plan %r as %s", plan.name, plan_id)
    return plan_id


def _plan_response(plan_id: str, result: CommandResult) -> PlanResponse:
    return PlanResponse(
        planId=plan_id,
        activeRun=result.active_run,
        plan=PlanDocument.model_validate(plan_to_document(result.plan)),
        warnings=list(result.warnings),
    )


def _drive_base(body: DriveBaseModel) -> DriveBase:
    return DriveBase(
        left_motor_port=body.leftMotorPort,
        right_motor_port=body.rightMotorPort,
        wheel_diameter=body.wheelDiameter,
        axle_track=body.axleTrack,
    )


def _saved_info(record) -> SavedPlanInfo:
    return SavedPlanInfo(
        savedId=record.saved_id,
        name=record.name,
        filename=f"{record.saved_id}{PLAN_FILE_EXTENSION}",
        createdAt=record.created_at,
        updatedAt=record.updated_at,
    )


# ---------------------------------------------------------------------------
# Plan lifecycle
# ---------------------------------------------------------------------------


@router.post("/plans", response_model=PlanResponse, status_code=201)
async def create_plan_session(body: PlanCreateRequest) -> PlanResponse:
    """Create an empty plan and open an editing session for it."""
    plan = create_plan(
        name=body.name,
        left_motor_port=body.driveBase.leftMotorPort,
        right_motor_port=body.driveBase.rightMotorPort,
        wheel_diameter=body.driveBase.wheelDiameter,
        axle_track=body.driveBase.axleTrack,
        hub_type=body.hubType,
    )
    plan_id = _open_session(plan)
    return _plan_response(plan_id, session_registry[plan_id].snapshot())


@router.post("/plans/import", response_model=PlanResponse, status_code=201)
async def import_plan(file: UploadFile = File(...)) -> PlanResponse:
    """Open a session from an uploaded ``.pysplan`` document.

    The whole document must be valid; a malformed file is rejected
    with 400 and no session is created.
    """
    plan = decode_plan(await file.read())
    plan_id = _open_session(plan)
    return _plan_response(plan_id, session_registry[plan_id].snapshot())


@router.get("/plans/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: str) -> PlanResponse:
    return _plan_response(plan_id, get_plan_session(plan_id).snapshot())


@router.delete("/plans/{plan_id}", status_code=204)
async def close_plan(plan_id: str) -> None:
    """Discard an editing session.  Unsaved changes are lost."""
    get_plan_session(plan_id)
    del session_registry[plan_id]
    return None


@router.get("/plans/{plan_id}/export")
async def export_plan(plan_id: str) -> Response:
    """Download the plan as a ``.pysplan`` document."""
    plan = get_plan_session(plan_id).plan
    filename = f"{file_stem(plan.name)}{PLAN_FILE_EXTENSION}"
    return Response(
        content=encode_plan(plan, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/plans/{plan_id}/drive-base", response_model=PlanResponse)
async def set_drive_base(plan_id: str, body: DriveBaseModel) -> PlanResponse:
    session = get_plan_session(plan_id)
    return _plan_response(plan_id, session.set_drive_base(_drive_base(body)))


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


@router.post("/plans/{plan_id}/runs", response_model=PlanResponse, status_code=201)
async def add_run(plan_id: str, body: RunCreateRequest) -> PlanResponse:
    """Append a run; the new run becomes the active one."""
    return _plan_response(plan_id, get_plan_session(plan_id).add_run(body.name))


@router.patch("/plans/{plan_id}/runs/{run_index}", response_model=PlanResponse)
async def rename_run(plan_id: str, run_index: int, body: RunRenameRequest) -> PlanResponse:
    return _plan_response(plan_id, get_plan_session(plan_id).rename_run(run_index, body.name))


@router.delete("/plans/{plan_id}/runs/{run_index}", response_model=PlanResponse)
async def remove_run(plan_id: str, run_index: int) -> PlanResponse:
    return _plan_response(plan_id, get_plan_session(plan_id).remove_run(run_index))


@router.put("/plans/{plan_id}/active-run", response_model=PlanResponse)
async def select_run(plan_id: str, body: ActiveRunRequest) -> PlanResponse:
    return _plan_response(plan_id, get_plan_session(plan_id).select_run(body.runIndex))


# ---------------------------------------------------------------------------
# Points and actions
# ---------------------------------------------------------------------------


@router.post("/plans/{plan_id}/runs/{run_index}/points", response_model=PlanResponse, status_code=201)
async def add_point(plan_id: str, run_index: int, body: PointRequest) -> PlanResponse:
    """Add a waypoint to a run.

    The response lists a warning once the run reaches the soft point
    limit; at the hard limit the request fails with 409.
    """
    session = get_plan_session(plan_id)
    result = session.add_point(Point(body.x, body.y), run_index=run_index, index=body.index)
    return _plan_response(plan_id, result)


@router.put("/plans/{plan_id}/runs/{run_index}/points/{point_index}", response_model=PlanResponse)
async def replace_point(plan_id: str, run_index: int, point_index: int, body: PointRequest) -> PlanResponse:
    session = get_plan_session(plan_id)
    return _plan_response(plan_id, session.replace_point(point_index, Point(body.x, body.y), run_index=run_index))


@router.delete("/plans/{plan_id}/runs/{run_index}/points/{point_index}", response_model=PlanResponse)
async def remove_point(plan_id: str, run_index: int, point_index: int) -> PlanResponse:
    """Remove a waypoint and every action anchored to it."""
    session = get_plan_session(plan_id)
    return _plan_response(plan_id, session.remove_point(point_index, run_index=run_index))


@router.post("/plans/{plan_id}/runs/{run_index}/actions", response_model=PlanResponse, status_code=201)
async def add_action(plan_id: str, run_index: int, body: ActionRequest) -> PlanResponse:
    action = Action(
        anchor_index=body.anchorIndex,
        operation_name=body.operationName,
        arguments=tuple(body.arguments),
        blocking=body.blocking,
    )
    return _plan_response(plan_id, get_plan_session(plan_id).add_action(action, run_index=run_index))


@router.delete("/plans/{plan_id}/runs/{run_index}/actions/{action_index}", response_model=PlanResponse)
async def remove_action(plan_id: str, run_index: int, action_index: int) -> PlanResponse:
    session = get_plan_session(plan_id)
    return _plan_response(plan_id, session.remove_action(action_index, run_index=run_index))


# ---------------------------------------------------------------------------
# Curve preview
# ---------------------------------------------------------------------------


@router.get("/plans/{plan_id}/runs/{run_index}/curve", response_model=CurveResponse)
async def get_curve(
    plan_id: str,
    run_index: int,
    tension: float = Query(CURVE_TENSION, ge=0.0, le=2.0),
    density: float = Query(CURVE_DENSITY, ge=0.0, le=1.0),
    closed: bool = False,
) -> CurveResponse:
    """Interpolate the run's waypoints for drawing.

    Runs with fewer than two waypoints are returned unchanged.
    """
    session = get_plan_session(plan_id)
    points = session.curve(run_index, tension=tension, density=density, closed=closed)
    metadata = curve_metrics(points)
    metadata.update(
        {
            "tension": tension,
            "density": density,
            "closed": closed,
            "controlPoints": len(session.plan.run(run_index).points),
        }
    )
    return CurveResponse(
        planId=plan_id,
        runIndex=run_index,
        points=[p.as_pair() for p in points],
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Saved plans
# ---------------------------------------------------------------------------


@router.post("/plans/{plan_id}/save", response_model=SavedPlanInfo, status_code=201)
async def save_plan_session(
    plan_id: str,
    savedId: Optional[str] = Query(None, pattern=r"^[A-Za-z0-9_-]{1,64}$"),
) -> SavedPlanInfo:
    """Save the plan to server storage.

    Pass ``savedId`` to overwrite an earlier save instead of creating a
    new entry.
    """
    record = save_plan(get_plan_session(plan_id).plan, saved_id=savedId)
    return _saved_info(record)


@router.get("/saved-plans", response_model=List[SavedPlanInfo])
async def list_saved_plans() -> List[SavedPlanInfo]:
    return [_saved_info(r) for r in list_plan_records()]


@router.post("/saved-plans/{saved_id}/open", response_model=PlanResponse, status_code=201)
async def open_saved_plan(saved_id: str) -> PlanResponse:
    """Start an editing session from a saved plan."""
    plan_id = _open_session(load_plan(saved_id))
    return _plan_response(plan_id, session_registry[plan_id].snapshot())


@router.delete("/saved-plans/{saved_id}", status_code=204)
async def delete_saved(saved_id: str) -> None:
    delete_saved_plan(saved_id)
    return None
