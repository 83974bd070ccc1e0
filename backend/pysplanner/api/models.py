"""
Pydantic data models for the path planner API.

Two families of schemas live here.  The ``*Document`` models describe
the persisted ``.pysplan`` format and are used by the plan codec to
check a document's structure before the validating model constructors
run.  The request/response models define the HTTP contract used by the
editor front-end.

Points are always exchanged as ``[x, y]`` pairs in documents and
responses; only request bodies that add or move a single point use
keyed ``x``/``y`` fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr

from ..services.plan_model import HubType

Real = Union[StrictInt, StrictFloat]
PointPair = Tuple[Real, Real]
ArgumentValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


# ---------------------------------------------------------------------------
# Persisted document
# ---------------------------------------------------------------------------


class DriveBaseDocument(BaseModel):
    """Drive base as stored in a plan document."""

    leftMotorPort: StrictStr
    rightMotorPort: StrictStr
    wheelDiameter: Real
    axleTrack: Real


class ActionDocument(BaseModel):
    """Action as stored in a plan document.

    The anchor is stored by value together with its index in the
    owning run.  Older documents carry only the value.
    """

    anchorPoint: PointPair
    anchorIndex: Optional[StrictInt] = None
    operationName: StrictStr
    arguments: List[ArgumentValue]
    blocking: StrictBool = False


class RunDocument(BaseModel):
    name: StrictStr
    points: List[PointPair]
    actions: List[ActionDocument]


class PlanDocument(BaseModel):
    """Top-level ``.pysplan`` document."""

    name: StrictStr
    hubType: Optional[HubType] = None
    driveBase: DriveBaseDocument
    runs: List[RunDocument]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class DriveBaseModel(BaseModel):
    """Drive base supplied when creating a plan or replacing its drive base."""

    leftMotorPort: str = Field(..., description="Port letter of the left motor")
    rightMotorPort: str = Field(..., description="Port letter of the right motor")
    wheelDiameter: float = Field(..., description="Wheel diameter in millimetres")
    axleTrack: float = Field(..., description="Axle track in millimetres")


class PlanCreateRequest(BaseModel):
    """Request body for creating a new plan."""

    name: str = Field(..., description="Display name of the plan")
    driveBase: DriveBaseModel
    hubType: Optional[HubType] = Field(default=None, description="Hub the plan targets, if known")


class RunCreateRequest(BaseModel):
    name: str = Field(..., description="Name of the new run")


class RunRenameRequest(BaseModel):
    name: str = Field(..., description="New name for the run")


class PointRequest(BaseModel):
    """A single waypoint in field-map coordinates."""

    x: float
    y: float
    index: Optional[int] = Field(
        default=None,
        description="Position to insert the point at; appended when omitted",
    )


class ActionRequest(BaseModel):
    """Request body for attaching an action to a waypoint."""

    anchorIndex: int = Field(..., description="Index of the waypoint the action runs at")
    operationName: str = Field(..., description="Robot-side routine to call")
    arguments: List[ArgumentValue] = Field(
        default_factory=list, description="Positional arguments forwarded verbatim"
    )
    blocking: bool = Field(default=False, description="Whether the robot waits for the routine")


class ActiveRunRequest(BaseModel):
    runIndex: int = Field(..., description="Index of the run to make active")


class GenerateRequest(BaseModel):
    """Request body for generating a hub script."""

    hub: HubType = Field(..., description="Hub to generate code for")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PlanResponse(BaseModel):
    """Read-only snapshot of a plan held by an editing session."""

    planId: str = Field(..., description="Identifier of the editing session")
    activeRun: Optional[int] = Field(default=None, description="Index of the selected run")
    plan: PlanDocument
    warnings: List[str] = Field(
        default_factory=list, description="Non-fatal warnings raised by the last command"
    )


class CurveResponse(BaseModel):
    """Interpolated curve through the waypoints of one run."""

    planId: str
    runIndex: int
    points: List[Tuple[float, float]] = Field(..., description="Interpolated [x, y] points")
    metadata: Dict[str, Any] = Field(
        ..., description="Curve statistics and the interpolation parameters used"
    )


class SavedPlanInfo(BaseModel):
    """Summary of a plan stored on the server."""

    savedId: str = Field(..., description="Identifier of the stored plan")
    name: str = Field(..., description="Plan name at the time it was saved")
    filename: str = Field(..., description="File name of the stored document")
    createdAt: datetime
    updatedAt: datetime
