"""
Plan persistence codec.

Plans are stored as a single JSON value::

    {
      "name": "...",
      "hubType": "Spike" | "EV3" | null,
      "driveBase": {"leftMotorPort": "A", "rightMotorPort": "B",
                    "wheelDiameter": 56.0, "axleTrack": 112.0},
      "runs": [
        {"name": "...",
         "points": [[x, y], ...],
         "actions": [{"anchorPoint": [x, y], "anchorIndex": i,
                      "operationName": "...", "arguments": [...], "blocking": false}]}
      ]
    }

Points are two-element arrays, never keyed objects.  Actions store
their anchor both by value and by index, so a run that passes the same
coordinates twice keeps each action on the right waypoint.  The index
must name a point equal to the value.  Documents without an index
resolve the anchor to the first point with the same coordinates.

Decoding is all-or-nothing: the document's structure is checked with
the pydantic ``PlanDocument`` schema and every entity is then rebuilt
through the validating model constructors.  Any failure raises
``MalformedDocument`` and no partial plan is returned.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..api.models import ActionDocument, PlanDocument, RunDocument
from .errors import MalformedDocument, PlanError
from .plan_model import Action, DriveBase, Point, Run, SplanContent

logger = logging.getLogger(__name__)


def _run_to_document(run: Run) -> Dict[str, Any]:
    return {
        "name": run.name,
        "points": [list(p.as_pair()) for p in run.points],
        "actions": [
            {
                "anchorPoint": list(run.anchor_point(a).as_pair()),
                "anchorIndex": a.anchor_index,
                "operationName": a.operation_name,
                "arguments": list(a.arguments),
                "blocking": a.blocking,
            }
            for a in run.actions
        ],
    }


def plan_to_document(plan: SplanContent) -> Dict[str, Any]:
    """Return the JSON-ready document for ``plan``."""
    db = plan.drive_base
    return {
        "name": plan.name,
        "hubType": plan.hub_type.value if plan.hub_type is not None else None,
        "driveBase": {
            "leftMotorPort": db.left_motor_port,
            "rightMotorPort": db.right_motor_port,
            "wheelDiameter": db.wheel_diameter,
            "axleTrack": db.axle_track,
        },
        "runs": [_run_to_document(run) for run in plan.runs],
    }


def encode_plan(plan: SplanContent, indent: Optional[int] = None) -> str:
    """Serialise ``plan`` to JSON text."""
    return json.dumps(plan_to_document(plan), indent=indent, allow_nan=False)


def _resolve_anchor(points: Tuple[Point, ...], action_doc: ActionDocument, run_name: str) -> int:
    anchor = Point.from_pair(action_doc.anchorPoint)
    index = action_doc.anchorIndex
    if index is not None:
        if 0 <= index < len(points) and points[index] == anchor:
            return index
        raise MalformedDocument(
            f"action {action_doc.operationName!r} in run {run_name!r} has anchor index {index}, "
            f"which does not hold the point {list(anchor.as_pair())}"
        )
    try:
        return points.index(anchor)
    except ValueError:
        raise MalformedDocument(
            f"action {action_doc.operationName!r} in run {run_name!r} is anchored to "
            f"{list(anchor.as_pair())}, which is not a point of the run"
        ) from None


def _run_from_document(doc: RunDocument) -> Run:
    points = tuple(Point.from_pair(pair) for pair in doc.points)
    actions = [
        Action(
            anchor_index=_resolve_anchor(points, action_doc, doc.name),
            operation_name=action_doc.operationName,
            arguments=tuple(action_doc.arguments),
            blocking=action_doc.blocking,
        )
        for action_doc in doc.actions
    ]
    return Run(name=doc.name, points=points, actions=tuple(actions))


def plan_from_document(doc: PlanDocument) -> SplanContent:
    """Rebuild a plan from a structurally valid document.

    Raises:
        MalformedDocument: If any entity violates a model invariant or a
            number cannot be represented as a float.
    """
    try:
        drive_base = DriveBase(
            left_motor_port=doc.driveBase.leftMotorPort,
            right_motor_port=doc.driveBase.rightMotorPort,
            wheel_diameter=float(doc.driveBase.wheelDiameter),
            axle_track=float(doc.driveBase.axleTrack),
        )
        runs = [_run_from_document(run_doc) for run_doc in doc.runs]
        return SplanContent(name=doc.name, drive_base=drive_base, runs=runs, hub_type=doc.hubType)
    except MalformedDocument:
        raise
    except PlanError as exc:
        raise MalformedDocument(f"plan document violates a model invariant: {exc}") from exc
    except (OverflowError, ValueError) as exc:
        # JSON integers are unbounded; float() rejects the ones out of range.
        raise MalformedDocument(f"plan document holds an unusable number: {exc}") from exc


def decode_plan(text: Union[str, bytes]) -> SplanContent:
    """Parse a plan document.

    Args:
        text: JSON text, or UTF-8 encoded bytes of it.

    Returns:
        The reconstructed plan.

    Raises:
        MalformedDocument: If the text is not a well-formed plan document
            or describes an invalid plan.
    """
    try:
        doc = PlanDocument.model_validate_json(text)
    except PydanticValidationError as exc:
        logger.info("Rejected plan document: %d structural error(s)", exc.error_count())
        raise MalformedDocument(f"plan document is malformed: {exc}") from exc
    return plan_from_document(doc)
