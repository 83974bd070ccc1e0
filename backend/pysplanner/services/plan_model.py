"""
Plan data model.

A plan (``SplanContent``) describes a robot's drive base and one or
more named runs.  Each run is an ordered list of waypoints plus actions
scheduled at particular waypoints.

Values below the plan level are immutable: ``DriveBase``, ``Point``,
``Action`` and ``Run`` are frozen dataclasses and every run mutation
builds a new ``Run``.  The plan itself is mutated in place by replacing
whole runs, so a shallow copy of the plan is a safe snapshot for an
editor's undo history.

Actions reference their waypoint by index into the run's point list.
The index is re-checked on every mutation that changes the list:
inserting a point shifts later anchors, and removing a point deletes
the actions anchored to it.
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from ..config import MAX_RUN_POINTS, SOFT_POINT_LIMIT
from .errors import (
    CapacityExceeded,
    CapacityWarning,
    IndexOutOfRange,
    ValidationError,
    ValidationErrorKind,
)

logger = logging.getLogger(__name__)


class HubType(str, Enum):
    """Robot controller families code can be generated for."""

    SPIKE = "Spike"
    EV3 = "EV3"


# Motor ports available on each hub.  A drive base may use any port
# from the union; the hub-specific check happens at generation time.
HUB_PORTS: dict[HubType, Tuple[str, ...]] = {
    HubType.SPIKE: ("A", "B", "C", "D", "E", "F"),
    HubType.EV3: ("A", "B", "C", "D"),
}
ALL_PORTS: Tuple[str, ...] = ("A", "B", "C", "D", "E", "F")

ActionArgument = Union[bool, int, float, str]


def _is_real(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class Point:
    """Waypoint in field-map image coordinates."""

    x: float
    y: float

    def __post_init__(self) -> None:
        if not (_is_real(self.x) and _is_real(self.y) and math.isfinite(self.x) and math.isfinite(self.y)):
            raise ValidationError(
                ValidationErrorKind.INVALID_POINT,
                f"point coordinates must be finite numbers, got ({self.x!r}, {self.y!r})",
            )

    def as_pair(self) -> Tuple[float, float]:
        """Return the point in its wire form, an ordered ``(x, y)`` pair."""
        return (self.x, self.y)

    @classmethod
    def from_pair(cls, pair: Iterable[float]) -> "Point":
        """Build a point from exactly two ordered reals."""
        values = list(pair)
        if len(values) != 2 or not all(_is_real(v) for v in values):
            raise ValueError(f"a point needs exactly two real coordinates, got {values!r}")
        return cls(float(values[0]), float(values[1]))


@dataclass(frozen=True, slots=True)
class DriveBase:
    """Robot chassis geometry.

    Attributes:
        left_motor_port: Port letter driving the left wheel.
        right_motor_port: Port letter driving the right wheel.
        wheel_diameter: Wheel diameter in millimetres.
        axle_track: Distance between the wheel contact points in millimetres.
    """

    left_motor_port: str
    right_motor_port: str
    wheel_diameter: float
    axle_track: float

    def __post_init__(self) -> None:
        for port in (self.left_motor_port, self.right_motor_port):
            if port not in ALL_PORTS:
                raise ValidationError(
                    ValidationErrorKind.INVALID_DRIVE_BASE,
                    f"motor port must be one of {', '.join(ALL_PORTS)}, got {port!r}",
                )
        if self.left_motor_port == self.right_motor_port:
            raise ValidationError(
                ValidationErrorKind.DUPLICATE_MOTOR_PORT,
                f"left and right motors must use different ports, both are {self.left_motor_port!r}",
            )
        for label, value in (("wheel diameter", self.wheel_diameter), ("axle track", self.axle_track)):
            if not _is_real(value) or not math.isfinite(value):
                raise ValidationError(
                    ValidationErrorKind.INVALID_DRIVE_BASE,
                    f"{label} must be a finite number, got {value!r}",
                )
            if value <= 0:
                raise ValidationError(
                    ValidationErrorKind.NON_POSITIVE_DIMENSION,
                    f"{label} must be positive, got {value!r}",
                )

    def supports_hub(self, hub: HubType) -> bool:
        """Return True if both motor ports exist on ``hub``."""
        ports = HUB_PORTS[hub]
        return self.left_motor_port in ports and self.right_motor_port in ports


@dataclass(frozen=True, slots=True)
class Action:
    """Robot-side routine scheduled at a waypoint.

    ``operation_name`` and ``arguments`` are forwarded verbatim into the
    generated script.  Arguments are limited to booleans, numbers and
    strings so the action always serialises.

    Attributes:
        anchor_index: Index of the waypoint in the owning run.
        operation_name: Name of the routine to call on the robot.
        arguments: Positional arguments for the routine.
        blocking: Whether the robot waits for the routine before moving on.
    """

    anchor_index: int
    operation_name: str
    arguments: Tuple[ActionArgument, ...] = ()
    blocking: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.anchor_index, int) or isinstance(self.anchor_index, bool) or self.anchor_index < 0:
            raise ValidationError(
                ValidationErrorKind.INVALID_ACTION,
                f"anchor index must be a non-negative integer, got {self.anchor_index!r}",
            )
        if not isinstance(self.operation_name, str):
            raise ValidationError(
                ValidationErrorKind.INVALID_ACTION,
                f"operation name must be a string, got {self.operation_name!r}",
            )
        arguments = tuple(self.arguments)
        for arg in arguments:
            if isinstance(arg, float) and not math.isfinite(arg):
                raise ValidationError(
                    ValidationErrorKind.INVALID_ACTION,
                    f"action arguments must be finite, got {arg!r}",
                )
            if not isinstance(arg, (bool, int, float, str)):
                raise ValidationError(
                    ValidationErrorKind.INVALID_ACTION,
                    f"action arguments must be booleans, numbers or strings, got {arg!r}",
                )
        object.__setattr__(self, "arguments", arguments)
        object.__setattr__(self, "blocking", bool(self.blocking))


@dataclass(frozen=True, slots=True)
class Run:
    """Named waypoint path with anchored actions.

    Every ``with_*``/``without_*`` method returns a new run; the
    receiver is never modified.
    """

    name: str
    points: Tuple[Point, ...] = ()
    actions: Tuple[Action, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError(ValidationErrorKind.EMPTY_NAME, "run name must not be empty")
        points = tuple(self.points)
        actions = tuple(self.actions)
        if len(points) >= MAX_RUN_POINTS:
            raise CapacityExceeded(
                f"run {self.name!r} holds {len(points)} points; fewer than {MAX_RUN_POINTS} are allowed"
            )
        for action in actions:
            if action.anchor_index >= len(points):
                raise ValidationError(
                    ValidationErrorKind.INVALID_ACTION,
                    f"action {action.operation_name!r} is anchored to point {action.anchor_index}, "
                    f"but run {self.name!r} has {len(points)} points",
                )
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "actions", actions)

    @property
    def near_capacity(self) -> bool:
        """True once the run has reached the soft point-count threshold."""
        return len(self.points) >= SOFT_POINT_LIMIT

    def anchor_point(self, action: Action) -> Point:
        """Return the waypoint ``action`` is scheduled at."""
        return self.points[action.anchor_index]

    def actions_at(self, point_index: int) -> List[Action]:
        """Return the actions anchored to ``point_index`` in insertion order."""
        return [a for a in self.actions if a.anchor_index == point_index]

    def renamed(self, name: str) -> "Run":
        return replace(self, name=name)

    def with_point(self, point: Point, index: Optional[int] = None) -> "Run":
        """Insert ``point`` at ``index`` (append when None).

        Raises:
            CapacityExceeded: If the run would reach ``MAX_RUN_POINTS``.
            IndexOutOfRange: If ``index`` is outside ``0..len(points)``.
        """
        count = len(self.points)
        if count + 1 >= MAX_RUN_POINTS:
            raise CapacityExceeded(
                f"run {self.name!r} already holds {count} points; the limit is {MAX_RUN_POINTS - 1}"
            )
        if index is None:
            index = count
        _check_index(index, count + 1, "point")
        points = self.points[:index] + (point,) + self.points[index:]
        actions = tuple(
            replace(a, anchor_index=a.anchor_index + 1) if a.anchor_index >= index else a
            for a in self.actions
        )
        return replace(self, points=points, actions=actions)

    def with_point_replaced(self, index: int, point: Point) -> "Run":
        _check_index(index, len(self.points), "point")
        points = self.points[:index] + (point,) + self.points[index + 1:]
        return replace(self, points=points)

    def without_point(self, index: int) -> "Run":
        """Remove the point at ``index`` together with the actions anchored to it."""
        _check_index(index, len(self.points), "point")
        points = self.points[:index] + self.points[index + 1:]
        actions = tuple(
            replace(a, anchor_index=a.anchor_index - 1) if a.anchor_index > index else a
            for a in self.actions
            if a.anchor_index != index
        )
        return replace(self, points=points, actions=actions)

    def with_action(self, action: Action) -> "Run":
        _check_index(action.anchor_index, len(self.points), "anchor point")
        return replace(self, actions=self.actions + (action,))

    def without_action(self, index: int) -> "Run":
        _check_index(index, len(self.actions), "action")
        return replace(self, actions=self.actions[:index] + self.actions[index + 1:])


def _check_index(index: int, length: int, what: str) -> None:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < length:
        raise IndexOutOfRange(f"{what} index {index!r} is out of range (0..{length - 1})")


@dataclass
class SplanContent:
    """Top-level plan document.

    Runs are kept in insertion order, which is also the order an editor
    displays and selects them in.  Mutators replace whole ``Run`` values
    and never modify a run that a caller may still hold.
    """

    name: str
    drive_base: DriveBase
    runs: List[Run] = field(default_factory=list)
    hub_type: Optional[HubType] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError(ValidationErrorKind.EMPTY_NAME, "plan name must not be empty")
        if not isinstance(self.drive_base, DriveBase):
            raise ValidationError(
                ValidationErrorKind.INVALID_DRIVE_BASE,
                f"drive base must be a DriveBase, got {type(self.drive_base).__name__}",
            )
        self.runs = list(self.runs)
        if self.hub_type is not None:
            self.hub_type = HubType(self.hub_type)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def run(self, index: int) -> Run:
        _check_index(index, len(self.runs), "run")
        return self.runs[index]

    def snapshot(self) -> "SplanContent":
        """Return a copy that later mutations of this plan do not affect."""
        return replace(self, runs=list(self.runs))

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def add_run(self, name: str) -> int:
        """Append an empty run and return its index."""
        self.runs.append(Run(name=name))
        return len(self.runs) - 1

    def remove_run(self, index: int) -> None:
        _check_index(index, len(self.runs), "run")
        del self.runs[index]

    def rename_run(self, index: int, name: str) -> None:
        self.runs[index] = self.run(index).renamed(name)

    def add_point_to_run(self, run_index: int, point: Point, index: Optional[int] = None) -> Run:
        """Insert a waypoint into a run and return the updated run.

        Emits a :class:`CapacityWarning` once the run holds
        ``SOFT_POINT_LIMIT`` points or more.
        """
        updated = self.run(run_index).with_point(point, index)
        self.runs[run_index] = updated
        if updated.near_capacity:
            message = (
                f"run {updated.name!r} has {len(updated.points)} points; "
                f"at most {MAX_RUN_POINTS - 1} are allowed"
            )
            logger.warning(message)
            warnings.warn(message, CapacityWarning, stacklevel=2)
        return updated

    def replace_point(self, run_index: int, point_index: int, point: Point) -> Run:
        updated = self.run(run_index).with_point_replaced(point_index, point)
        self.runs[run_index] = updated
        return updated

    def remove_point_from_run(self, run_index: int, point_index: int) -> Run:
        """Remove a waypoint; actions anchored to it are removed with it."""
        run = self.run(run_index)
        updated = run.without_point(point_index)
        dropped = run.actions_at(point_index)
        if dropped:
            logger.info(
                "Removing point %d of run %r also removed action(s) %s",
                point_index,
                run.name,
                ", ".join(a.operation_name for a in dropped),
            )
        self.runs[run_index] = updated
        return updated

    def add_action(self, run_index: int, action: Action) -> Run:
        updated = self.run(run_index).with_action(action)
        self.runs[run_index] = updated
        return updated

    def remove_action(self, run_index: int, action_index: int) -> Run:
        updated = self.run(run_index).without_action(action_index)
        self.runs[run_index] = updated
        return updated

    def set_drive_base(self, drive_base: DriveBase) -> None:
        if not isinstance(drive_base, DriveBase):
            raise ValidationError(
                ValidationErrorKind.INVALID_DRIVE_BASE,
                f"drive base must be a DriveBase, got {type(drive_base).__name__}",
            )
        self.drive_base = drive_base


Plan = SplanContent


def create_plan(
    name: str,
    left_motor_port: str,
    right_motor_port: str,
    wheel_diameter: float,
    axle_track: float,
    hub_type: Optional[HubType] = None,
) -> SplanContent:
    """Create an empty plan after validating all inputs.

    Raises:
        ValidationError: If the name is empty or the drive base is invalid.
    """
    drive_base = DriveBase(
        left_motor_port=left_motor_port,
        right_motor_port=right_motor_port,
        wheel_diameter=wheel_diameter,
        axle_track=axle_track,
    )
    plan = SplanContent(name=name, drive_base=drive_base, hub_type=hub_type)
    logger.info("Created plan %r with drive base %s/%s", name, left_motor_port, right_motor_port)
    return plan
