"""
Unit tests for the plan data model.

These tests cover constructor validation, the run capacity limits and
the anchor bookkeeping that keeps actions attached to the right
waypoint when points are inserted or removed.
"""

import sys
import warnings
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pysplanner.services.errors import (  # type: ignore
    CapacityExceeded,
    CapacityWarning,
    IndexOutOfRange,
    ValidationError,
    ValidationErrorKind,
)
from pysplanner.services.plan_model import (  # type: ignore
    Action,
    DriveBase,
    HubType,
    Point,
    Run,
    SplanContent,
    create_plan,
)


def _plan() -> SplanContent:
    return create_plan("Mission", "A", "B", 56.0, 112.0)


@pytest.mark.parametrize("port", ["A", "B", "C", "D", "E", "F"])
def test_drive_base_rejects_same_port_for_both_motors(port: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        DriveBase(port, port, 56.0, 112.0)
    assert excinfo.value.kind is ValidationErrorKind.DUPLICATE_MOTOR_PORT


@pytest.mark.parametrize("wheel, track", [(0.0, 112.0), (56.0, -1.0), (-5.0, 0.0)])
def test_drive_base_rejects_non_positive_dimensions(wheel: float, track: float) -> None:
    with pytest.raises(ValidationError) as excinfo:
        DriveBase("A", "B", wheel, track)
    assert excinfo.value.kind is ValidationErrorKind.NON_POSITIVE_DIMENSION


def test_drive_base_rejects_unknown_port() -> None:
    with pytest.raises(ValidationError) as excinfo:
        DriveBase("A", "Z", 56.0, 112.0)
    assert excinfo.value.kind is ValidationErrorKind.INVALID_DRIVE_BASE


def test_drive_base_hub_support() -> None:
    """Ports E and F exist on Spike hubs only."""
    spike_only = DriveBase("E", "F", 56.0, 112.0)
    assert spike_only.supports_hub(HubType.SPIKE)
    assert not spike_only.supports_hub(HubType.EV3)
    assert DriveBase("B", "C", 56.0, 112.0).supports_hub(HubType.EV3)


@pytest.mark.parametrize("name", ["", "   "])
def test_create_plan_rejects_empty_name(name: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        create_plan(name, "A", "B", 56.0, 112.0)
    assert excinfo.value.kind is ValidationErrorKind.EMPTY_NAME


def test_create_plan_starts_without_runs() -> None:
    plan = _plan()
    assert plan.runs == []
    assert plan.hub_type is None
    assert plan.drive_base == DriveBase("A", "B", 56.0, 112.0)


def test_point_rejects_non_finite_coordinates() -> None:
    with pytest.raises(ValidationError) as excinfo:
        Point(float("nan"), 0.0)
    assert excinfo.value.kind is ValidationErrorKind.INVALID_POINT


def test_point_from_pair_requires_two_values() -> None:
    assert Point.from_pair([3.5, -2.0]) == Point(3.5, -2.0)
    with pytest.raises(ValueError):
        Point.from_pair([1.0, 2.0, 3.0])


def test_action_arguments_are_limited_to_scalars() -> None:
    action = Action(0, "lift_arm", [90, "fast", True, 0.5])
    assert action.arguments == (90, "fast", True, 0.5)
    with pytest.raises(ValidationError) as excinfo:
        Action(0, "lift_arm", [[1, 2]])
    assert excinfo.value.kind is ValidationErrorKind.INVALID_ACTION


def test_run_mutations_do_not_touch_the_original() -> None:
    """Runs are copy-on-write: the old value stays as it was."""
    run = Run("first", (Point(0, 0),))
    longer = run.with_point(Point(10, 0))
    assert run.points == (Point(0, 0),)
    assert longer.points == (Point(0, 0), Point(10, 0))


def test_plan_snapshot_is_not_affected_by_later_mutations() -> None:
    plan = _plan()
    plan.add_run("first")
    before = plan.snapshot()
    plan.add_point_to_run(0, Point(1, 2))
    plan.add_run("second")
    assert before.runs == [Run("first")]
    assert len(plan.runs) == 2


def test_rename_and_index_errors() -> None:
    plan = _plan()
    plan.add_run("first")
    plan.rename_run(0, "renamed")
    assert plan.runs[0].name == "renamed"
    with pytest.raises(IndexOutOfRange):
        plan.rename_run(1, "missing")
    with pytest.raises(IndexOutOfRange):
        plan.add_point_to_run(-1, Point(0, 0))
    with pytest.raises(ValidationError):
        plan.rename_run(0, "")


def test_capacity_warning_and_hard_limit() -> None:
    """The 25th point warns; the 50th is rejected and the run keeps 49."""
    plan = _plan()
    plan.add_run("long")
    with warnings.catch_warnings():
        warnings.simplefilter("error", CapacityWarning)
        for i in range(24):
            plan.add_point_to_run(0, Point(i, 0))
    with pytest.warns(CapacityWarning):
        plan.add_point_to_run(0, Point(24, 0))
    assert len(plan.runs[0].points) == 25
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", CapacityWarning)
        for i in range(25, 49):
            plan.add_point_to_run(0, Point(i, 0))
    assert len(plan.runs[0].points) == 49
    with pytest.raises(CapacityExceeded):
        plan.add_point_to_run(0, Point(49, 0))
    assert len(plan.runs[0].points) == 49


def test_inserting_a_point_shifts_later_anchors() -> None:
    run = Run("r", (Point(0, 0), Point(10, 0), Point(20, 0)))
    run = run.with_action(Action(0, "start")).with_action(Action(2, "grab"))
    run = run.with_point(Point(5, 5), index=1)
    assert [a.anchor_index for a in run.actions] == [0, 3]
    assert run.anchor_point(run.actions[1]) == Point(20, 0)


def test_removing_a_point_cascades_to_its_actions() -> None:
    """Actions anchored to a removed point are deleted; later anchors shift down."""
    run = Run("r", (Point(0, 0), Point(10, 0), Point(20, 0)))
    run = run.with_action(Action(1, "drop")).with_action(Action(2, "grab"))
    run = run.without_point(1)
    assert run.points == (Point(0, 0), Point(20, 0))
    assert len(run.actions) == 1
    assert run.actions[0].operation_name == "grab"
    assert run.anchor_point(run.actions[0]) == Point(20, 0)


def test_action_anchor_must_exist() -> None:
    run = Run("r", (Point(0, 0),))
    with pytest.raises(IndexOutOfRange):
        run.with_action(Action(1, "grab"))
    with pytest.raises(ValidationError):
        Run("r", (Point(0, 0),), (Action(3, "grab"),))


def test_replace_point_keeps_actions() -> None:
    plan = _plan()
    plan.add_run("r")
    plan.add_point_to_run(0, Point(0, 0))
    plan.add_action(0, Action(0, "beep", (440,)))
    run = plan.replace_point(0, 0, Point(1, 1))
    assert run.points == (Point(1, 1),)
    assert run.actions_at(0) == [Action(0, "beep", (440,))]


def test_plan_point_removal_reports_dropped_actions(caplog: pytest.LogCaptureFixture) -> None:
    plan = _plan()
    plan.add_run("r")
    for x in (0, 10, 20):
        plan.add_point_to_run(0, Point(x, 0))
    plan.add_action(0, Action(1, "drop"))
    plan.add_action(0, Action(2, "grab"))
    with caplog.at_level("INFO"):
        run = plan.remove_point_from_run(0, 1)
    assert [a.operation_name for a in run.actions] == ["grab"]
    assert "drop" in caplog.text
    assert plan.runs[0] is run
