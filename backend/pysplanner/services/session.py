"""
Editing sessions over a single plan.

A ``PlanSession`` owns one plan and is the only thing that mutates it.
An editor issues commands (add a run, add a point, ...) and receives a
``CommandResult`` carrying a read-only snapshot of the plan, the active
run and any non-fatal warnings the command produced.  Failed commands
raise one of the ``PlanError`` subclasses and leave the plan untouched.

Commands must not overlap on the same session; the only suspension
point is the template fetch inside :meth:`PlanSession.generate`, and
the plan is not modified until it has completed successfully.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import CURVE_DENSITY, CURVE_TENSION
from .codegen import TemplateSource, generate_script
from .errors import CapacityWarning, IndexOutOfRange
from .plan_model import Action, DriveBase, HubType, Point, SplanContent
from .spline import interpolate_curve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a successful session command."""

    plan: SplanContent
    active_run: Optional[int]
    warnings: Tuple[str, ...] = ()


class PlanSession:
    """Command/query interface over an owned plan."""

    def __init__(self, plan: SplanContent) -> None:
        self._plan = plan
        self.active_run: Optional[int] = 0 if plan.runs else None

    @property
    def plan(self) -> SplanContent:
        """Snapshot of the current plan."""
        return self._plan.snapshot()

    def snapshot(self) -> CommandResult:
        return CommandResult(plan=self._plan.snapshot(), active_run=self.active_run)

    def _execute(self, command: Callable[[], object]) -> CommandResult:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", CapacityWarning)
            command()
        messages: List[str] = []
        for w in caught:
            if issubclass(w.category, CapacityWarning):
                messages.append(str(w.message))
            else:
                warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)
        return CommandResult(plan=self._plan.snapshot(), active_run=self.active_run, warnings=tuple(messages))

    def _resolve_run(self, run_index: Optional[int]) -> int:
        if run_index is not None:
            return run_index
        if self.active_run is None:
            raise IndexOutOfRange("the plan has no active run")
        return self.active_run

    # ------------------------------------------------------------------
    # Run commands
    # ------------------------------------------------------------------

    def add_run(self, name: str) -> CommandResult:
        """Append a run and make it the active one."""

        def command() -> None:
            self.active_run = self._plan.add_run(name)

        return self._execute(command)

    def remove_run(self, run_index: int) -> CommandResult:
        def command() -> None:
            self._plan.remove_run(run_index)
            if not self._plan.runs:
                self.active_run = None
            elif self.active_run is not None and self.active_run >= run_index:
                self.active_run = max(0, self.active_run - 1)

        return self._execute(command)

    def rename_run(self, run_index: int, name: str) -> CommandResult:
        return self._execute(lambda: self._plan.rename_run(run_index, name))

    def select_run(self, run_index: int) -> CommandResult:
        def command() -> None:
            self._plan.run(run_index)
            self.active_run = run_index

        return self._execute(command)

    # ------------------------------------------------------------------
    # Point and action commands; ``run_index`` defaults to the active run
    # ------------------------------------------------------------------

    def add_point(self, point: Point, run_index: Optional[int] = None, index: Optional[int] = None) -> CommandResult:
        target = self._resolve_run(run_index)
        return self._execute(lambda: self._plan.add_point_to_run(target, point, index))

    def replace_point(self, point_index: int, point: Point, run_index: Optional[int] = None) -> CommandResult:
        target = self._resolve_run(run_index)
        return self._execute(lambda: self._plan.replace_point(target, point_index, point))

    def remove_point(self, point_index: int, run_index: Optional[int] = None) -> CommandResult:
        target = self._resolve_run(run_index)
        return self._execute(lambda: self._plan.remove_point_from_run(target, point_index))

    def add_action(self, action: Action, run_index: Optional[int] = None) -> CommandResult:
        target = self._resolve_run(run_index)
        return self._execute(lambda: self._plan.add_action(target, action))

    def remove_action(self, action_index: int, run_index: Optional[int] = None) -> CommandResult:
        target = self._resolve_run(run_index)
        return self._execute(lambda: self._plan.remove_action(target, action_index))

    def set_drive_base(self, drive_base: DriveBase) -> CommandResult:
        return self._execute(lambda: self._plan.set_drive_base(drive_base))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def curve(
        self,
        run_index: Optional[int] = None,
        tension: float = CURVE_TENSION,
        density: float = CURVE_DENSITY,
        closed: bool = False,
    ) -> Sequence[Point]:
        """Interpolate the waypoints of a run (the active run by default)."""
        run = self._plan.run(self._resolve_run(run_index))
        return interpolate_curve(run.points, tension=tension, density=density, closed=closed)

    async def generate(self, hub: HubType, source: TemplateSource) -> str:
        """Generate a hub script and record ``hub`` on the plan.

        The hub is only recorded once the script has been produced; a
        failed fetch or merge leaves the plan as it was.
        """
        hub = HubType(hub)
        script = await generate_script(self._plan, hub, source)
        self._plan.hub_type = hub
        return script
