# Integer-program day assignment using OR-Tools CP-SAT solver.
# Version: 1.0.0
# Solves the per-batch day assignment deterministically and reports infeasibility, timeouts, and aborts.

import logging
from dataclasses import dataclass, field

from ortools.sat.python import cp_model

from .calculated_fields import NormalizedItem
from .constraints import (
    DayAssignmentModel,
    calculate_horizon_days,
    create_day_assignment_model,
    daily_capacity_for,
)
from .constants import FactoryConfig
from .day_buckets import BatchAssignment
from .errors import InfeasibleScheduleError, OptimizationCancelledError, SolverTimeoutError
from .stop_signal import StopSignal
from .validator import OptimizerSettings


logger = logging.getLogger(__name__)

DEFAULT_RANDOM_SEED = 0


class StopSignalCallback(cp_model.CpSolverSolutionCallback):
    """Solution callback that halts the search once the stop signal trips."""

    def __init__(self, stop: StopSignal) -> None:
        super().__init__()
        self._stop = stop
        self.solution_count = 0
        self.stop_reason: str | None = None

    def on_solution_callback(self) -> None:
        self.solution_count += 1
        reason = self._stop.reason()
        if reason is not None:
            self.stop_reason = reason
            self.StopSearch()


@dataclass
class IntegerProgramSolution:
    """Solved day assignment.

    Attributes:
        status: Solver status name (OPTIMAL or FEASIBLE).
        horizon_days: Number of candidate days in the model.
        objective_value: Scaled objective of the returned assignment.
        solve_time_seconds: Solver wall time.
        assignments: Batches in (day, urgency desc) order.
        order: Item indices by first assigned day, then urgency.
    """
    status: str
    horizon_days: int
    objective_value: float
    solve_time_seconds: float
    assignments: list[BatchAssignment] = field(default_factory=list)
    order: list[int] = field(default_factory=list)

    @property
    def is_optimal(self) -> bool:
        return self.status == "OPTIMAL"


def _extract_assignments(
    solver: cp_model.CpSolver,
    day_model: DayAssignmentModel,
    items: list[NormalizedItem]
) -> list[BatchAssignment]:
    """Read the chosen day of every batch from a solved model.

    Args:
        solver: Solved CP-SAT solver.
        day_model: Model whose variables are read.
        items: Normalized work items.

    Returns:
        BatchAssignments sorted by day, then urgency descending.
    """
    assignments = []
    for bv in day_model.batches:
        for day, var in bv.day_vars.items():
            if solver.BooleanValue(var):
                assignments.append(BatchAssignment(bv.item_index, bv.batch_number, day))
                break

    assignments.sort(
        key=lambda a: (a.day, -items[a.item_index].metrics.urgency_score, a.item_index, a.batch_number)
    )
    return assignments


def _order_from_assignments(
    items: list[NormalizedItem],
    assignments: list[BatchAssignment]
) -> list[int]:
    """Item indices by first assigned day (assignments are already sorted)."""
    order: list[int] = []
    seen: set[int] = set()
    for a in assignments:
        if a.item_index not in seen:
            seen.add(a.item_index)
            order.append(a.item_index)
    return order


def solve_day_assignment(
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal
) -> IntegerProgramSolution:
    """Assign every batch to a day with CP-SAT.

    The solver runs with a single worker and a fixed seed, so the same input
    always yields the same assignment. Its time limit is the smaller of
    ``solver_time_limit_seconds`` and the time left on the stop signal.

    Args:
        items: Normalized work items.
        config: Factory configuration.
        settings: Run options (horizon margin, solver limit, seed, mode).
        stop: Stop signal checked before solving and at every solution.

    Returns:
        IntegerProgramSolution with the assignment and production order.

    Raises:
        InfeasibleScheduleError: If no assignment fits within the horizon.
        SolverTimeoutError: If the time limit passed without a solution.
        OptimizationCancelledError: If the stop signal tripped.
    """
    method = "integer_program"
    reason = stop.reason()
    if reason is not None:
        raise OptimizationCancelledError(method, reason)

    capacity_hours = daily_capacity_for(config, settings.mode == "machine")
    horizon = calculate_horizon_days(items, capacity_hours, settings.horizon_margin_days)
    day_model = create_day_assignment_model(items, capacity_hours, horizon)
    logger.debug(
        f"Day-assignment model: {day_model.variable_count} variables, "
        f"{horizon} day(s), {day_model.capacity_minutes} min/day"
    )

    time_limit = settings.solver_time_limit_seconds
    remaining = stop.remaining_seconds()
    if remaining is not None:
        time_limit = min(time_limit, remaining)

    solver = cp_model.CpSolver()
    solver.parameters.max_time_in_seconds = time_limit
    solver.parameters.num_workers = 1
    solver.parameters.random_seed = settings.seed if settings.seed is not None else DEFAULT_RANDOM_SEED

    callback = StopSignalCallback(stop)
    status = solver.Solve(day_model.model, callback)
    status_name = solver.StatusName(status)
    logger.debug(f"CP-SAT finished with {status_name} in {solver.WallTime():.2f}s")

    if callback.stop_reason is not None:
        raise OptimizationCancelledError(method, callback.stop_reason)

    if status == cp_model.INFEASIBLE:
        raise InfeasibleScheduleError(
            horizon,
            "some batch cannot fit within the daily capacity on any candidate day",
        )

    if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
        reason = stop.reason()
        if reason is not None:
            raise OptimizationCancelledError(method, reason)
        raise SolverTimeoutError(time_limit, best_solution_found=False)

    assignments = _extract_assignments(solver, day_model, items)
    return IntegerProgramSolution(
        status=status_name,
        horizon_days=horizon,
        objective_value=solver.ObjectiveValue(),
        solve_time_seconds=solver.WallTime(),
        assignments=assignments,
        order=_order_from_assignments(items, assignments),
    )
