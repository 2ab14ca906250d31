# Scheduling Strategies.
# Version: 1.0.0
# Exhaustive, genetic, integer-program, and earliest-deadline-first variants behind one optimize() entry point.

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import permutations
from math import factorial, inf
from typing import Callable, Iterable

from .calculated_fields import NormalizedItem, calculate_all_metrics
from .constants import FactoryConfig
from .data_loader import WorkItem
from .day_buckets import (
    BatchAssignment,
    DaySchedule,
    bucketize_assignment,
    bucketize_ordering,
    bucketize_timeline,
    fill_idle_with_extra,
)
from .errors import InfeasibleScheduleError, OptimizationCancelledError, SchedulingError, ValidationError
from .genetic import run_genetic
from .integer_program import solve_day_assignment
from .method_evaluation import ScheduleEvaluation, evaluate_days, evaluate_schedule, evaluate_timeline
from .resources import EPS, MachineTimeline, allocate_ordering
from .scheduler import RunStatus, ScheduleResult, assemble_schedule
from .stop_signal import StopSignal
from .validator import OptimizerSettings, ensure_valid


logger = logging.getLogger(__name__)


class SchedulingMethod(Enum):
    """The four search strategies."""
    EXHAUSTIVE = "exhaustive"
    GENETIC = "genetic"
    INTEGER_PROGRAM = "integer_program"
    EARLIEST_DEADLINE_FIRST = "earliest_deadline_first"


class RunStage(Enum):
    """Stages of one optimization run."""
    IDLE = "idle"
    NORMALIZING = "normalizing"
    SEARCHING = "searching"
    EVALUATING = "evaluating"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


def _enter_stage(stage: RunStage, method: SchedulingMethod) -> None:
    logger.debug(f"[{method.value}] stage -> {stage.name}")


@dataclass
class RealizedSchedule:
    """A candidate turned into day buckets, with its evaluation.

    Attributes:
        evaluation: Evaluator output for the candidate.
        days: Day buckets.
        timeline: Machine timeline (machine mode only).
    """
    evaluation: ScheduleEvaluation
    days: list[DaySchedule]
    timeline: MachineTimeline | None = None


def evaluate_ordering(
    items: list[NormalizedItem],
    order: tuple[int, ...] | list[int],
    config: FactoryConfig,
    settings: OptimizerSettings
) -> ScheduleEvaluation:
    """Score one production ordering without building the result.

    Machine mode runs the timeline allocator; per-unit mode packs days.
    """
    if settings.mode == "machine":
        return evaluate_timeline(items, allocate_ordering(items, order, config), config)
    days = bucketize_ordering(items, order, config, settings.reference_date)
    return evaluate_days(items, days)


def realize_ordering(
    items: list[NormalizedItem],
    order: tuple[int, ...] | list[int],
    config: FactoryConfig,
    settings: OptimizerSettings
) -> RealizedSchedule:
    """Turn a production ordering into day buckets.

    Args:
        items: Normalized work items.
        order: Permutation of indices into ``items``.
        config: Factory configuration.
        settings: Run options (mode, reference date).

    Returns:
        RealizedSchedule with evaluation, days, and timeline.
    """
    if settings.mode == "machine":
        timeline = allocate_ordering(items, order, config)
        days = bucketize_timeline(items, timeline, config, settings.reference_date)
        return RealizedSchedule(evaluate_schedule(items, days, config, timeline), days, timeline)

    days = bucketize_ordering(items, order, config, settings.reference_date)
    return RealizedSchedule(evaluate_schedule(items, days, config), days)


def _finish(
    items: list[NormalizedItem],
    order: Iterable[int],
    realized: RealizedSchedule,
    method: SchedulingMethod,
    settings: OptimizerSettings,
    status: RunStatus = "DONE",
    notes: list[str] | None = None
) -> ScheduleResult:
    """Apply the optional backfill and assemble the result."""
    if settings.include_extra:
        fill_idle_with_extra(realized.days, items)

    _enter_stage(RunStage.ASSEMBLING, method)
    return assemble_schedule(
        items,
        list(order),
        realized.days,
        method=method.value,
        mode=settings.mode,
        reference_date=settings.reference_date,
        score=realized.evaluation.score,
        timeline=realized.timeline,
        status=status,
        notes=notes,
    )


def schedule_exhaustive(
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal
) -> ScheduleResult:
    """Evaluate every ordering and keep the lowest score.

    The first ordering generated wins ties.

    Raises:
        ValidationError: If there are more items than ``max_exhaustive_items``.
        OptimizationCancelledError: If the stop signal trips mid-search.
    """
    method = SchedulingMethod.EXHAUSTIVE
    if len(items) > settings.max_exhaustive_items:
        raise ValidationError(
            field="items",
            value=len(items),
            reason=f"exhaustive search accepts at most {settings.max_exhaustive_items} items",
        )

    logger.info(f"Exhaustive search over {factorial(len(items))} orderings")
    _enter_stage(RunStage.EVALUATING, method)

    best_order: tuple[int, ...] | None = None
    best_score = inf
    for order in permutations(range(len(items))):
        reason = stop.reason()
        if reason is not None:
            raise OptimizationCancelledError(method.value, reason)

        score = evaluate_ordering(items, order, config, settings).score
        if best_order is None or score < best_score:
            best_order = order
            best_score = score

    return _finish(items, best_order, realize_ordering(items, best_order, config, settings), method, settings)


def schedule_genetic(
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal
) -> ScheduleResult:
    """Run the genetic search and realize its best ordering.

    A stop signal does not raise here: the best ordering found so far is
    returned with status "CANCELLED".
    """
    method = SchedulingMethod.GENETIC
    run = run_genetic(items, config, settings, stop)
    logger.info(
        f"Genetic search finished after {run.generations_run} generation(s), "
        f"best fitness {run.best_fitness:.1f}"
    )

    _enter_stage(RunStage.EVALUATING, method)
    realized = realize_ordering(items, run.best_order, config, settings)

    if run.cancelled:
        note = (
            f"Stopped after {run.generations_run} of {settings.generations} generations; "
            "best ordering found so far"
        )
        return _finish(items, run.best_order, realized, method, settings, status="CANCELLED", notes=[note])
    return _finish(items, run.best_order, realized, method, settings)


def earliest_deadline_order(items: list[NormalizedItem]) -> list[int]:
    """Indices sorted by urgency (desc) then deadline; ties keep received order."""
    return sorted(
        range(len(items)),
        key=lambda i: (-items[i].metrics.urgency_score, items[i].item.deadline),
    )


def first_fit_assignments(
    items: list[NormalizedItem],
    order: list[int],
    capacity_hours: float
) -> list[BatchAssignment]:
    """Pack every batch into the earliest day with room.

    A new day opens when no existing day fits the batch. A batch longer
    than a whole day takes a new day on its own and runs into overtime.

    Args:
        items: Normalized work items.
        order: Item indices in packing order.
        capacity_hours: Hours available per day.

    Returns:
        BatchAssignments in packing order.
    """
    used: list[float] = []
    assignments = []

    for idx in order:
        m = items[idx].metrics
        for batch in range(1, m.batches_needed + 1):
            hours = m.hours_per_batch
            day = None
            if hours <= capacity_hours + EPS:
                for d, committed in enumerate(used, start=1):
                    if committed + hours <= capacity_hours + EPS:
                        day = d
                        break
            if day is None:
                used.append(0.0)
                day = len(used)
            used[day - 1] += hours
            assignments.append(BatchAssignment(idx, batch, day))

    return assignments


def schedule_earliest_deadline_first(
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal
) -> ScheduleResult:
    """Urgency-ordered first-fit packing (allocator-driven in machine mode).

    The heuristic finishes in one pass and ignores the stop signal.
    """
    method = SchedulingMethod.EARLIEST_DEADLINE_FIRST
    order = earliest_deadline_order(items)
    _enter_stage(RunStage.EVALUATING, method)

    if settings.mode == "machine":
        realized = realize_ordering(items, order, config, settings)
    else:
        assignments = first_fit_assignments(items, order, config.working_hours_per_day)
        days = bucketize_assignment(items, assignments, config, settings.reference_date)
        realized = RealizedSchedule(evaluate_schedule(items, days, config), days)

    return _finish(items, order, realized, method, settings)


def schedule_integer_program(
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal
) -> ScheduleResult:
    """Solve the day-assignment integer program.

    When the model is infeasible the earliest-deadline-first result is
    returned unchanged. In machine mode the solved day order is realized
    through the timeline allocator.

    Raises:
        SolverTimeoutError: If the solver found nothing within its limit.
        OptimizationCancelledError: If the stop signal trips.
    """
    method = SchedulingMethod.INTEGER_PROGRAM
    try:
        solution = solve_day_assignment(items, config, settings, stop)
    except InfeasibleScheduleError as exc:
        logger.warning(f"{exc.message}; falling back to earliest-deadline-first")
        return schedule_earliest_deadline_first(items, config, settings, stop)

    logger.info(
        f"Integer program {solution.status} over {solution.horizon_days} day(s) "
        f"in {solution.solve_time_seconds:.2f}s"
    )
    _enter_stage(RunStage.EVALUATING, method)

    if settings.mode == "machine":
        realized = realize_ordering(items, solution.order, config, settings)
    else:
        days = bucketize_assignment(items, solution.assignments, config, settings.reference_date)
        realized = RealizedSchedule(evaluate_schedule(items, days, config), days)

    notes = [] if solution.is_optimal else ["Solver stopped at its time limit with a feasible assignment"]
    return _finish(items, solution.order, realized, method, settings, notes=notes)


StrategyFunc = Callable[[list[NormalizedItem], FactoryConfig, OptimizerSettings, StopSignal], ScheduleResult]

STRATEGIES: dict[SchedulingMethod, StrategyFunc] = {
    SchedulingMethod.EXHAUSTIVE: schedule_exhaustive,
    SchedulingMethod.GENETIC: schedule_genetic,
    SchedulingMethod.INTEGER_PROGRAM: schedule_integer_program,
    SchedulingMethod.EARLIEST_DEADLINE_FIRST: schedule_earliest_deadline_first,
}


def run_method(
    method: SchedulingMethod,
    items: list[NormalizedItem],
    config: FactoryConfig,
    settings: OptimizerSettings,
    stop: StopSignal
) -> ScheduleResult:
    """Run one strategy on already-normalized items.

    Args:
        method: Strategy to run.
        items: Normalized work items.
        config: Factory configuration.
        settings: Run options.
        stop: Stop signal for the run.

    Returns:
        ScheduleResult from the strategy.
    """
    func = STRATEGIES.get(method)
    if not func:
        raise ValueError(f"Unknown scheduling method: {method}")
    return func(items, config, settings, stop)


def optimize(
    items: Iterable[WorkItem],
    config: FactoryConfig,
    method: SchedulingMethod | str,
    settings: OptimizerSettings | None = None,
    stop: StopSignal | None = None
) -> ScheduleResult:
    """Validate, normalize, and schedule work items with one strategy.

    Args:
        items: Work items (a list or a WorkLoad).
        config: Factory configuration.
        method: Strategy, as a SchedulingMethod or its string value.
        settings: Run options (defaults when None).
        stop: Stop signal; built from ``settings.time_limit_seconds`` when None.

    Returns:
        ScheduleResult for the run.

    Raises:
        ValidationError: For invalid input, before any strategy runs.
        InfeasibleMachineCapacityError: For zero-instance machine types.
        SolverTimeoutError: If the integer program found nothing in time.
        OptimizationCancelledError: If exhaustive or integer-program search was stopped.
    """
    method = SchedulingMethod(method)
    settings = settings or OptimizerSettings()
    stop = stop or StopSignal(settings.time_limit_seconds)
    work = list(items)

    _enter_stage(RunStage.IDLE, method)
    try:
        _enter_stage(RunStage.NORMALIZING, method)
        validation = ensure_valid(work, config, settings)
        for warning in validation.warnings:
            logger.warning(f"{warning.item_id}: {warning.message}")
        normalized = calculate_all_metrics(work, config, settings.mode, settings.reference_date)

        _enter_stage(RunStage.SEARCHING, method)
        result = run_method(method, normalized, config, settings, stop)
    except SchedulingError:
        _enter_stage(RunStage.FAILED, method)
        raise

    _enter_stage(RunStage.DONE, method)
    logger.info(
        f"{method.value}: {result.total_days} day(s), {result.late_count} late item(s), "
        f"score {result.score:.1f}, status {result.status}"
    )
    return result


def run_all_methods(
    items: Iterable[WorkItem],
    config: FactoryConfig,
    settings: OptimizerSettings | None = None
) -> dict[SchedulingMethod, ScheduleResult]:
    """Run every strategy on the same input.

    The exhaustive strategy is skipped when the item count exceeds
    ``max_exhaustive_items``. Each strategy gets its own stop signal.

    Args:
        items: Work items.
        config: Factory configuration.
        settings: Run options shared by all strategies.

    Returns:
        Dict mapping method to result.
    """
    settings = settings or OptimizerSettings()
    work = list(items)
    results = {}

    for method in SchedulingMethod:
        if method is SchedulingMethod.EXHAUSTIVE and len(work) > settings.max_exhaustive_items:
            logger.warning(
                f"Skipping exhaustive search: {len(work)} items exceeds "
                f"the limit of {settings.max_exhaustive_items}"
            )
            continue
        results[method] = optimize(work, config, method, settings)

    return results
