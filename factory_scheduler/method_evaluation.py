# Schedule Evaluation and Method Comparison.
# Version: 1.0.0
# Scores candidate schedules and compares results from all scheduling methods.

from dataclasses import dataclass, field
from math import ceil, inf

from .calculated_fields import NormalizedItem
from .constants import FactoryConfig, ProcessingMode
from .day_buckets import DaySchedule, item_spans
from .resources import EPS, MachineTimeline, allocate_ordering, machine_metrics
from .scheduler import ScheduleResult


# Composite score weights (lower score is better)
LATE_WEIGHT = 10_000
COMPLETION_WEIGHT = 100
IDLE_WEIGHT = 1

# Genetic fitness terms (higher fitness is better)
FITNESS_BASE = 10_000
FITNESS_DELAY_PENALTY = 100
FITNESS_DAY_PENALTY = 2
FITNESS_ON_TIME_BONUS = 50

METHOD_NAMES: dict[str, str] = {
    "exhaustive": "Exhaustive Search",
    "genetic": "Genetic Algorithm",
    "integer_program": "Integer Program",
    "earliest_deadline_first": "Earliest Deadline First",
}


@dataclass(frozen=True)
class ScheduleEvaluation:
    """Cost signals of one realized candidate schedule.

    Attributes:
        late_count: Items finishing after their deadline.
        total_completion_time: Makespan in hours.
        total_idle_time: Idle hours (day idle, or machine idle in machine mode).
        average_utilization: Utilization percentage.
        feasible: False when some step could not be placed on any machine.
    """
    late_count: int
    total_completion_time: float
    total_idle_time: float
    average_utilization: float
    feasible: bool = True

    @property
    def score(self) -> float:
        """late x 10,000 + completion x 100 + idle; infeasible schedules score inf."""
        if not self.feasible:
            return inf
        return (
            self.late_count * LATE_WEIGHT
            + self.total_completion_time * COMPLETION_WEIGHT
            + self.total_idle_time * IDLE_WEIGHT
        )


def completion_day_for_hours(hours: float, hours_per_day: float) -> int:
    """1-based day in which a continuous time falls (day 1 for time 0)."""
    return max(1, ceil(hours / hours_per_day - EPS))


def evaluate_days(
    items: list[NormalizedItem],
    days: list[DaySchedule]
) -> ScheduleEvaluation:
    """Evaluate a day-bucketed schedule (per-unit packing or day assignment).

    Args:
        items: Normalized work items.
        days: Bucketed schedule.

    Returns:
        ScheduleEvaluation for the schedule.
    """
    spans = item_spans(days)
    late_count = sum(
        1 for n in items
        if n.item_id in spans and spans[n.item_id].last_day > n.metrics.days_until_deadline
    )

    if not days:
        return ScheduleEvaluation(late_count, 0.0, 0.0, 0.0)

    last = days[-1]
    makespan = (last.day - 1) * last.capacity_hours + last.total_hours_used
    capacity = sum(d.capacity_hours for d in days)
    used = sum(d.total_hours_used for d in days)

    return ScheduleEvaluation(
        late_count=late_count,
        total_completion_time=makespan,
        total_idle_time=sum(d.idle_hours for d in days),
        average_utilization=used / capacity * 100 if capacity > 0 else 0.0,
    )


def evaluate_timeline(
    items: list[NormalizedItem],
    timeline: MachineTimeline,
    config: FactoryConfig
) -> ScheduleEvaluation:
    """Evaluate a machine timeline.

    Idle time is per machine type: latest end x instances minus busy hours.
    An ordering that left a step unplaced is infeasible and scores inf.

    Args:
        items: Normalized work items.
        timeline: Allocated timeline.
        config: Factory configuration.

    Returns:
        ScheduleEvaluation for the timeline.
    """
    usage = machine_metrics(timeline)
    idle = sum(u.idle_hours for u in usage.values())
    utilization = sum(u.utilization for u in usage.values()) / len(usage) if usage else 0.0

    if not timeline.is_feasible:
        return ScheduleEvaluation(len(items), timeline.makespan, idle, utilization, feasible=False)

    late_count = 0
    for n in items:
        hours = timeline.completion_hours.get(n.item_id, 0.0)
        day = completion_day_for_hours(hours, config.working_hours_per_day)
        if day > n.metrics.days_until_deadline:
            late_count += 1

    return ScheduleEvaluation(
        late_count=late_count,
        total_completion_time=timeline.makespan,
        total_idle_time=idle,
        average_utilization=utilization,
    )


def evaluate_schedule(
    items: list[NormalizedItem],
    days: list[DaySchedule],
    config: FactoryConfig,
    timeline: MachineTimeline | None = None
) -> ScheduleEvaluation:
    """Evaluate a realized schedule.

    Machine-mode schedules are scored from their timeline, everything else
    from its day buckets.
    """
    if timeline is not None:
        return evaluate_timeline(items, timeline, config)
    return evaluate_days(items, days)


def genetic_fitness(
    items: list[NormalizedItem],
    order: tuple[int, ...] | list[int],
    config: FactoryConfig,
    mode: ProcessingMode
) -> float:
    """Additive fitness of an ordering (higher is better).

    Starts at 10,000; each item costs 100 per day of delay and 2 per
    completion day, and earns 50 when it is on time. Per-unit mode
    accumulates whole days sequentially with no machine contention.
    Machine mode reads completion days from the timeline allocator.

    Args:
        items: Normalized work items.
        order: Permutation of indices into ``items``.
        config: Factory configuration.
        mode: Processing mode.

    Returns:
        Fitness value; -inf for an ordering the allocator cannot place.
    """
    hours_per_day = config.working_hours_per_day
    completion: dict[str, int] = {}

    if mode == "machine":
        timeline = allocate_ordering(items, order, config)
        if not timeline.is_feasible:
            return -inf
        completion = {
            item_id: completion_day_for_hours(hours, hours_per_day)
            for item_id, hours in timeline.completion_hours.items()
        }

    fitness = float(FITNESS_BASE)
    current_day = 0
    for idx in order:
        m = items[idx].metrics
        if mode == "machine":
            completion_day = completion[m.item_id]
        else:
            completion_day = current_day + max(1, ceil(m.total_hours / hours_per_day - EPS))
            current_day = completion_day

        delay = max(0, completion_day - m.days_until_deadline)
        fitness -= delay * FITNESS_DELAY_PENALTY
        fitness -= completion_day * FITNESS_DAY_PENALTY
        if delay == 0:
            fitness += FITNESS_ON_TIME_BONUS

    return fitness


@dataclass
class MethodEvaluation:
    """Summary of one scheduling method's result for side-by-side comparison.

    Attributes:
        method: Strategy value (e.g., "genetic").
        status: Run status.
        score: Composite evaluator score.
        late_count: Items finishing after their deadline.
        total_overdue_days: Sum of overdue days over all items.
        total_days: Days in the schedule.
        average_utilization: Mean utilization percentage.
        total_idle_hours: Unused hours.
        total_overtime_hours: Hours beyond capacity.
        notes: Remarks carried over from the result.
    """
    method: str
    status: str
    score: float
    late_count: int = 0
    total_overdue_days: int = 0
    total_days: int = 0
    average_utilization: float = 0.0
    total_idle_hours: float = 0.0
    total_overtime_hours: float = 0.0
    notes: list[str] = field(default_factory=list)

    @property
    def method_name(self) -> str:
        return METHOD_NAMES.get(self.method, self.method)


def evaluate_result(result: ScheduleResult) -> MethodEvaluation:
    """Summarize a ScheduleResult for comparison.

    Args:
        result: ScheduleResult to evaluate.

    Returns:
        MethodEvaluation with all metrics.
    """
    return MethodEvaluation(
        method=result.method,
        status=result.status,
        score=result.score,
        late_count=result.late_count,
        total_overdue_days=sum(item.overdue_days for item in result.items),
        total_days=result.total_days,
        average_utilization=result.average_utilization,
        total_idle_hours=result.total_idle_hours,
        total_overtime_hours=result.total_overtime_hours,
        notes=list(result.notes),
    )


def compare_methods(
    evaluations: list[MethodEvaluation]
) -> dict[str, MethodEvaluation]:
    """Compare methods and identify best performers.

    Args:
        evaluations: List of MethodEvaluation to compare.

    Returns:
        Dict with keys for each "best" category and the winning evaluation.
    """
    if not evaluations:
        return {}

    return {
        "fewest_late": min(evaluations, key=lambda e: (e.late_count, e.total_overdue_days)),
        "fewest_days": min(evaluations, key=lambda e: e.total_days),
        "highest_utilization": max(evaluations, key=lambda e: e.average_utilization),
        "least_overtime": min(evaluations, key=lambda e: e.total_overtime_hours),
    }


def rank_methods(
    evaluations: list[MethodEvaluation],
    weights: dict[str, float] | None = None
) -> list[tuple[MethodEvaluation, float]]:
    """Rank methods by weighted score.

    Default weights prioritize:
    - On-time delivery (50%)
    - Total days (20%)
    - Utilization (20%)
    - Overtime (10%)

    Args:
        evaluations: Evaluations to rank.
        weights: Optional custom weights.

    Returns:
        List of (evaluation, score) sorted by score descending.
    """
    if not evaluations:
        return []

    default_weights = {
        "on_time": 0.5,
        "days": 0.2,
        "utilization": 0.2,
        "overtime": 0.1
    }
    weights = weights or default_weights

    # Normalize metrics
    max_late = max(e.late_count for e in evaluations) or 1
    max_days = max(e.total_days for e in evaluations) or 1
    max_overtime = max(e.total_overtime_hours for e in evaluations) or 1

    scores = []
    for ev in evaluations:
        score = 0.0
        score += weights.get("on_time", 0) * (1 - ev.late_count / max_late)
        score += weights.get("days", 0) * (1 - ev.total_days / max_days)
        score += weights.get("utilization", 0) * (ev.average_utilization / 100)
        score += weights.get("overtime", 0) * (1 - ev.total_overtime_hours / max_overtime)
        scores.append((ev, score))

    scores.sort(key=lambda x: -x[1])
    return scores


def generate_evaluation_report(
    evaluations: list[MethodEvaluation],
    include_comparison: bool = True
) -> str:
    """Generate a text report comparing all method evaluations.

    Args:
        evaluations: List of evaluations to report.
        include_comparison: Whether to include comparison summary.

    Returns:
        Multi-line report string.
    """
    lines = []
    lines.append("=" * 80)
    lines.append("SCHEDULING METHOD EVALUATION REPORT")
    lines.append("=" * 80)
    lines.append("")

    lines.append("SUMMARY:")
    lines.append("-" * 80)
    header = (
        f"{'Method':<26} {'Status':<10} {'Late':<6} {'Overdue':<8} "
        f"{'Days':<6} {'Util %':<8} {'Idle h':<9} {'OT h':<7}"
    )
    lines.append(header)
    lines.append("-" * 80)

    for ev in evaluations:
        row = (
            f"{ev.method_name:<26} "
            f"{ev.status:<10} "
            f"{ev.late_count:<6} "
            f"{ev.total_overdue_days:<8} "
            f"{ev.total_days:<6} "
            f"{ev.average_utilization:<8.1f} "
            f"{ev.total_idle_hours:<9.2f} "
            f"{ev.total_overtime_hours:<7.2f}"
        )
        lines.append(row)

    noted = [ev for ev in evaluations if ev.notes]
    if noted:
        lines.append("")
        lines.append("NOTES:")
        lines.append("-" * 80)
        for ev in noted:
            for note in ev.notes:
                lines.append(f"  {ev.method_name}: {note}")

    if include_comparison and evaluations:
        lines.append("")
        lines.append("=" * 80)
        lines.append("COMPARISON SUMMARY:")
        lines.append("=" * 80)

        for category, winner in compare_methods(evaluations).items():
            category_name = category.replace("_", " ").title()
            lines.append(f"  {category_name}: {winner.method_name}")

        lines.append("")
        lines.append("RANKING:")
        for position, (ev, score) in enumerate(rank_methods(evaluations), start=1):
            lines.append(f"  {position}. {ev.method_name} ({score:.3f})")

    return "\n".join(lines)
