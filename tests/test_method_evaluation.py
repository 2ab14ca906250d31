"""
Tests for schedule scoring and method comparison.

This module tests:
- Composite score of day-bucketed and machine schedules
- Genetic fitness
- Comparing and ranking method results
"""

import pytest
from math import inf

from factory_scheduler.calculated_fields import calculate_all_metrics
from factory_scheduler.constants import FactoryConfig
from factory_scheduler.data_loader import MachineStep
from factory_scheduler.day_buckets import bucketize_ordering
from factory_scheduler.method_evaluation import (
    MethodEvaluation,
    ScheduleEvaluation,
    compare_methods,
    completion_day_for_hours,
    evaluate_days,
    evaluate_schedule,
    evaluate_timeline,
    generate_evaluation_report,
    genetic_fitness,
    rank_methods,
)
from factory_scheduler.resources import allocate_ordering
from tests.fixtures.work_items import make_item


class TestScheduleEvaluation:
    """Tests for the composite score."""

    def test_score_formula(self):
        """Score is late x 10,000 + completion x 100 + idle."""
        evaluation = ScheduleEvaluation(late_count=2, total_completion_time=12.5, total_idle_time=3.0,
                                        average_utilization=80.0)
        assert evaluation.score == pytest.approx(20_000 + 1_250 + 3)

    def test_infeasible_scores_infinity(self):
        """Unplaceable schedules never win."""
        evaluation = ScheduleEvaluation(0, 0.0, 0.0, 0.0, feasible=False)
        assert evaluation.score == inf

    @pytest.mark.parametrize("hours,expected", [(0.0, 1), (8.0, 1), (8.5, 2), (16.0, 2), (16.01, 3)])
    def test_completion_day_for_hours(self, hours, expected):
        """Continuous time maps to the 1-based day it falls in."""
        assert completion_day_for_hours(hours, 8.0) == expected


class TestEvaluateDays:
    """Tests for day-bucketed evaluation."""

    def test_two_day_schedule(self, per_unit_config, reference_date):
        """Ten one-hour units: 10h makespan, 6h idle on day 2."""
        items = calculate_all_metrics(
            [make_item("A", 10, 5, unit_hours=1.0)], per_unit_config, "per_unit", reference_date
        )
        days = bucketize_ordering(items, (0,), per_unit_config, reference_date)
        evaluation = evaluate_days(items, days)

        assert evaluation.late_count == 0
        assert evaluation.total_completion_time == pytest.approx(10.0)
        assert evaluation.total_idle_time == pytest.approx(6.0)
        assert evaluation.average_utilization == pytest.approx(62.5)
        assert evaluation.score == pytest.approx(1006.0)

    def test_evaluate_schedule_uses_days_without_timeline(self, per_unit_config, reference_date):
        """Without a timeline the day buckets are scored."""
        items = calculate_all_metrics(
            [make_item("A", 10, 5, unit_hours=1.0)], per_unit_config, "per_unit", reference_date
        )
        days = bucketize_ordering(items, (0,), per_unit_config, reference_date)

        assert evaluate_schedule(items, days, per_unit_config) == evaluate_days(items, days)

    def test_late_item_counted(self, per_unit_config, reference_date):
        """An item finishing after its deadline day is late."""
        items = calculate_all_metrics(
            [make_item("A", 10, 1, unit_hours=1.0)], per_unit_config, "per_unit", reference_date
        )
        days = bucketize_ordering(items, (0,), per_unit_config, reference_date)

        assert evaluate_days(items, days).late_count == 1


class TestEvaluateTimeline:
    """Tests for machine timeline evaluation."""

    def test_machine_idle_and_makespan(self, reference_date):
        """Idle time is measured per machine up to its latest end."""
        config = FactoryConfig(working_hours_per_day=8.0, machine_inventory={"MIXER": 1},
                               setup_time_hours=0.25, time_quantum_hours=0.25)
        items = calculate_all_metrics(
            [
                make_item("A", 10, 5, steps=[MachineStep("MIXER", 10, 2.0)]),
                make_item("B", 10, 5, steps=[MachineStep("MIXER", 10, 1.0)]),
            ],
            config, "machine", reference_date,
        )
        evaluation = evaluate_timeline(items, allocate_ordering(items, (0, 1), config), config)

        assert evaluation.feasible
        assert evaluation.late_count == 0
        assert evaluation.total_completion_time == pytest.approx(3.25)
        assert evaluation.total_idle_time == pytest.approx(0.25)

    def test_unplaceable_timeline_is_infeasible(self, reference_date):
        """A step with no machine makes the whole ordering infeasible."""
        config = FactoryConfig(working_hours_per_day=8.0, machine_inventory={"OVEN": 0})
        items = calculate_all_metrics(
            [make_item("O", 5, 5, steps=[MachineStep("OVEN", 5, 1.0)])],
            config, "machine", reference_date,
        )
        evaluation = evaluate_timeline(items, allocate_ordering(items, (0,), config), config)

        assert not evaluation.feasible
        assert evaluation.score == inf


class TestGeneticFitness:
    """Tests for the additive genetic fitness."""

    def test_on_time_item(self, per_unit_config, reference_date):
        """On-time items pay only the completion-day cost and earn the bonus."""
        items = calculate_all_metrics(
            [make_item("A", 10, 5, unit_hours=1.0)], per_unit_config, "per_unit", reference_date
        )
        # Completes on day 2: 10,000 - 2 x 2 + 50
        assert genetic_fitness(items, (0,), per_unit_config, "per_unit") == pytest.approx(10_046)

    def test_delay_penalty(self, per_unit_config, reference_date):
        """Each day of delay costs 100."""
        items = calculate_all_metrics(
            [make_item("A", 24, 1, unit_hours=1.0)], per_unit_config, "per_unit", reference_date
        )
        # Completes on day 3, two days late: 10,000 - 200 - 6
        assert genetic_fitness(items, (0,), per_unit_config, "per_unit") == pytest.approx(9_794)

    def test_urgent_item_first_is_fitter(self, per_unit_config, reference_date):
        """Running the tight deadline first scores higher."""
        items = calculate_all_metrics(
            [make_item("SLOW", 16, 10, unit_hours=1.0), make_item("RUSH", 8, 1, unit_hours=1.0)],
            per_unit_config, "per_unit", reference_date,
        )
        rush_first = genetic_fitness(items, (1, 0), per_unit_config, "per_unit")
        slow_first = genetic_fitness(items, (0, 1), per_unit_config, "per_unit")

        assert rush_first > slow_first


class TestMethodComparison:
    """Tests for comparing and ranking method results."""

    @pytest.fixture
    def evaluations(self):
        """Three synthetic method evaluations."""
        return [
            MethodEvaluation("genetic", "DONE", 100.0, late_count=1, total_days=3,
                             average_utilization=70.0, total_overtime_hours=0.0),
            MethodEvaluation("integer_program", "DONE", 50.0, late_count=0, total_days=4,
                             average_utilization=60.0, total_overtime_hours=0.0),
            MethodEvaluation("earliest_deadline_first", "DONE", 80.0, late_count=0, total_days=3,
                             average_utilization=90.0, total_overtime_hours=2.0,
                             notes=["overtime on day 1"]),
        ]

    def test_compare_methods(self, evaluations):
        """Each category names its best method."""
        best = compare_methods(evaluations)

        assert best["fewest_late"].method == "integer_program"
        assert best["fewest_days"].method == "genetic"
        assert best["highest_utilization"].method == "earliest_deadline_first"
        assert best["least_overtime"].method == "genetic"

    def test_rank_methods_sorted_descending(self, evaluations):
        """Ranking scores are in descending order."""
        ranking = rank_methods(evaluations)
        scores = [score for _, score in ranking]

        assert len(ranking) == 3
        assert scores == sorted(scores, reverse=True)
        assert ranking[-1][0].method == "genetic"

    def test_empty_inputs(self):
        """No evaluations compare to nothing."""
        assert compare_methods([]) == {}
        assert rank_methods([]) == []

    def test_report_lists_methods_and_notes(self, evaluations):
        """The report names every method and carries notes."""
        report = generate_evaluation_report(evaluations)

        assert "SCHEDULING METHOD EVALUATION REPORT" in report
        assert "Genetic Algorithm" in report
        assert "Integer Program" in report
        assert "Earliest Deadline First: overtime on day 1" in report
        assert "RANKING:" in report
