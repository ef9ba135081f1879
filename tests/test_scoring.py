"""Tests for the scoring engine."""

import math
from datetime import timedelta

import pytest
from conftest import make_record, make_snapshot

from next_actions_mcp.core.eligibility import resolve_eligibility
from next_actions_mcp.core.scoring import (
    build_score_inputs,
    compute_score,
    context_factor,
    due_factor,
    score_snapshot,
    start_factor,
)
from next_actions_mcp.models.results import ScoreInput


class TestFactors:
    """Tests for the individual factors."""

    def test_due_factor(self, now):
        """Overdue is 100, horizon edge is 40, no date is 35."""
        assert due_factor(None, now) == 35
        assert due_factor(now, now) == 100
        assert due_factor(now - timedelta(days=1), now) == 100
        assert due_factor(now + timedelta(days=14), now) == pytest.approx(40)
        assert due_factor(now + timedelta(days=30), now) == pytest.approx(40)
        assert due_factor(now + timedelta(days=7), now) == pytest.approx(70)

    def test_start_factor(self, now):
        """Started or unscheduled is 100, ramping in over 14 days."""
        assert start_factor(None, now) == 100
        assert start_factor(now - timedelta(hours=1), now) == 100
        assert start_factor(now + timedelta(days=7), now) == pytest.approx(50)
        assert start_factor(now + timedelta(days=20), now) == pytest.approx(0)

    def test_simple_context_is_constant(self):
        """The simple variant uses a flat context of 100."""
        assert context_factor(ScoreInput()) == 100

    def test_rich_context(self):
        """Demand, dependents and wait time blend with diminishing returns."""
        inputs = ScoreInput(demand=80, dependent_count=4, wait_days=7)
        expected = 25 + 0.35 * 80 + 0.25 * 100 * (1 - math.exp(-1)) + 0.15 * 50
        assert context_factor(inputs) == pytest.approx(expected)

    def test_rich_context_saturates(self):
        """More dependents help less and less."""
        few = context_factor(ScoreInput(dependent_count=2))
        many = context_factor(ScoreInput(dependent_count=20))
        more = context_factor(ScoreInput(dependent_count=40))
        assert few < many < more
        assert more - many < many - few


class TestComputeScore:
    """Tests for the weighted score."""

    def test_reference_example(self, now):
        """importance=80, urgency=60, no dates scores 69.000."""
        assert compute_score(ScoreInput(importance=80, urgency=60), now) == 69.0

    def test_null_priority_is_neutral(self, now):
        """Null importance/urgency count as 50."""
        assert compute_score(ScoreInput(), now) == compute_score(ScoreInput(importance=50, urgency=50), now)

    def test_out_of_range_priority_is_clamped(self, now):
        """Inputs outside 0-100 are clamped."""
        assert compute_score(ScoreInput(importance=500, urgency=-20), now) == compute_score(
            ScoreInput(importance=100, urgency=0), now
        )

    def test_non_finite_priority_is_neutral(self, now):
        """NaN never leaks into the score."""
        assert compute_score(ScoreInput(importance=float("nan")), now) == compute_score(ScoreInput(), now)

    def test_bounds_and_rounding(self, now):
        """Scores stay within [0, 100] with 3 decimals."""
        high = compute_score(ScoreInput(importance=100, urgency=100, end_time=now - timedelta(days=1)), now)
        assert high == 100.0
        odd = compute_score(ScoreInput(importance=33.33333, urgency=66.66666), now)
        assert odd == round(odd, 3)
        assert 0 <= odd <= 100

    def test_deterministic(self, now):
        """Same inputs, same score."""
        inputs = ScoreInput(importance=12.5, urgency=99, end_time=now + timedelta(days=2))
        assert compute_score(inputs, now) == compute_score(inputs, now)


class TestGraphInputs:
    """Tests for dependency-derived score inputs."""

    def test_demand_and_dependents(self, schema, now):
        """A task inherits demand from open transitive dependents."""
        snapshot = make_snapshot(
            make_record("base"),
            make_record("mid", depends_on=["base"], importance=20),
            make_record("top", depends_on=["mid"], importance=100, urgency=100),
            make_record("closed", "Done", depends_on=["base"], importance=100),
        )
        inputs = build_score_inputs(snapshot, schema, now)
        assert inputs["base"].dependent_count == 2
        assert inputs["base"].demand == compute_score(ScoreInput(importance=100, urgency=100), now)
        assert inputs["top"].dependent_count == 0
        assert inputs["top"].demand == 0

    def test_wait_days(self, schema, now):
        """Wait time counts from the last modification, else creation."""
        snapshot = make_snapshot(
            make_record("a", modified_at=now - timedelta(days=3), created_at=now - timedelta(days=10)),
            make_record("b", created_at=now - timedelta(days=10)),
            make_record("c"),
        )
        inputs = build_score_inputs(snapshot, schema, now)
        assert inputs["a"].wait_days == pytest.approx(3)
        assert inputs["b"].wait_days == pytest.approx(10)
        assert inputs["c"].wait_days == 0

    def test_dependency_cycle_terminates(self, schema, now):
        """Reverse walks over cycles finish."""
        snapshot = make_snapshot(make_record("a", depends_on=["b"]), make_record("b", depends_on=["a"]))
        inputs = build_score_inputs(snapshot, schema, now)
        assert inputs["a"].dependent_count == 1

    def test_score_snapshot(self, schema, now):
        """Scores attach to every result; rich scoring boosts blockers."""
        snapshot = make_snapshot(
            make_record("blocker"),
            make_record("dependent", depends_on=["blocker"], importance=90),
            make_record("loner"),
        )
        results = resolve_eligibility(snapshot, schema, now)
        simple = {r.task_id: r.score for r in score_snapshot(results, snapshot, schema, now, rich=False)}
        rich = {r.task_id: r.score for r in score_snapshot(results, snapshot, schema, now, rich=True)}
        assert simple["blocker"] == simple["loner"]
        assert rich["blocker"] > rich["loner"]
