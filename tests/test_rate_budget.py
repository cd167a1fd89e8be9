from __future__ import annotations

from src.journal_util.replay.rate_budget import RateBudget

from tests._fakes import FakeClock


def test_capacity_runs_out_after_max_requests() -> None:
    budget = RateBudget(max_per_window=30, window_secs=60.0, clock=FakeClock())

    for _ in range(30):
        assert budget.has_capacity()
        budget.record()

    assert budget.has_capacity() is False


def test_window_rolls_over_once_elapsed() -> None:
    clock = FakeClock()
    budget = RateBudget(max_per_window=2, window_secs=60.0, clock=clock)
    budget.record()
    budget.record()

    clock.advance(59.5)
    assert budget.has_capacity() is False
    assert budget.remaining_window() == 0.5

    clock.advance(0.5)
    assert budget.has_capacity() is True
    assert budget.requests_this_window == 0


def test_remaining_window_never_negative() -> None:
    clock = FakeClock()
    budget = RateBudget(clock=clock)
    clock.advance(120)

    assert budget.remaining_window() == 0.0
