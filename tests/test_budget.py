"""
Tests for BudgetEnforcer.
"""
import logging

import pytest

from stableflip.risk.budget import BudgetConfig, BudgetEnforcer

from conftest import MAKER


@pytest.fixture
def budget(store):
    return BudgetEnforcer(store, BudgetConfig(max_tx_per_day=5, max_cancels_per_hour=2))


class TestDailyBudget:

    def test_check_does_not_mutate(self, budget, state):
        check = budget.check_tx_budget(state)
        assert check.allowed
        assert check.daily_remaining == 5
        assert check.hourly_remaining is None
        assert state.tx_counters.daily_tx_count == 0

    def test_increment_returns_post_increment_remaining(self, budget, state):
        first = budget.increment_tx_counter(state)
        assert first.allowed
        assert first.daily_remaining == 4
        assert state.tx_counters.daily_tx_count == 1

    def test_exhaustion(self, budget, state):
        for _ in range(5):
            assert budget.increment_tx_counter(state).allowed
        rejected = budget.increment_tx_counter(state)
        assert not rejected.allowed
        assert rejected.daily_remaining == 0
        assert state.tx_counters.daily_tx_count == 5
        assert not budget.check_tx_budget(state).allowed

    def test_exhaustion_is_logged(self, budget, state, caplog):
        state.tx_counters.daily_tx_count = 5
        with caplog.at_level(logging.WARNING, logger="stableflip"):
            budget.increment_tx_counter(state)
        assert '"event":"budget_exhausted"' in caplog.text

    def test_increment_is_persisted(self, budget, store, state):
        budget.increment_tx_counter(state)
        budget.increment_tx_counter(state)
        assert store.load(MAKER).tx_counters.daily_tx_count == 2

    def test_new_utc_day_resets(self, budget, state, utc_clock):
        state.tx_counters.daily_tx_count = 5
        assert not budget.check_tx_budget(state).allowed

        utc_clock.advance(hours=12)  # 2025-06-02 00:00 UTC
        check = budget.increment_tx_counter(state)
        assert check.allowed
        assert state.tx_counters.daily_tx_count == 1
        assert state.tx_counters.daily_reset_at.startswith("2025-06-02")

    def test_same_day_does_not_reset(self, budget, state, utc_clock):
        budget.increment_tx_counter(state)
        utc_clock.advance(hours=11, minutes=59)
        budget.increment_tx_counter(state)
        assert state.tx_counters.daily_tx_count == 2


class TestCancelBudget:

    def test_cancel_uses_both_windows(self, budget, state):
        check = budget.increment_tx_counter(state, is_cancel=True)
        assert check.allowed
        assert check.daily_remaining == 4
        assert check.hourly_remaining == 1
        assert state.tx_counters.daily_tx_count == 1
        assert state.tx_counters.hourly_cancel_count == 1

    def test_placements_do_not_touch_hourly(self, budget, state):
        budget.increment_tx_counter(state)
        assert state.tx_counters.hourly_cancel_count == 0

    def test_hourly_cap(self, budget, state):
        assert budget.increment_tx_counter(state, is_cancel=True).allowed
        assert budget.increment_tx_counter(state, is_cancel=True).allowed
        rejected = budget.increment_tx_counter(state, is_cancel=True)
        assert not rejected.allowed
        assert rejected.hourly_remaining == 0
        # placements still fit in the daily window
        assert budget.check_tx_budget(state).allowed

    def test_hourly_window_resets_after_an_hour(self, budget, state, utc_clock):
        budget.increment_tx_counter(state, is_cancel=True)
        budget.increment_tx_counter(state, is_cancel=True)

        utc_clock.advance(minutes=59)
        assert not budget.check_tx_budget(state, is_cancel=True).allowed

        utc_clock.advance(minutes=1)
        check = budget.increment_tx_counter(state, is_cancel=True)
        assert check.allowed
        assert state.tx_counters.hourly_cancel_count == 1
        assert state.tx_counters.daily_tx_count == 3

    def test_cancel_blocked_by_daily_cap(self, budget, state):
        state.tx_counters.daily_tx_count = 5
        check = budget.check_tx_budget(state, is_cancel=True)
        assert not check.allowed
        assert check.hourly_remaining == 2
