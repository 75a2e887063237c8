"""Tests for the capital curve, statistics, R-multiples and account health."""

import math
from datetime import date, datetime, timedelta, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tradelog.metrics.curve import build_capital_curve, daily_pnl, max_drawdown, zero_crossing_offset
from tradelog.metrics.health import compute_account_health, compute_goal_progress
from tradelog.metrics.risk import compute_r_multiples, r_multiple_for_trade, summarize_r_multiples
from tradelog.metrics.summary import (
    OUTCOME_BREAKEVEN,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    PROFIT_FACTOR_CAP,
    compute_advanced_statistics,
    compute_asset_breakdown,
    compute_outcome_breakdown,
    compute_statistics,
    compute_streaks,
    days_until,
    is_losing_streak,
)
from tradelog.models import Account, Direction, Trade

UTC = timezone.utc
NOW = datetime(2024, 3, 13, 12, 0, tzinfo=UTC)
START = datetime(2024, 3, 1, 10, 0, tzinfo=UTC)


def _trade(
    profit: float,
    *,
    index: int = 0,
    asset: str = "ES",
    direction: Direction = Direction.LONG,
    entry: float = 100.0,
    exit_price: float = 101.0,
    stop: float | None = None,
    timestamp: datetime | None = None,
) -> Trade:
    return Trade(
        trade_id=f"t{index}",
        timestamp=timestamp or START + timedelta(hours=index),
        asset=asset,
        direction=direction,
        entry_price=entry,
        exit_price=exit_price,
        profit=profit,
        account_id="acc",
        stop_loss=stop,
    )


def _series(profits: list[float]) -> list[Trade]:
    return [_trade(profit, index=i) for i, profit in enumerate(profits)]


ACCOUNT = Account(
    account_id="acc",
    name="Eval",
    initial_balance=50_000.0,
    goal=5_000.0,
    max_drawdown_limit=2_500.0,
)


class TestCapitalCurve:
    def test_cumulative_values(self):
        curve = build_capital_curve(_series([100.0, -50.0, 30.0]), tz=UTC)
        assert [point.value for point in curve.points] == [100.0, 50.0, 80.0]
        assert [point.profit for point in curve.points] == [100.0, -50.0, 30.0]
        assert curve.points[0].session_key == "2024-03-01"

    def test_zero_offset_for_mixed_series(self):
        assert zero_crossing_offset([100.0, -50.0, 30.0]) == pytest.approx(100.0 / 150.0)

    def test_zero_offset_edge_cases(self):
        assert zero_crossing_offset([]) == 0.0
        assert zero_crossing_offset([10.0, 20.0]) == 1.0
        assert zero_crossing_offset([0.0, 5.0]) == 1.0
        assert zero_crossing_offset([-10.0, -5.0]) == 0.0
        assert zero_crossing_offset([0.0]) == 0.0

    @given(values=st.lists(st.floats(min_value=-1e6, max_value=1e6), min_size=1, max_size=30))
    @settings(max_examples=100)
    def test_zero_offset_is_a_fraction(self, values: list[float]):
        assert 0.0 <= zero_crossing_offset(values) <= 1.0

    def test_empty_curve(self):
        curve = build_capital_curve([], tz=UTC)
        assert curve.points == []
        assert curve.zero_offset == 0.0
        assert max_drawdown(curve) == 0.0

    def test_max_drawdown_from_running_peak(self):
        curve = build_capital_curve(_series([100.0, -50.0, 30.0, -100.0, 10.0]), tz=UTC)
        assert max_drawdown(curve) == 120.0

    def test_daily_pnl_by_session(self):
        trades = [
            _trade(10.0, index=0, timestamp=datetime(2024, 3, 1, 9, 0, tzinfo=UTC)),
            _trade(-4.0, index=1, timestamp=datetime(2024, 3, 1, 18, 0, tzinfo=UTC)),
            _trade(6.0, index=2, timestamp=datetime(2024, 3, 2, 9, 0, tzinfo=UTC)),
        ]
        assert daily_pnl(trades, tz=UTC) == [
            {"session_key": "2024-03-01", "profit": 10.0},
            {"session_key": "2024-03-02", "profit": 2.0},
        ]


class TestStatistics:
    def test_empty_statistics(self):
        stats = compute_statistics([], None, now=NOW)
        assert stats.profit == 0.0
        assert stats.total_trades == 0
        assert stats.win_rate == 0.0
        assert stats.best_trade == 0.0
        assert stats.worst_trade == 0.0
        assert stats.days_remaining is None

    def test_counts_and_extremes(self):
        stats = compute_statistics(_series([200.0, -50.0, 0.0, 100.0]), None, now=NOW)
        assert stats.profit == 250.0
        assert (stats.wins, stats.losses, stats.breakevens) == (2, 1, 1)
        assert stats.win_rate == 50.0
        assert stats.best_trade == 200.0
        assert stats.worst_trade == -50.0

    def test_best_and_worst_are_clamped_at_zero(self):
        losers = compute_statistics(_series([-10.0, -20.0]), None, now=NOW)
        assert losers.best_trade == 0.0
        winners = compute_statistics(_series([10.0, 20.0]), None, now=NOW)
        assert winners.worst_trade == 0.0

    def test_days_until_deadline(self):
        assert days_until(date(2024, 3, 20), now=NOW) == 7
        assert days_until(date(2024, 3, 13), now=NOW) == 0
        assert days_until(date(2024, 3, 10), now=NOW) == -3
        assert days_until(None, now=NOW) is None

    def test_profit_factor(self):
        mixed = compute_advanced_statistics(_series([300.0, -100.0]), 200.0)
        assert mixed.profit_factor == 3.0
        winners_only = compute_advanced_statistics(_series([50.0]), 50.0)
        assert winners_only.profit_factor == PROFIT_FACTOR_CAP
        losers_only = compute_advanced_statistics(_series([-50.0]), -50.0)
        assert losers_only.profit_factor == 0.0

    def test_expectancy_and_projection(self):
        trades = [
            _trade(300.0, index=0, timestamp=START),
            _trade(-100.0, index=1, timestamp=START + timedelta(days=10)),
        ]
        advanced = compute_advanced_statistics(trades, 200.0)
        assert advanced.expectancy == 100.0
        assert advanced.days_spanned == 10.0
        assert advanced.trades_per_day == pytest.approx(0.2)
        # The pace is floored at half a trade per day.
        assert advanced.monthly_projection == pytest.approx(100.0 * 0.5 * 20)
        assert advanced.projection(3) == pytest.approx(3 * advanced.monthly_projection)

    def test_short_span_counts_as_one_day(self):
        trades = _series([10.0, 20.0, 30.0])
        advanced = compute_advanced_statistics(trades, 60.0)
        assert advanced.trades_per_day == 3.0
        assert advanced.monthly_projection == pytest.approx(20.0 * 3.0 * 20)

    def test_span_reads_naive_timestamps_in_session_zone(self):
        session_zone = timezone(timedelta(hours=-5))
        trades = [
            _trade(10.0, index=0, timestamp=datetime(2024, 3, 1, 10, 0)),
            _trade(20.0, index=1, timestamp=datetime(2024, 3, 2, 15, 0, tzinfo=UTC)),
        ]
        advanced = compute_advanced_statistics(trades, 30.0, tz=session_zone)
        assert advanced.days_spanned == 1.0

    def test_single_trade_has_no_span(self):
        advanced = compute_advanced_statistics(_series([10.0]), 10.0)
        assert advanced.days_spanned == 0.0
        assert advanced.trades_per_day == 0.0

    def test_empty_advanced(self):
        advanced = compute_advanced_statistics([], 0.0)
        assert advanced.expectancy == 0.0
        assert advanced.profit_factor == 0.0
        assert advanced.monthly_projection == 0.0


class TestBreakdowns:
    def test_outcome_buckets(self):
        buckets = compute_outcome_breakdown(_series([100.0, 40.0, -30.0, 0.0]))
        assert buckets[OUTCOME_WIN].count == 2
        assert buckets[OUTCOME_WIN].pnl == 140.0
        assert buckets[OUTCOME_WIN].best == 100.0
        assert buckets[OUTCOME_WIN].worst == 40.0
        assert buckets[OUTCOME_LOSS].count == 1
        assert buckets[OUTCOME_BREAKEVEN].count == 1

    def test_streaks(self):
        streaks = compute_streaks(_series([10.0, 10.0, -5.0, -5.0, -5.0, 0.0, 10.0]))
        assert streaks.max_consecutive_wins == 2
        assert streaks.max_consecutive_losses == 3
        assert streaks.current_outcome == OUTCOME_WIN
        assert streaks.current_length == 1

    def test_losing_streak_needs_two_recent_losses(self):
        assert is_losing_streak(_series([10.0, -5.0, -5.0]))
        assert not is_losing_streak(_series([-5.0, 10.0, -5.0]))
        assert not is_losing_streak(_series([-5.0]))

    def test_asset_breakdown_sorted_by_profit(self):
        trades = [
            _trade(10.0, index=0, asset="ES"),
            _trade(50.0, index=1, asset="NQ"),
            _trade(-20.0, index=2, asset="ES"),
        ]
        rows = compute_asset_breakdown(trades)
        assert [row["asset"] for row in rows] == ["NQ", "ES"]
        assert rows[1]["trades"] == 2
        assert rows[1]["win_rate"] == 50.0


class TestRMultiples:
    def test_long_and_short_symmetry(self):
        long_trade = _trade(500.0, entry=100.0, exit_price=110.0, stop=95.0)
        short_trade = _trade(500.0, direction=Direction.SHORT, entry=100.0, exit_price=90.0, stop=105.0)
        assert r_multiple_for_trade(long_trade) == 2.0
        assert r_multiple_for_trade(short_trade) == 2.0

    def test_rounded_to_two_decimals(self):
        trade = _trade(10.0, entry=100.0, exit_price=101.0, stop=97.0)
        assert r_multiple_for_trade(trade) == 0.33

    def test_ineligible_trades(self):
        assert r_multiple_for_trade(_trade(10.0, stop=None)) is None
        assert r_multiple_for_trade(_trade(10.0, stop=100.0)) is None
        assert r_multiple_for_trade(_trade(10.0, entry=100.0, stop=100.0000001)) is None

    def test_index_counts_skipped_trades(self):
        trades = [
            _trade(10.0, index=0, entry=100.0, exit_price=102.0, stop=99.0),
            _trade(10.0, index=1, stop=None),
            _trade(-10.0, index=2, entry=100.0, exit_price=98.5, stop=99.0),
        ]
        points = compute_r_multiples(trades, tz=UTC)
        assert [point.index for point in points] == [1, 3]
        assert [point.r_multiple for point in points] == [2.0, -1.5]

        summary = summarize_r_multiples(points)
        assert summary.count == 2
        assert summary.avg_r == pytest.approx(0.25)
        assert summary.max_r == 2.0
        assert summary.min_r == -1.5
        assert summary.pct_r_below_minus_one == 0.5

    def test_empty_summary(self):
        summary = summarize_r_multiples([])
        assert summary.count == 0
        assert summary.avg_r is None


class TestAccountHealth:
    def test_health_after_losses(self):
        health = compute_account_health(_series([-600.0, -400.0]), ACCOUNT)
        assert health.current_balance == 49_000.0
        assert health.liquidation_level == 47_500.0
        assert health.cushion == 1_500.0
        assert health.health_percent == 60.0

    def test_health_is_not_clamped(self):
        above = compute_account_health(_series([1_250.0]), ACCOUNT)
        assert above.health_percent == 150.0
        below = compute_account_health(_series([-3_000.0]), ACCOUNT)
        assert below.health_percent == -20.0

    def test_fresh_account_is_fully_healthy(self):
        assert compute_account_health([], ACCOUNT).health_percent == 100.0

    def test_goal_progress_is_clamped(self):
        assert compute_goal_progress(_series([1_000.0]), ACCOUNT).progress_percent == 20.0
        assert compute_goal_progress(_series([-1_000.0]), ACCOUNT).progress_percent == 0.0
        reached = compute_goal_progress(_series([6_000.0]), ACCOUNT)
        assert reached.progress_percent == 100.0
        assert reached.remaining == 0.0

    def test_zero_goal_does_not_divide_by_zero(self):
        account = Account(
            account_id="acc",
            name="No goal",
            initial_balance=10_000.0,
            goal=0.0,
            max_drawdown_limit=1_000.0,
        )
        progress = compute_goal_progress(_series([0.5]), account)
        assert math.isclose(progress.progress_percent, 50.0)
