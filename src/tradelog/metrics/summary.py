from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from typing import Iterable

from tradelog.models import Trade
from tradelog.sessions import localize

Outcome = str

OUTCOME_WIN: Outcome = "win"
OUTCOME_LOSS: Outcome = "loss"
OUTCOME_BREAKEVEN: Outcome = "breakeven"

PROFIT_FACTOR_CAP = 100.0
TRADING_DAYS_PER_MONTH = 20
MIN_TRADES_PER_DAY = 0.5
SECONDS_PER_DAY = 86_400.0


@dataclass(frozen=True)
class StatsSummary:
    profit: float
    total_trades: int
    wins: int
    losses: int
    breakevens: int
    win_rate: float
    best_trade: float
    worst_trade: float
    days_remaining: int | None


@dataclass(frozen=True)
class AdvancedStatsSummary:
    gross_profit: float
    gross_loss: float
    profit_factor: float
    expectancy: float
    days_spanned: float
    trades_per_day: float
    trading_days_per_month: int
    min_trades_per_day: float

    def projection(self, horizon_months: float) -> float:
        """Linear extrapolation of the current expectancy, not a forecast."""
        pace = max(self.trades_per_day, self.min_trades_per_day)
        return self.expectancy * pace * self.trading_days_per_month * horizon_months

    @property
    def monthly_projection(self) -> float:
        return self.projection(1)


@dataclass(frozen=True)
class OutcomeBucket:
    count: int
    pnl: float
    best: float
    worst: float


@dataclass(frozen=True)
class StreakSummary:
    max_consecutive_wins: int
    max_consecutive_losses: int
    current_outcome: Outcome | None
    current_length: int


def classify_outcome(profit: float) -> Outcome:
    if profit > 0:
        return OUTCOME_WIN
    if profit < 0:
        return OUTCOME_LOSS
    return OUTCOME_BREAKEVEN


def compute_statistics(
    sorted_trades: Iterable[Trade],
    deadline: date | None,
    *,
    now: datetime,
) -> StatsSummary:
    trade_list = list(sorted_trades)
    profits = [trade.profit for trade in trade_list]
    total_trades = len(profits)
    wins = sum(1 for value in profits if value > 0)
    losses = sum(1 for value in profits if value < 0)

    win_rate = 0.0
    if total_trades:
        win_rate = wins / total_trades * 100.0

    return StatsSummary(
        profit=sum(profits),
        total_trades=total_trades,
        wins=wins,
        losses=losses,
        breakevens=total_trades - wins - losses,
        win_rate=win_rate,
        best_trade=max([0.0, *profits]),
        worst_trade=min([0.0, *profits]),
        days_remaining=days_until(deadline, now=now),
    )


def days_until(deadline: date | None, *, now: datetime) -> int | None:
    if deadline is None:
        return None
    deadline_start = datetime.combine(deadline, time.min, tzinfo=now.tzinfo)
    return math.ceil((deadline_start - now).total_seconds() / SECONDS_PER_DAY)


def compute_advanced_statistics(
    sorted_trades: Iterable[Trade],
    net_profit: float,
    *,
    trading_days_per_month: int = TRADING_DAYS_PER_MONTH,
    min_trades_per_day: float = MIN_TRADES_PER_DAY,
    tz: tzinfo | None = None,
) -> AdvancedStatsSummary:
    trade_list = list(sorted_trades)
    total_trades = len(trade_list)

    gross_profit = sum(trade.profit for trade in trade_list if trade.profit > 0)
    gross_loss = abs(sum(trade.profit for trade in trade_list if trade.profit < 0))

    if gross_loss:
        profit_factor = gross_profit / gross_loss
    else:
        profit_factor = PROFIT_FACTOR_CAP if gross_profit > 0 else 0.0

    expectancy = 0.0
    if total_trades:
        expectancy = net_profit / total_trades

    days_spanned = 0.0
    trades_per_day = 0.0
    if total_trades >= 2:
        span = localize(trade_list[-1].timestamp, tz) - localize(trade_list[0].timestamp, tz)
        days_spanned = span.total_seconds() / SECONDS_PER_DAY
        trades_per_day = total_trades / max(1.0, days_spanned)

    return AdvancedStatsSummary(
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        profit_factor=profit_factor,
        expectancy=expectancy,
        days_spanned=days_spanned,
        trades_per_day=trades_per_day,
        trading_days_per_month=trading_days_per_month,
        min_trades_per_day=min_trades_per_day,
    )


def compute_outcome_breakdown(trades: Iterable[Trade]) -> dict[Outcome, OutcomeBucket]:
    buckets: dict[Outcome, list[float]] = {
        OUTCOME_WIN: [],
        OUTCOME_LOSS: [],
        OUTCOME_BREAKEVEN: [],
    }
    for trade in trades:
        buckets[classify_outcome(trade.profit)].append(trade.profit)
    return {
        outcome: OutcomeBucket(
            count=len(values),
            pnl=sum(values),
            best=max(values, default=0.0),
            worst=min(values, default=0.0),
        )
        for outcome, values in buckets.items()
    }


def compute_streaks(sorted_trades: Iterable[Trade]) -> StreakSummary:
    max_wins = 0
    max_losses = 0
    current_wins = 0
    current_losses = 0
    last_outcome: Outcome | None = None

    for trade in sorted_trades:
        outcome = classify_outcome(trade.profit)
        if outcome == OUTCOME_WIN:
            current_wins += 1
            current_losses = 0
        elif outcome == OUTCOME_LOSS:
            current_losses += 1
            current_wins = 0
        else:
            current_wins = 0
            current_losses = 0
        last_outcome = outcome
        max_wins = max(max_wins, current_wins)
        max_losses = max(max_losses, current_losses)

    current_length = 0
    if last_outcome == OUTCOME_WIN:
        current_length = current_wins
    elif last_outcome == OUTCOME_LOSS:
        current_length = current_losses
    return StreakSummary(
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
        current_outcome=last_outcome,
        current_length=current_length,
    )


def is_losing_streak(sorted_trades: Iterable[Trade], length: int = 2) -> bool:
    trade_list = list(sorted_trades)
    if len(trade_list) < length:
        return False
    return all(trade.profit < 0 for trade in trade_list[-length:])


def compute_asset_breakdown(trades: Iterable[Trade]) -> list[dict[str, float | int | str]]:
    buckets: dict[str, list[float]] = {}
    for trade in trades:
        buckets.setdefault(trade.asset, []).append(trade.profit)

    rows: list[dict[str, float | int | str]] = []
    for asset, values in buckets.items():
        wins = sum(1 for value in values if value > 0)
        rows.append(
            {
                "asset": asset,
                "trades": len(values),
                "profit": sum(values),
                "win_rate": wins / len(values) * 100.0,
            }
        )
    rows.sort(key=lambda row: row["profit"], reverse=True)
    return rows
