from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable

from tradelog.models import Direction, Trade
from tradelog.sessions import SESSION_ROLLOVER_HOUR, compute_session_key

R_EPSILON = 1e-6


@dataclass(frozen=True)
class RMultiplePoint:
    index: int
    trade_id: str
    session_key: str
    asset: str
    r_multiple: float
    profit: float


@dataclass(frozen=True)
class RSummary:
    count: int
    avg_r: float | None
    max_r: float | None
    min_r: float | None
    pct_r_below_minus_one: float | None


def r_multiple_for_trade(trade: Trade, *, epsilon: float = R_EPSILON) -> float | None:
    if not trade.stop_loss or trade.stop_loss == trade.entry_price:
        return None
    risk = abs(trade.entry_price - trade.stop_loss)
    if risk < epsilon:
        return None
    if trade.direction == Direction.LONG:
        reward = trade.exit_price - trade.entry_price
    else:
        reward = trade.entry_price - trade.exit_price
    return round(reward / risk, 2)


def compute_r_multiples(
    sorted_trades: Iterable[Trade],
    *,
    epsilon: float = R_EPSILON,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> list[RMultiplePoint]:
    points: list[RMultiplePoint] = []
    for index, trade in enumerate(sorted_trades, start=1):
        r_value = r_multiple_for_trade(trade, epsilon=epsilon)
        if r_value is None:
            continue
        points.append(
            RMultiplePoint(
                index=index,
                trade_id=trade.trade_id,
                session_key=compute_session_key(trade.timestamp, tz=tz, rollover_hour=rollover_hour),
                asset=trade.asset,
                r_multiple=r_value,
                profit=trade.profit,
            )
        )
    return points


def summarize_r_multiples(points: Iterable[RMultiplePoint]) -> RSummary:
    values = [point.r_multiple for point in points]
    if not values:
        return RSummary(count=0, avg_r=None, max_r=None, min_r=None, pct_r_below_minus_one=None)
    below = sum(1 for value in values if value < -1.0)
    return RSummary(
        count=len(values),
        avg_r=sum(values) / len(values),
        max_r=max(values),
        min_r=min(values),
        pct_r_below_minus_one=below / len(values),
    )
