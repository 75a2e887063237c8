from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable

from tradelog.models import Trade
from tradelog.sessions import SESSION_ROLLOVER_HOUR, compute_session_key


@dataclass(frozen=True)
class CurvePoint:
    session_key: str
    value: float
    profit: float


@dataclass(frozen=True)
class CapitalCurve:
    points: list[CurvePoint]
    zero_offset: float


def build_capital_curve(
    sorted_trades: Iterable[Trade],
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> CapitalCurve:
    """Cumulative P&L per trade, starting from zero for the given period.

    ``zero_offset`` is the fraction of the chart height (from the top) at which
    the series crosses zero, used as the stop of a two-colour gradient.
    """
    running = 0.0
    points: list[CurvePoint] = []
    for trade in sorted_trades:
        running += trade.profit
        points.append(
            CurvePoint(
                session_key=compute_session_key(trade.timestamp, tz=tz, rollover_hour=rollover_hour),
                value=running,
                profit=trade.profit,
            )
        )
    return CapitalCurve(points=points, zero_offset=zero_crossing_offset([point.value for point in points]))


def zero_crossing_offset(values: list[float]) -> float:
    if not values:
        return 0.0
    data_max = max(values)
    data_min = min(values)
    if data_max <= 0:
        return 0.0
    if data_min >= 0:
        return 1.0
    return data_max / (data_max - data_min)


def max_drawdown(curve: CapitalCurve) -> float:
    peak = 0.0
    worst = 0.0
    for point in curve.points:
        if point.value > peak:
            peak = point.value
        drawdown = peak - point.value
        if drawdown > worst:
            worst = drawdown
    return worst


def daily_pnl(
    sorted_trades: Iterable[Trade],
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> list[dict[str, float | str]]:
    buckets: dict[str, float] = {}
    for trade in sorted_trades:
        key = compute_session_key(trade.timestamp, tz=tz, rollover_hour=rollover_hour)
        buckets[key] = buckets.get(key, 0.0) + trade.profit
    return [{"session_key": key, "profit": value} for key, value in buckets.items()]
