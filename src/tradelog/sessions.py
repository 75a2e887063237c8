from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable

from tradelog.models import Trade

SESSION_ROLLOVER_HOUR = 18


@dataclass(frozen=True)
class SessionDay:
    session_key: str
    profit: float
    trades: int
    wins: int

    @property
    def win_rate(self) -> float:
        if not self.trades:
            return 0.0
        return self.wins / self.trades * 100.0


@dataclass(frozen=True)
class MonthCalendar:
    year: int
    month: int
    days: list[SessionDay]
    total_profit: float
    total_trades: int


def localize(timestamp: datetime, tz: tzinfo | None = None) -> datetime:
    """Express ``timestamp`` in the session timezone.

    ``tz=None`` means the machine's local zone. Naive timestamps are taken as
    wall-clock time in the session zone.
    """
    if tz is None:
        return timestamp.astimezone()
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=tz)
    return timestamp.astimezone(tz)


def session_date(
    timestamp: datetime,
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> date:
    local = localize(timestamp, tz)
    day = local.date()
    if rollover_hour and local.hour >= rollover_hour:
        day += timedelta(days=1)
    return day


def compute_session_key(
    timestamp: datetime,
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> str:
    return session_date(timestamp, tz=tz, rollover_hour=rollover_hour).isoformat()


def parse_session_key(key: str) -> date:
    return date.fromisoformat(key)


def group_by_session(
    trades: Iterable[Trade],
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> dict[str, SessionDay]:
    profits: dict[str, float] = {}
    counts: dict[str, int] = {}
    wins: dict[str, int] = {}
    for trade in trades:
        key = compute_session_key(trade.timestamp, tz=tz, rollover_hour=rollover_hour)
        profits[key] = profits.get(key, 0.0) + trade.profit
        counts[key] = counts.get(key, 0) + 1
        if trade.profit > 0:
            wins[key] = wins.get(key, 0) + 1
    return {
        key: SessionDay(session_key=key, profit=profits[key], trades=counts[key], wins=wins.get(key, 0))
        for key in sorted(profits)
    }


def month_calendar(
    trades: Iterable[Trade],
    year: int,
    month: int,
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> MonthCalendar:
    grouped = group_by_session(trades, tz=tz, rollover_hour=rollover_hour)
    days = []
    for key, day in grouped.items():
        parsed = parse_session_key(key)
        if parsed.year == year and parsed.month == month:
            days.append(day)
    return MonthCalendar(
        year=year,
        month=month,
        days=days,
        total_profit=sum(day.profit for day in days),
        total_trades=sum(day.trades for day in days),
    )
