from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Iterable

from tradelog.models import Trade
from tradelog.sessions import SESSION_ROLLOVER_HOUR, compute_session_key, localize, parse_session_key, session_date

RANGE_TODAY = "today"
RANGE_WEEK = "week"
RANGE_MONTH = "month"
RANGE_ALL = "all"
RANGE_CUSTOM = "custom"
RANGE_KINDS = (RANGE_TODAY, RANGE_WEEK, RANGE_MONTH, RANGE_ALL, RANGE_CUSTOM)

WEEK_WINDOW_ROLLING = "rolling"
WEEK_WINDOW_SESSION = "session"
WEEK_WINDOWS = (WEEK_WINDOW_ROLLING, WEEK_WINDOW_SESSION)

_WEEK = timedelta(days=7)


@dataclass(frozen=True)
class CustomRange:
    start: str | None = None
    end: str | None = None


def filter_by_range(
    trades: Iterable[Trade],
    range_kind: str,
    custom: CustomRange | None = None,
    *,
    now: datetime,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
    week_window: str = WEEK_WINDOW_ROLLING,
) -> list[Trade]:
    trade_list = list(trades)
    kind = (range_kind or RANGE_ALL).strip().lower()

    if kind == RANGE_TODAY:
        today = compute_session_key(now, tz=tz, rollover_hour=rollover_hour)
        return [trade for trade in trade_list if _key(trade, tz, rollover_hour) == today]

    if kind == RANGE_WEEK:
        if week_window == WEEK_WINDOW_SESSION:
            last = session_date(now, tz=tz, rollover_hour=rollover_hour)
            first = (last - timedelta(days=6)).isoformat()
            last_key = last.isoformat()
            return [
                trade for trade in trade_list if first <= _key(trade, tz, rollover_hour) <= last_key
            ]
        local_now = localize(now, tz)
        return [trade for trade in trade_list if local_now - localize(trade.timestamp, tz) <= _WEEK]

    if kind == RANGE_MONTH:
        local_now = localize(now, tz)
        selected = []
        for trade in trade_list:
            day = parse_session_key(_key(trade, tz, rollover_hour))
            if day.year == local_now.year and day.month == local_now.month:
                selected.append(trade)
        return selected

    if kind == RANGE_CUSTOM:
        if custom is None or not custom.start:
            return trade_list
        selected = []
        for trade in trade_list:
            key = _key(trade, tz, rollover_hour)
            if key < custom.start:
                continue
            if custom.end and key > custom.end:
                continue
            selected.append(trade)
        return selected

    return trade_list


def _key(trade: Trade, tz: tzinfo | None, rollover_hour: int) -> str:
    return compute_session_key(trade.timestamp, tz=tz, rollover_hour=rollover_hour)
