from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from enum import Enum


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class Trade:
    trade_id: str
    timestamp: datetime
    asset: str
    direction: Direction
    entry_price: float
    exit_price: float
    profit: float
    account_id: str | None = None
    stop_loss: float | None = None
    exit_time: datetime | None = None
    size: float | None = None
    session_label: str | None = None
    rating: int | None = None
    notes: str = ""
    emotions: str = ""


@dataclass(frozen=True)
class Account:
    account_id: str
    name: str
    initial_balance: float
    goal: float
    max_drawdown_limit: float
    daily_loss_limit: float | None = None
    daily_profit_target: float | None = None
    deadline: date | None = None
    broker: str | None = None
    currency: str = "USD"
    is_real: bool = False


DEFAULT_ACCOUNT = Account(
    account_id="default-acc-1",
    name="Main Account",
    initial_balance=50_000.0,
    goal=50_000.0,
    max_drawdown_limit=2_500.0,
    broker="NinjaTrader",
)


def trades_for_account(trades: list[Trade], account_id: str) -> list[Trade]:
    return [trade for trade in trades if trade.account_id == account_id]


def sort_trades(trades: list[Trade], tz: tzinfo | None = None) -> list[Trade]:
    """Ascending by execution time; naive timestamps are wall-clock time in ``tz``."""

    def _key(trade: Trade) -> datetime:
        if trade.timestamp.tzinfo is None and tz is not None:
            return trade.timestamp.replace(tzinfo=tz)
        return trade.timestamp.astimezone()

    return sorted(trades, key=_key)
