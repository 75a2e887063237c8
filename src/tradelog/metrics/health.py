from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tradelog.models import Account, Trade


@dataclass(frozen=True)
class AccountHealth:
    total_profit: float
    current_balance: float
    liquidation_level: float
    cushion: float
    health_percent: float


@dataclass(frozen=True)
class GoalProgress:
    total_profit: float
    goal: float
    remaining: float
    progress_percent: float


def compute_account_health(all_trades: Iterable[Trade], account: Account) -> AccountHealth:
    """Drawdown buffer over the account's whole history.

    Not clamped: above 100 the balance has grown past the original buffer,
    below 0 the drawdown limit has been breached.
    """
    total_profit = sum(trade.profit for trade in all_trades)
    current_balance = account.initial_balance + total_profit
    liquidation_level = account.initial_balance - account.max_drawdown_limit
    cushion = current_balance - liquidation_level
    return AccountHealth(
        total_profit=total_profit,
        current_balance=current_balance,
        liquidation_level=liquidation_level,
        cushion=cushion,
        health_percent=cushion / account.max_drawdown_limit * 100.0,
    )


def compute_goal_progress(all_trades: Iterable[Trade], account: Account) -> GoalProgress:
    total_profit = sum(trade.profit for trade in all_trades)
    progress = total_profit / (account.goal or 1.0) * 100.0
    return GoalProgress(
        total_profit=total_profit,
        goal=account.goal,
        remaining=max(0.0, account.goal - total_profit),
        progress_percent=min(100.0, max(0.0, progress)),
    )
