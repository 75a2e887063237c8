"""Dashboard composition over one consistent snapshot of trades and "now".

Every computation below is a pure function of its arguments. ``EngineContext``
captures the clock and the session settings once so that filtering, bucketing,
statistics and the risk gate all agree on the same "today".
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Iterable

from tradelog.config.app_config import AppConfig
from tradelog.filters import RANGE_ALL, WEEK_WINDOW_ROLLING, CustomRange, filter_by_range
from tradelog.metrics.curve import CapitalCurve, build_capital_curve, daily_pnl, max_drawdown
from tradelog.metrics.health import AccountHealth, GoalProgress, compute_account_health, compute_goal_progress
from tradelog.metrics.risk import R_EPSILON, RMultiplePoint, RSummary, compute_r_multiples, summarize_r_multiples
from tradelog.metrics.summary import (
    MIN_TRADES_PER_DAY,
    TRADING_DAYS_PER_MONTH,
    AdvancedStatsSummary,
    OutcomeBucket,
    StatsSummary,
    StreakSummary,
    compute_advanced_statistics,
    compute_asset_breakdown,
    compute_outcome_breakdown,
    compute_statistics,
    compute_streaks,
    is_losing_streak,
)
from tradelog.models import Account, Trade, sort_trades, trades_for_account
from tradelog.risk_gate import DailyRiskResult, evaluate_daily_risk
from tradelog.sessions import SESSION_ROLLOVER_HOUR, compute_session_key

__all__ = [
    "DashboardSnapshot",
    "EngineContext",
    "build_capital_curve",
    "build_dashboard",
    "compute_account_health",
    "compute_advanced_statistics",
    "compute_r_multiples",
    "compute_session_key",
    "compute_statistics",
    "evaluate_daily_risk",
    "filter_by_range",
    "snapshot_to_dict",
]


@dataclass(frozen=True)
class EngineContext:
    now: datetime
    tz: tzinfo | None = None
    rollover_hour: int = SESSION_ROLLOVER_HOUR
    week_window: str = WEEK_WINDOW_ROLLING
    trading_days_per_month: int = TRADING_DAYS_PER_MONTH
    min_trades_per_day: float = MIN_TRADES_PER_DAY
    r_epsilon: float = R_EPSILON
    projection_months: tuple[int, ...] = (1, 3, 6)

    @classmethod
    def from_config(cls, config: AppConfig, *, now: datetime | None = None) -> EngineContext:
        tz = config.sessions.tzinfo
        if now is None:
            now = datetime.now(tz) if tz is not None else datetime.now().astimezone()
        return cls(
            now=now,
            tz=tz,
            rollover_hour=config.sessions.rollover_hour,
            week_window=config.sessions.week_window,
            trading_days_per_month=config.analytics.trading_days_per_month,
            min_trades_per_day=config.analytics.min_trades_per_day,
            r_epsilon=config.analytics.r_epsilon,
            projection_months=tuple(config.analytics.projection_months),
        )

    @property
    def today(self) -> str:
        return compute_session_key(self.now, tz=self.tz, rollover_hour=self.rollover_hour)

    def filter(
        self,
        trades: Iterable[Trade],
        range_kind: str = RANGE_ALL,
        custom: CustomRange | None = None,
    ) -> list[Trade]:
        return filter_by_range(
            trades,
            range_kind,
            custom,
            now=self.now,
            tz=self.tz,
            rollover_hour=self.rollover_hour,
            week_window=self.week_window,
        )

    def evaluate_risk(self, all_trades: Iterable[Trade], account: Account, new_trade: Trade) -> DailyRiskResult:
        return evaluate_daily_risk(
            all_trades,
            account,
            new_trade,
            self.now,
            tz=self.tz,
            rollover_hour=self.rollover_hour,
        )


@dataclass(frozen=True)
class DashboardSnapshot:
    account: Account
    range_kind: str
    session_key: str
    trades: list[Trade]
    stats: StatsSummary
    advanced: AdvancedStatsSummary
    projections: dict[int, float]
    curve: CapitalCurve
    max_drawdown: float
    daily_pnl: list[dict[str, float | str]]
    r_multiples: list[RMultiplePoint]
    r_summary: RSummary
    health: AccountHealth
    goal: GoalProgress
    outcomes: dict[str, OutcomeBucket]
    streaks: StreakSummary
    losing_streak: bool
    assets: list[dict[str, float | int | str]] = field(default_factory=list)


def build_dashboard(
    trades: Iterable[Trade],
    account: Account,
    context: EngineContext,
    range_kind: str = RANGE_ALL,
    custom: CustomRange | None = None,
) -> DashboardSnapshot:
    account_trades = trades_for_account(list(trades), account.account_id)
    sorted_trades = sort_trades(context.filter(account_trades, range_kind, custom), context.tz)

    stats = compute_statistics(sorted_trades, account.deadline, now=context.now)
    advanced = compute_advanced_statistics(
        sorted_trades,
        stats.profit,
        trading_days_per_month=context.trading_days_per_month,
        min_trades_per_day=context.min_trades_per_day,
        tz=context.tz,
    )
    curve = build_capital_curve(sorted_trades, tz=context.tz, rollover_hour=context.rollover_hour)
    r_points = compute_r_multiples(
        sorted_trades,
        epsilon=context.r_epsilon,
        tz=context.tz,
        rollover_hour=context.rollover_hour,
    )

    return DashboardSnapshot(
        account=account,
        range_kind=range_kind,
        session_key=context.today,
        trades=sorted_trades,
        stats=stats,
        advanced=advanced,
        projections={months: advanced.projection(months) for months in context.projection_months},
        curve=curve,
        max_drawdown=max_drawdown(curve),
        daily_pnl=daily_pnl(sorted_trades, tz=context.tz, rollover_hour=context.rollover_hour),
        r_multiples=r_points,
        r_summary=summarize_r_multiples(r_points),
        health=compute_account_health(account_trades, account),
        goal=compute_goal_progress(account_trades, account),
        outcomes=compute_outcome_breakdown(sorted_trades),
        streaks=compute_streaks(sorted_trades),
        losing_streak=is_losing_streak(sorted_trades),
        assets=compute_asset_breakdown(sorted_trades),
    )


def snapshot_to_dict(snapshot: DashboardSnapshot) -> dict[str, Any]:
    payload = asdict(snapshot)
    payload["advanced"]["monthly_projection"] = snapshot.advanced.monthly_projection
    payload["projections"] = {str(months): value for months, value in snapshot.projections.items()}
    payload["trades"] = [trade_to_dict(trade) for trade in snapshot.trades]
    payload["account"] = account_to_dict(snapshot.account)
    return payload


def trade_to_dict(trade: Trade) -> dict[str, Any]:
    payload = asdict(trade)
    payload["direction"] = trade.direction.value
    payload["timestamp"] = trade.timestamp.isoformat()
    payload["exit_time"] = trade.exit_time.isoformat() if trade.exit_time else None
    return payload


def account_to_dict(account: Account) -> dict[str, Any]:
    payload = asdict(account)
    payload["deadline"] = account.deadline.isoformat() if account.deadline else None
    return payload
