from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime, tzinfo
from enum import Enum
from typing import Iterable

from tradelog.models import Account, Trade, sort_trades
from tradelog.sessions import SESSION_ROLLOVER_HOUR, compute_session_key

CATEGORY_RISK = "risk"
CATEGORY_TRADE = "trade"

LEVEL_SUCCESS = "success"
LEVEL_INFO = "info"
LEVEL_ERROR = "error"

REDIRECT_HISTORY = "history"


class RiskStatus(str, Enum):
    NORMAL = "NORMAL"
    LOSS_HALT = "LOSS_HALT"
    PROFIT_HALT = "PROFIT_HALT"


@dataclass(frozen=True)
class DailyRiskResult:
    status: RiskStatus
    session_key: str
    session_pnl: float

    @property
    def halted(self) -> bool:
        return self.status != RiskStatus.NORMAL


@dataclass(frozen=True)
class RiskAdvisory:
    category: str
    level: str
    title: str
    message: str
    status: RiskStatus
    session_key: str
    session_pnl: float
    redirect: str | None = None
    suppress_routine: bool = False
    newly_halted: bool = False


def evaluate_daily_risk(
    all_trades: Iterable[Trade],
    account: Account,
    new_trade: Trade,
    now: datetime,
    *,
    tz: tzinfo | None = None,
    rollover_hour: int = SESSION_ROLLOVER_HOUR,
) -> DailyRiskResult:
    """Check today's session P&L, including ``new_trade``, against the daily limits.

    The loss limit is checked before the profit target.
    """
    if new_trade.account_id is None:
        new_trade = replace(new_trade, account_id=account.account_id)
    merged = [trade for trade in all_trades if trade.trade_id != new_trade.trade_id]
    merged.append(new_trade)

    today = compute_session_key(now, tz=tz, rollover_hour=rollover_hour)
    session_pnl = sum(
        trade.profit
        for trade in merged
        if trade.account_id == account.account_id
        and compute_session_key(trade.timestamp, tz=tz, rollover_hour=rollover_hour) == today
    )

    return DailyRiskResult(status=_limit_status(account, session_pnl), session_key=today, session_pnl=session_pnl)


def _limit_status(account: Account, session_pnl: float) -> RiskStatus:
    if account.daily_loss_limit and account.daily_loss_limit > 0 and session_pnl <= -account.daily_loss_limit:
        return RiskStatus.LOSS_HALT
    if account.daily_profit_target and account.daily_profit_target > 0 and session_pnl >= account.daily_profit_target:
        return RiskStatus.PROFIT_HALT
    return RiskStatus.NORMAL


class DailyRiskGate:
    """Tracks halted sessions per ``(account_id, session_key)``.

    A halt stays in place until the session key changes, even if later trades
    bring the session P&L back inside the limits.
    """

    def __init__(self, *, tz: tzinfo | None = None, rollover_hour: int = SESSION_ROLLOVER_HOUR) -> None:
        self._tz = tz
        self._rollover_hour = rollover_hour
        self._halts: dict[tuple[str, str], RiskStatus] = {}

    def status(self, account_id: str, session_key: str) -> RiskStatus:
        return self._halts.get((account_id, session_key), RiskStatus.NORMAL)

    def is_halted(self, account_id: str, session_key: str) -> bool:
        return self.status(account_id, session_key) != RiskStatus.NORMAL

    def record_trade(
        self,
        all_trades: Iterable[Trade],
        account: Account,
        new_trade: Trade,
        now: datetime,
    ) -> RiskAdvisory:
        history = list(all_trades)
        result = evaluate_daily_risk(
            history,
            account,
            new_trade,
            now,
            tz=self._tz,
            rollover_hour=self._rollover_hour,
        )
        key = (account.account_id, result.session_key)
        if key not in self._halts:
            self.restore(
                [trade for trade in history if trade.trade_id != new_trade.trade_id],
                account,
                now,
            )
        existing = self._halts.get(key)
        if existing is not None:
            return _halt_advisory(existing, result, account, newly_halted=False)
        if result.halted:
            self._halts[key] = result.status
            return _halt_advisory(result.status, result, account, newly_halted=True)
        return _trade_advisory(new_trade, result)

    def restore(self, all_trades: Iterable[Trade], account: Account, now: datetime) -> RiskStatus:
        """Rebuild the halt for ``now``'s session from stored trades.

        Replays the session in time order; the first limit the running P&L
        crosses is the halt, whatever the P&L did afterwards.
        """
        today = compute_session_key(now, tz=self._tz, rollover_hour=self._rollover_hour)
        key = (account.account_id, today)
        if key in self._halts:
            return self._halts[key]
        session_trades = [
            trade
            for trade in all_trades
            if trade.account_id == account.account_id
            and compute_session_key(trade.timestamp, tz=self._tz, rollover_hour=self._rollover_hour) == today
        ]
        running = 0.0
        for trade in sort_trades(session_trades, self._tz):
            running += trade.profit
            status = _limit_status(account, running)
            if status != RiskStatus.NORMAL:
                self._halts[key] = status
                return status
        return RiskStatus.NORMAL

    def forget_before(self, session_key: str) -> int:
        stale = [key for key in self._halts if key[1] < session_key]
        for key in stale:
            del self._halts[key]
        return len(stale)


def _halt_advisory(
    status: RiskStatus,
    result: DailyRiskResult,
    account: Account,
    *,
    newly_halted: bool,
) -> RiskAdvisory:
    if status == RiskStatus.LOSS_HALT:
        title = "Daily loss limit reached"
        message = (
            f"Session P&L ${result.session_pnl:.2f} breached the daily loss limit "
            f"of ${account.daily_loss_limit or 0:.2f}. Stop trading for today."
        )
        level = LEVEL_ERROR
    else:
        title = "Daily profit target reached"
        message = (
            f"Session P&L ${result.session_pnl:.2f} reached the daily profit target "
            f"of ${account.daily_profit_target or 0:.2f}. Protect the day and stop trading."
        )
        level = LEVEL_SUCCESS
    return RiskAdvisory(
        category=CATEGORY_RISK,
        level=level,
        title=title,
        message=message,
        status=status,
        session_key=result.session_key,
        session_pnl=result.session_pnl,
        redirect=REDIRECT_HISTORY,
        suppress_routine=True,
        newly_halted=newly_halted,
    )


def _trade_advisory(trade: Trade, result: DailyRiskResult) -> RiskAdvisory:
    return RiskAdvisory(
        category=CATEGORY_TRADE,
        level=LEVEL_SUCCESS if trade.profit > 0 else LEVEL_INFO,
        title="Trade recorded",
        message=f"Result: ${trade.profit:.2f}",
        status=RiskStatus.NORMAL,
        session_key=result.session_key,
        session_pnl=result.session_pnl,
        redirect=REDIRECT_HISTORY,
    )


def advisory_to_dict(advisory: RiskAdvisory) -> dict[str, object]:
    payload = asdict(advisory)
    payload["status"] = advisory.status.value
    return payload
