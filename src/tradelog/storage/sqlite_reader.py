from __future__ import annotations

import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Any

from tradelog.models import Account, Direction, Trade


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def load_accounts(conn: sqlite3.Connection) -> list[Account]:
    rows = conn.execute("SELECT * FROM accounts ORDER BY created_at, account_id").fetchall()
    accounts: list[Account] = []
    for row in rows:
        accounts.append(
            Account(
                account_id=row["account_id"],
                name=row["name"],
                initial_balance=row["initial_balance"],
                goal=row["goal"],
                max_drawdown_limit=row["max_drawdown_limit"],
                daily_loss_limit=row["daily_loss_limit"],
                daily_profit_target=row["daily_profit_target"],
                deadline=_parse_date(row["deadline"]),
                broker=row["broker"],
                currency=row["currency"],
                is_real=bool(row["is_real"]),
            )
        )
    return accounts


def load_trades(conn: sqlite3.Connection, *, account_id: str | None = None) -> list[Trade]:
    clauses: list[str] = []
    params: list[Any] = []
    if account_id is not None:
        clauses.append("account_id = ?")
        params.append(account_id)
    where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(f"SELECT * FROM trades{where} ORDER BY timestamp", params).fetchall()
    return [_trade_from_row(row) for row in rows]


def load_trade(conn: sqlite3.Connection, trade_id: str) -> Trade | None:
    row = conn.execute("SELECT * FROM trades WHERE trade_id = ?", (trade_id,)).fetchone()
    if row is None:
        return None
    return _trade_from_row(row)


def _trade_from_row(row: sqlite3.Row) -> Trade:
    return Trade(
        trade_id=row["trade_id"],
        account_id=row["account_id"],
        timestamp=_parse_iso(row["timestamp"]),
        asset=row["asset"],
        direction=Direction(row["direction"]),
        entry_price=row["entry_price"],
        exit_price=row["exit_price"],
        stop_loss=row["stop_loss"],
        profit=row["profit"],
        exit_time=_parse_iso(row["exit_time"]) if row["exit_time"] else None,
        size=row["size"],
        session_label=row["session_label"],
        rating=row["rating"],
        notes=row["notes"],
        emotions=row["emotions"],
    )


def _parse_iso(value: str | None) -> datetime:
    if value is None:
        raise ValueError("Missing timestamp")
    return datetime.fromisoformat(value)


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value)
