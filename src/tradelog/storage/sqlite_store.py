from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

from tradelog.models import Account, Trade


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS accounts (
            account_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            initial_balance REAL NOT NULL,
            goal REAL NOT NULL,
            max_drawdown_limit REAL NOT NULL,
            daily_loss_limit REAL,
            daily_profit_target REAL,
            deadline TEXT,
            broker TEXT,
            currency TEXT NOT NULL,
            is_real INTEGER NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS trades (
            trade_id TEXT PRIMARY KEY,
            account_id TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            asset TEXT NOT NULL,
            direction TEXT NOT NULL,
            entry_price REAL NOT NULL,
            exit_price REAL NOT NULL,
            stop_loss REAL,
            profit REAL NOT NULL,
            exit_time TEXT,
            size REAL,
            session_label TEXT,
            rating INTEGER,
            notes TEXT NOT NULL,
            emotions TEXT NOT NULL
        )
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS trades_account_idx ON trades (account_id, timestamp)")
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            schema_version INTEGER NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        INSERT OR IGNORE INTO schema_version (id, schema_version, updated_at)
        VALUES (1, 1, CURRENT_TIMESTAMP)
        """
    )
    conn.commit()


def upsert_accounts(conn: sqlite3.Connection, accounts: Iterable[Account]) -> int:
    rows = []
    for account in accounts:
        rows.append(
            {
                "account_id": account.account_id,
                "name": account.name,
                "initial_balance": account.initial_balance,
                "goal": account.goal,
                "max_drawdown_limit": account.max_drawdown_limit,
                "daily_loss_limit": account.daily_loss_limit,
                "daily_profit_target": account.daily_profit_target,
                "deadline": account.deadline.isoformat() if account.deadline else None,
                "broker": account.broker,
                "currency": account.currency,
                "is_real": 1 if account.is_real else 0,
            }
        )
    conn.executemany(
        """
        INSERT INTO accounts (
            account_id, name, initial_balance, goal, max_drawdown_limit, daily_loss_limit,
            daily_profit_target, deadline, broker, currency, is_real, created_at
        )
        VALUES (
            :account_id, :name, :initial_balance, :goal, :max_drawdown_limit, :daily_loss_limit,
            :daily_profit_target, :deadline, :broker, :currency, :is_real, CURRENT_TIMESTAMP
        )
        ON CONFLICT(account_id) DO UPDATE SET
            name=excluded.name,
            initial_balance=excluded.initial_balance,
            goal=excluded.goal,
            max_drawdown_limit=excluded.max_drawdown_limit,
            daily_loss_limit=excluded.daily_loss_limit,
            daily_profit_target=excluded.daily_profit_target,
            deadline=excluded.deadline,
            broker=excluded.broker,
            currency=excluded.currency,
            is_real=excluded.is_real
        """,
        rows,
    )
    conn.commit()
    return len(rows)


def upsert_trades(conn: sqlite3.Connection, trades: Iterable[Trade]) -> int:
    rows = []
    for trade in trades:
        if trade.account_id is None:
            raise ValueError(f"Trade {trade.trade_id!r} has no account; normalize before storing.")
        rows.append(
            {
                "trade_id": trade.trade_id,
                "account_id": trade.account_id,
                "timestamp": trade.timestamp.isoformat(),
                "asset": trade.asset,
                "direction": trade.direction.value,
                "entry_price": trade.entry_price,
                "exit_price": trade.exit_price,
                "stop_loss": trade.stop_loss,
                "profit": trade.profit,
                "exit_time": trade.exit_time.isoformat() if trade.exit_time else None,
                "size": trade.size,
                "session_label": trade.session_label,
                "rating": trade.rating,
                "notes": trade.notes,
                "emotions": trade.emotions,
            }
        )
    conn.executemany(
        """
        INSERT INTO trades (
            trade_id, account_id, timestamp, asset, direction, entry_price, exit_price, stop_loss,
            profit, exit_time, size, session_label, rating, notes, emotions
        )
        VALUES (
            :trade_id, :account_id, :timestamp, :asset, :direction, :entry_price, :exit_price, :stop_loss,
            :profit, :exit_time, :size, :session_label, :rating, :notes, :emotions
        )
        ON CONFLICT(trade_id) DO UPDATE SET
            account_id=excluded.account_id,
            timestamp=excluded.timestamp,
            asset=excluded.asset,
            direction=excluded.direction,
            entry_price=excluded.entry_price,
            exit_price=excluded.exit_price,
            stop_loss=excluded.stop_loss,
            profit=excluded.profit,
            exit_time=excluded.exit_time,
            size=excluded.size,
            session_label=excluded.session_label,
            rating=excluded.rating,
            notes=excluded.notes,
            emotions=excluded.emotions
        """,
        rows,
    )
    conn.commit()
    return len(rows)


def delete_trade(conn: sqlite3.Connection, trade_id: str) -> bool:
    cursor = conn.execute("DELETE FROM trades WHERE trade_id = ?", (trade_id,))
    conn.commit()
    return cursor.rowcount > 0
