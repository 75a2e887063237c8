"""Tests for the SQLite store and reader."""

from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from tradelog.journal_state import load_account_trades, open_journal, resolve_account
from tradelog.models import DEFAULT_ACCOUNT, Account, Direction, Trade
from tradelog.storage import sqlite_reader
from tradelog.storage.sqlite_store import delete_trade, upsert_accounts, upsert_trades

EVAL = Account(
    account_id="eval-1",
    name="Eval",
    initial_balance=50_000.0,
    goal=3_000.0,
    max_drawdown_limit=2_500.0,
    daily_loss_limit=500.0,
    deadline=date(2024, 4, 30),
    broker="Rithmic",
)
FUNDED = Account(
    account_id="funded-2",
    name="Funded",
    initial_balance=100_000.0,
    goal=6_000.0,
    max_drawdown_limit=3_000.0,
    is_real=True,
)


def _trade(trade_id: str, account_id: str | None, hours: int, profit: float) -> Trade:
    return Trade(
        trade_id=trade_id,
        timestamp=datetime(2024, 3, 1, 9, 0, tzinfo=timezone(timedelta(hours=-5))) + timedelta(hours=hours),
        asset="ES",
        direction=Direction.SHORT,
        entry_price=5100.0,
        exit_price=5090.0,
        profit=profit,
        account_id=account_id,
        stop_loss=5105.0,
        size=2.0,
        rating=4,
        notes="fade",
    )


@pytest.fixture
def conn(tmp_path: Path):
    connection = open_journal(tmp_path / "nested" / "journal.sqlite")
    yield connection
    connection.close()


class TestSqliteStore:
    def test_round_trip(self, conn):
        upsert_accounts(conn, [EVAL, FUNDED])
        trades = [_trade("b", "eval-1", 2, -50.0), _trade("a", "eval-1", 1, 120.0)]
        assert upsert_trades(conn, trades) == 2

        assert sqlite_reader.load_accounts(conn) == [EVAL, FUNDED]
        loaded = sqlite_reader.load_trades(conn)
        assert loaded == [trades[1], trades[0]]

    def test_upsert_replaces_existing_trade(self, conn):
        upsert_trades(conn, [_trade("a", "eval-1", 1, 120.0)])
        upsert_trades(conn, [_trade("a", "eval-1", 1, 80.0)])
        [trade] = sqlite_reader.load_trades(conn)
        assert trade.profit == 80.0

    def test_filter_by_account(self, conn):
        upsert_trades(conn, [_trade("a", "eval-1", 1, 10.0), _trade("b", "funded-2", 2, 20.0)])
        assert [trade.trade_id for trade in load_account_trades(conn, FUNDED)] == ["b"]

    def test_delete_trade(self, conn):
        upsert_trades(conn, [_trade("a", "eval-1", 1, 10.0)])
        assert delete_trade(conn, "a")
        assert not delete_trade(conn, "a")
        assert sqlite_reader.load_trade(conn, "a") is None

    def test_trade_without_account_is_rejected(self, conn):
        with pytest.raises(ValueError, match="no account"):
            upsert_trades(conn, [_trade("a", None, 1, 10.0)])

    def test_init_is_idempotent(self, tmp_path: Path):
        path = tmp_path / "journal.sqlite"
        open_journal(path).close()
        second = open_journal(path)
        try:
            version = second.execute("SELECT schema_version FROM schema_version").fetchone()[0]
        finally:
            second.close()
        assert version == 1


class TestResolveAccount:
    def test_stored_accounts_win(self, conn, tmp_path: Path):
        upsert_accounts(conn, [EVAL, FUNDED])
        missing = tmp_path / "none.toml"
        assert resolve_account(conn, None, env={}, config_path=missing) == EVAL
        assert resolve_account(conn, "Funded", env={}, config_path=missing) == FUNDED

    def test_empty_journal_uses_default_account(self, conn, tmp_path: Path):
        assert resolve_account(conn, None, env={}, config_path=tmp_path / "none.toml") == DEFAULT_ACCOUNT
