from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import Mapping

from tradelog.config.accounts import resolve_active_account
from tradelog.models import Account, Trade
from tradelog.storage import sqlite_reader
from tradelog.storage.sqlite_store import connect, init_db


def open_journal(db_path: Path) -> sqlite3.Connection:
    conn = connect(db_path)
    init_db(conn)
    return conn


def resolve_account(
    conn: sqlite3.Connection,
    account_name: str | None = None,
    env: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> Account:
    """Pick the active account: stored accounts first, then the accounts config.

    Falls back to the built-in default account so that one account always exists.
    """
    if env is None:
        env = os.environ
    wanted = account_name or env.get("TRADELOG_ACCOUNT_NAME")
    stored = sqlite_reader.load_accounts(conn)
    if stored:
        if wanted is None:
            return stored[0]
        for account in stored:
            if wanted in (account.account_id, account.name):
                return account
    return resolve_active_account(wanted, env=env, config_path=config_path)


def load_account_trades(conn: sqlite3.Connection, account: Account) -> list[Trade]:
    return sqlite_reader.load_trades(conn, account_id=account.account_id)
