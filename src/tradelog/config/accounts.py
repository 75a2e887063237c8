from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

from tradelog.models import DEFAULT_ACCOUNT, Account


@dataclass(frozen=True)
class AccountsConfig:
    default_account: str | None
    accounts: dict[str, Account]


def load_accounts_config(path: Path) -> AccountsConfig:
    if not path.exists():
        return AccountsConfig(default_account=None, accounts={})
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    default_account = raw.get("default_account")
    accounts_block = raw.get("accounts", {}) if isinstance(raw, dict) else {}
    accounts: dict[str, Account] = {}
    for name, cfg in accounts_block.items():
        if not isinstance(cfg, Mapping):
            continue
        accounts[name] = parse_account(cfg, fallback_id=name)
    if default_account and default_account not in accounts:
        raise ValueError(f"Default account '{default_account}' not found in accounts config.")
    return AccountsConfig(default_account=default_account, accounts=accounts)


def resolve_active_account(
    account_name: str | None = None,
    env: Mapping[str, str] | None = None,
    config_path: Path | None = None,
) -> Account:
    if env is None:
        env = os.environ
    config_path = Path(
        config_path
        or env.get("TRADELOG_ACCOUNTS_CONFIG", "config/accounts.toml")
    )
    config = load_accounts_config(config_path)
    resolved_name = account_name or env.get("TRADELOG_ACCOUNT_NAME") or config.default_account
    if not config.accounts:
        if resolved_name and resolved_name not in (DEFAULT_ACCOUNT.account_id, DEFAULT_ACCOUNT.name):
            raise ValueError(f"Unknown account '{resolved_name}'.")
        return DEFAULT_ACCOUNT
    if resolved_name is None:
        return next(iter(config.accounts.values()))
    if resolved_name in config.accounts:
        return config.accounts[resolved_name]
    for account in config.accounts.values():
        if account.account_id == resolved_name:
            return account
    raise ValueError(f"Unknown account '{resolved_name}'.")


def parse_account(raw: Mapping[str, Any], *, fallback_id: str | None = None) -> Account:
    account_id = _pick(raw, "account_id", "accountId", "id") or fallback_id
    if not account_id:
        raise ValueError("Missing account id")
    max_drawdown = _to_float(_pick(raw, "max_drawdown_limit", "maxDrawdownLimit", "maxDrawdown"))
    if max_drawdown is None or max_drawdown <= 0:
        raise ValueError(f"Account {account_id!r} needs a positive max drawdown limit")
    initial_balance = _to_float(_pick(raw, "initial_balance", "initialBalance"))
    if initial_balance is None:
        raise ValueError(f"Account {account_id!r} is missing an initial balance")
    return Account(
        account_id=str(account_id).strip(),
        name=str(_pick(raw, "name") or account_id),
        initial_balance=initial_balance,
        goal=_to_float(_pick(raw, "goal")) or 0.0,
        max_drawdown_limit=max_drawdown,
        daily_loss_limit=_to_float(_pick(raw, "daily_loss_limit", "dailyLossLimit")),
        daily_profit_target=_to_float(_pick(raw, "daily_profit_target", "dailyProfitTarget")),
        deadline=_parse_deadline(_pick(raw, "deadline")),
        broker=_optional_str(_pick(raw, "broker")),
        currency=str(_pick(raw, "currency") or "USD"),
        is_real=bool(_pick(raw, "is_real", "isReal") or False),
    )


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _parse_deadline(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid deadline: {value!r}") from exc
