from __future__ import annotations

import json
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from tradelog.config.accounts import parse_account
from tradelog.models import Account, Direction, Trade


@dataclass(frozen=True)
class JournalImport:
    trades: list[Trade]
    accounts: list[Account]
    skipped: int = 0


def load_journal(path: str | Path, *, default_account_id: str | None = None) -> JournalImport:
    source_path = Path(path)
    if source_path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported file type: {source_path.suffix}")
    with source_path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return load_journal_payload(payload, default_account_id=default_account_id)


def load_journal_payload(payload: Any, *, default_account_id: str | None = None) -> JournalImport:
    trade_records, account_records = _extract_records(payload)
    skipped = 0

    accounts: list[Account] = []
    for raw in account_records:
        if not isinstance(raw, Mapping):
            skipped += 1
            continue
        try:
            accounts.append(parse_account(raw))
        except ValueError:
            skipped += 1

    trades: list[Trade] = []
    for raw in trade_records:
        try:
            trades.append(parse_trade(raw))
        except ValueError:
            skipped += 1

    fallback = default_account_id or (accounts[0].account_id if accounts else None)
    if fallback is not None:
        trades = normalize_trades(trades, fallback)
    return JournalImport(trades=trades, accounts=accounts, skipped=skipped)


def normalize_trades(trades: Iterable[Trade], default_account_id: str) -> list[Trade]:
    """Attach legacy records without an account to the default account."""
    normalized = []
    for trade in trades:
        if trade.account_id is None:
            trade = replace(trade, account_id=default_account_id)
        normalized.append(trade)
    return normalized


def parse_trade(raw: Mapping[str, Any], *, account_id: str | None = None) -> Trade:
    if not isinstance(raw, Mapping):
        raise ValueError("Trade record must be an object")
    trade_id = _pick(raw, "id", "trade_id", "tradeId")
    asset = _pick(raw, "asset", "symbol", "instrument")
    if trade_id is None or not asset:
        raise ValueError("Missing required trade fields")

    exit_time = _pick(raw, "exitDate", "exit_time", "exitTime")
    rating = _pick(raw, "rating")
    size = _pick(raw, "size", "qty", "quantity")
    stop_loss = _pick(raw, "stopLoss", "stop_loss", "sl")
    resolved_account = account_id or _pick(raw, "accountId", "account_id")

    return Trade(
        trade_id=str(trade_id),
        timestamp=parse_timestamp(_pick(raw, "date", "timestamp", "entryDate", "entry_time")),
        asset=str(asset).strip(),
        direction=parse_direction(_pick(raw, "direction", "side")),
        entry_price=_to_float(_pick(raw, "entryPrice", "entry_price")),
        exit_price=_to_float(_pick(raw, "exitPrice", "exit_price")),
        profit=_to_float(_pick(raw, "profit", "pnl", "realized_pnl")),
        account_id=str(resolved_account) if resolved_account is not None else None,
        stop_loss=_to_float(stop_loss) if stop_loss is not None else None,
        exit_time=parse_timestamp(exit_time) if exit_time is not None else None,
        size=_to_float(size) if size is not None else None,
        session_label=_optional_str(_pick(raw, "session", "session_label")),
        rating=int(_to_float(rating)) if rating is not None else None,
        notes=str(_pick(raw, "notes") or ""),
        emotions=str(_pick(raw, "emotions") or ""),
    )


def parse_direction(value: Any) -> Direction:
    if value is None:
        raise ValueError("Missing direction")
    if isinstance(value, Direction):
        return value
    text = str(value).strip().upper()
    if text in {"LONG", "BUY", "B"}:
        return Direction.LONG
    if text in {"SHORT", "SELL", "S"}:
        return Direction.SHORT
    raise ValueError(f"Unknown direction: {value}")


def parse_timestamp(value: Any) -> datetime:
    if value is None:
        raise ValueError("Missing timestamp")
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return _timestamp_from_number(float(value))

    text = str(value).strip()
    try:
        return _timestamp_from_number(float(text))
    except ValueError:
        pass

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("Unsupported timestamp format") from exc


def _extract_records(payload: Any) -> tuple[list[Any], list[Any]]:
    if isinstance(payload, list):
        return payload, []
    if isinstance(payload, dict):
        trades = payload.get("trades")
        accounts = payload.get("accounts") or []
        if isinstance(trades, list) and isinstance(accounts, list):
            return trades, accounts
    raise ValueError("Unsupported JSON format for journal payload")


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def _to_float(value: Any) -> float:
    if value is None:
        raise ValueError("Missing numeric field")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid numeric field") from exc


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


def _timestamp_from_number(value: float) -> datetime:
    seconds = value / 1000.0 if value > 1e12 else value
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
