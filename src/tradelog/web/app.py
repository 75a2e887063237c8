from __future__ import annotations

import os
import uuid
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request

from tradelog.analytics import (
    EngineContext,
    account_to_dict,
    build_dashboard,
    snapshot_to_dict,
    trade_to_dict,
)
from tradelog.config.app_config import AppConfig, load_app_config
from tradelog.filters import RANGE_ALL, RANGE_KINDS, CustomRange
from tradelog.ingest.journal import parse_trade
from tradelog.journal_state import load_account_trades, open_journal, resolve_account
from tradelog.metrics.health import compute_account_health, compute_goal_progress
from tradelog.metrics.risk import compute_r_multiples, summarize_r_multiples
from tradelog.models import Account, sort_trades
from tradelog.risk_gate import DailyRiskGate, advisory_to_dict
from tradelog.sessions import localize, month_calendar, parse_session_key
from tradelog.storage import sqlite_reader
from tradelog.storage.sqlite_store import delete_trade, upsert_trades

app = FastAPI(title="Trade Journal")

_RISK_GATES: dict[tuple[str, int], DailyRiskGate] = {}


@app.get("/api/accounts")
def accounts_api() -> list[dict[str, Any]]:
    conn = open_journal(_resolve_db_path())
    try:
        return [account_to_dict(account) for account in sqlite_reader.load_accounts(conn)]
    finally:
        conn.close()


@app.get("/api/summary")
def summary_api(request: Request) -> dict[str, Any]:
    config = _app_config()
    context = EngineContext.from_config(config)
    range_kind, custom = _parse_range(request)
    conn = open_journal(_resolve_db_path(config))
    try:
        account = _resolve_account(conn, request)
        snapshot = build_dashboard(load_account_trades(conn, account), account, context, range_kind, custom)
    finally:
        conn.close()
    return snapshot_to_dict(snapshot)


@app.get("/api/trades")
def trades_api(request: Request) -> list[dict[str, Any]]:
    config = _app_config()
    context = EngineContext.from_config(config)
    range_kind, custom = _parse_range(request)
    conn = open_journal(_resolve_db_path(config))
    try:
        account = _resolve_account(conn, request)
        trades = context.filter(load_account_trades(conn, account), range_kind, custom)
    finally:
        conn.close()
    return [trade_to_dict(trade) for trade in sort_trades(trades, context.tz)]


@app.get("/api/calendar")
def calendar_api(request: Request) -> dict[str, Any]:
    config = _app_config()
    context = EngineContext.from_config(config)
    year, month = _parse_month(request.query_params.get("month"), context)
    conn = open_journal(_resolve_db_path(config))
    try:
        account = _resolve_account(conn, request)
        trades = load_account_trades(conn, account)
    finally:
        conn.close()
    calendar = month_calendar(trades, year, month, tz=context.tz, rollover_hour=context.rollover_hour)
    payload = asdict(calendar)
    for day, row in zip(calendar.days, payload["days"]):
        row["win_rate"] = day.win_rate
    return payload


@app.get("/api/r-multiples")
def r_multiples_api(request: Request) -> dict[str, Any]:
    config = _app_config()
    context = EngineContext.from_config(config)
    range_kind, custom = _parse_range(request)
    conn = open_journal(_resolve_db_path(config))
    try:
        account = _resolve_account(conn, request)
        trades = context.filter(load_account_trades(conn, account), range_kind, custom)
    finally:
        conn.close()
    points = compute_r_multiples(
        sort_trades(trades, context.tz),
        epsilon=context.r_epsilon,
        tz=context.tz,
        rollover_hour=context.rollover_hour,
    )
    return {
        "points": [asdict(point) for point in points],
        "summary": asdict(summarize_r_multiples(points)),
    }


@app.get("/api/health")
def health_api(request: Request) -> dict[str, Any]:
    conn = open_journal(_resolve_db_path())
    try:
        account = _resolve_account(conn, request)
        trades = load_account_trades(conn, account)
    finally:
        conn.close()
    return {
        "account": account_to_dict(account),
        "health": asdict(compute_account_health(trades, account)),
        "goal": asdict(compute_goal_progress(trades, account)),
    }


@app.post("/api/trades")
def create_trade_api(request: Request, payload: Any = Body(...)) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=422, detail="Trade payload must be an object.")

    config = _app_config()
    context = EngineContext.from_config(config)
    conn = open_journal(_resolve_db_path(config))
    try:
        account = _resolve_account(conn, request)
        record = dict(payload)
        record.setdefault("id", uuid.uuid4().hex)
        record.setdefault("date", context.now.isoformat())
        try:
            trade = parse_trade(record, account_id=account.account_id)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=f"Invalid trade: {exc}") from exc
        if trade.timestamp.tzinfo is None:
            trade = replace(trade, timestamp=localize(trade.timestamp, context.tz))

        gate = _risk_gate(context)
        advisory = gate.record_trade(load_account_trades(conn, account), account, trade, context.now)
        upsert_trades(conn, [trade])
    finally:
        conn.close()
    return {"trade": trade_to_dict(trade), "advisory": advisory_to_dict(advisory)}


@app.delete("/api/trades/{trade_id}")
def delete_trade_api(trade_id: str) -> dict[str, Any]:
    conn = open_journal(_resolve_db_path())
    try:
        deleted = delete_trade(conn, trade_id)
    finally:
        conn.close()
    if not deleted:
        raise HTTPException(status_code=404, detail="Trade not found.")
    return {"deleted": trade_id}


def _app_config() -> AppConfig:
    config_path = os.environ.get("TRADELOG_APP_CONFIG")
    return load_app_config(Path(config_path) if config_path else None)


def _resolve_db_path(config: AppConfig | None = None) -> Path:
    override = os.environ.get("TRADELOG_DB_PATH")
    if override:
        return Path(override)
    config = config or _app_config()
    return config.app.db_path


def _resolve_account(conn, request: Request) -> Account:
    try:
        return resolve_account(conn, request.query_params.get("account") or None)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _risk_gate(context: EngineContext) -> DailyRiskGate:
    key = (str(context.tz), context.rollover_hour)
    gate = _RISK_GATES.get(key)
    if gate is None:
        gate = DailyRiskGate(tz=context.tz, rollover_hour=context.rollover_hour)
        _RISK_GATES[key] = gate
    gate.forget_before(context.today)
    return gate


def _parse_range(request: Request) -> tuple[str, CustomRange | None]:
    params = request.query_params
    range_kind = params.get("range", RANGE_ALL).strip().lower()
    if range_kind not in RANGE_KINDS:
        range_kind = RANGE_ALL
    start = _session_key_param(params.get("start"), "start")
    end = _session_key_param(params.get("end"), "end")
    return range_kind, CustomRange(start=start, end=end)


def _session_key_param(value: str | None, name: str) -> str | None:
    if not value:
        return None
    try:
        return parse_session_key(value.strip()).isoformat()
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"{name} must be YYYY-MM-DD.") from exc


def _parse_month(value: str | None, context: EngineContext) -> tuple[int, int]:
    if not value:
        local_now = localize(context.now, context.tz)
        return local_now.year, local_now.month
    try:
        year_text, month_text = value.split("-", 1)
        year, month = int(year_text), int(month_text)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail="month must be YYYY-MM.") from exc
    if month < 1 or month > 12:
        raise HTTPException(status_code=422, detail="month must be YYYY-MM.")
    return year, month


def main() -> None:
    import uvicorn

    app_config = load_app_config()
    uvicorn.run(
        "tradelog.web.app:app",
        host=app_config.app.host,
        port=app_config.app.port,
        reload=app_config.app.reload,
    )


if __name__ == "__main__":
    main()
