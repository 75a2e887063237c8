from __future__ import annotations

import argparse
import json
import os
import sys
import uuid
from pathlib import Path

from tradelog.analytics import DashboardSnapshot, EngineContext, build_dashboard, snapshot_to_dict, trade_to_dict
from tradelog.config.app_config import load_app_config
from tradelog.filters import RANGE_ALL, RANGE_KINDS, CustomRange
from tradelog.ingest.journal import load_journal, normalize_trades, parse_direction, parse_timestamp
from tradelog.journal_state import load_account_trades, open_journal, resolve_account
from tradelog.models import Trade
from tradelog.risk_gate import CATEGORY_RISK, DailyRiskGate, advisory_to_dict
from tradelog.sessions import localize, month_calendar, parse_session_key
from tradelog.storage.sqlite_store import upsert_accounts, upsert_trades


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Trading journal analytics.")
    parser.add_argument("--config", type=Path, default=None, help="App config TOML (default config/app.toml).")
    parser.add_argument("--db", type=Path, default=None, help="SQLite DB path (overrides the app config).")
    parser.add_argument("--account", type=str, default=None, help="Account id or name.")
    parser.add_argument(
        "--accounts-config",
        type=Path,
        default=None,
        help="Accounts config TOML (default config/accounts.toml).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a journal JSON backup into the DB.")
    import_parser.add_argument("journal_path", type=Path, help="Path to the journal JSON backup.")

    summary_parser = subparsers.add_parser("summary", help="Print performance statistics.")
    summary_parser.add_argument("--range", dest="range_kind", choices=RANGE_KINDS, default=RANGE_ALL)
    summary_parser.add_argument("--start", type=str, default=None, help="Custom range start (YYYY-MM-DD).")
    summary_parser.add_argument("--end", type=str, default=None, help="Custom range end (YYYY-MM-DD).")
    summary_parser.add_argument("--json", action="store_true", help="Print JSON output.")
    summary_parser.add_argument("--out", type=Path, default=None, help="Write output to a file instead of stdout.")

    calendar_parser = subparsers.add_parser("calendar", help="Print session-day P&L for one month.")
    calendar_parser.add_argument("--month", type=str, default=None, help="Month as YYYY-MM (default: current).")

    record_parser = subparsers.add_parser("record", help="Record a trade and run the daily risk gate.")
    record_parser.add_argument("--id", dest="trade_id", type=str, default=None)
    record_parser.add_argument("--time", type=str, default=None, help="Execution time (ISO, default: now).")
    record_parser.add_argument("--asset", type=str, required=True)
    record_parser.add_argument("--direction", type=str, required=True, help="long or short.")
    record_parser.add_argument("--entry", type=float, required=True)
    record_parser.add_argument("--exit", type=float, required=True)
    record_parser.add_argument("--profit", type=float, required=True)
    record_parser.add_argument("--stop", type=float, default=None)
    record_parser.add_argument("--notes", type=str, default="")

    args = parser.parse_args(argv)

    app_config = load_app_config(args.config)
    context = EngineContext.from_config(app_config)
    db_path = args.db or app_config.app.db_path
    conn = open_journal(db_path)
    try:
        if args.command == "import":
            return _run_import(conn, args)
        try:
            account = resolve_account(conn, args.account, env=os.environ, config_path=args.accounts_config)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return 2
        if args.command == "summary":
            try:
                custom = CustomRange(start=_session_key_arg(args.start), end=_session_key_arg(args.end))
            except ValueError:
                print(f"Invalid custom range: {args.start!r}..{args.end!r} (expected YYYY-MM-DD).", file=sys.stderr)
                return 2
            snapshot = build_dashboard(load_account_trades(conn, account), account, context, args.range_kind, custom)
            return _emit_summary(snapshot, as_json=args.json, out_path=args.out)
        if args.command == "calendar":
            return _run_calendar(conn, account, context, args.month)
        return _run_record(conn, account, context, args)
    finally:
        conn.close()


def _run_import(conn, args: argparse.Namespace) -> int:
    try:
        result = load_journal(args.journal_path)
    except (OSError, ValueError) as exc:
        print(f"Could not read journal: {exc}", file=sys.stderr)
        return 1
    if result.skipped:
        print(f"Skipped {result.skipped} records during normalization.", file=sys.stderr)

    accounts = list(result.accounts)
    trades = result.trades
    if any(trade.account_id is None for trade in trades):
        try:
            fallback = resolve_account(conn, args.account, env=os.environ, config_path=args.accounts_config)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return 2
        trades = normalize_trades(trades, fallback.account_id)
        accounts.append(fallback)

    upsert_accounts(conn, accounts)
    stored = upsert_trades(conn, trades)
    print(f"Imported {len(accounts)} accounts and {stored} trades.")
    return 0


def _session_key_arg(value: str | None) -> str | None:
    if not value:
        return None
    return parse_session_key(value.strip()).isoformat()


def _run_calendar(conn, account, context: EngineContext, month: str | None) -> int:
    if month:
        try:
            year_text, month_text = month.split("-", 1)
            year, month_number = int(year_text), int(month_text)
        except ValueError:
            print(f"Invalid month: {month!r} (expected YYYY-MM).", file=sys.stderr)
            return 2
    else:
        local_now = context.now.astimezone(context.tz)
        year, month_number = local_now.year, local_now.month
    calendar = month_calendar(
        load_account_trades(conn, account),
        year,
        month_number,
        tz=context.tz,
        rollover_hour=context.rollover_hour,
    )
    print("session_key trades wins win_rate profit")
    for day in calendar.days:
        print(f"{day.session_key} {day.trades} {day.wins} {day.win_rate:.1f} {day.profit:.2f}")
    print(f"total {calendar.total_trades} trades {calendar.total_profit:.2f}")
    return 0


def _run_record(conn, account, context: EngineContext, args: argparse.Namespace) -> int:
    try:
        trade = Trade(
            trade_id=args.trade_id or uuid.uuid4().hex,
            account_id=account.account_id,
            timestamp=localize(parse_timestamp(args.time), context.tz) if args.time else context.now,
            asset=args.asset,
            direction=parse_direction(args.direction),
            entry_price=args.entry,
            exit_price=args.exit,
            stop_loss=args.stop,
            profit=args.profit,
            notes=args.notes,
        )
    except ValueError as exc:
        print(f"Invalid trade: {exc}", file=sys.stderr)
        return 2

    gate = DailyRiskGate(tz=context.tz, rollover_hour=context.rollover_hour)
    advisory = gate.record_trade(load_account_trades(conn, account), account, trade, context.now)
    upsert_trades(conn, [trade])

    print(json.dumps({"trade": trade_to_dict(trade), "advisory": advisory_to_dict(advisory)}, indent=2, sort_keys=True))
    if advisory.category == CATEGORY_RISK:
        print(f"{advisory.title}: {advisory.message}", file=sys.stderr)
    return 0


def _emit_summary(snapshot: DashboardSnapshot, *, as_json: bool, out_path: Path | None) -> int:
    if as_json or (out_path is not None and out_path.suffix.lower() == ".json"):
        text = json.dumps(snapshot_to_dict(snapshot), indent=2, sort_keys=True)
    else:
        text = _format_summary(snapshot)
    if out_path is None:
        print(text)
    else:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text + "\n", encoding="utf-8")
    return 0


def _format_summary(snapshot: DashboardSnapshot) -> str:
    stats = snapshot.stats
    advanced = snapshot.advanced
    health = snapshot.health
    lines = [
        f"account {snapshot.account.account_id}",
        f"range {snapshot.range_kind}",
        f"session {snapshot.session_key}",
        f"total_trades {stats.total_trades}",
        f"wins {stats.wins}",
        f"losses {stats.losses}",
        f"breakevens {stats.breakevens}",
        f"win_rate {_format_float(stats.win_rate)}",
        f"net_profit {_format_float(stats.profit)}",
        f"best_trade {_format_float(stats.best_trade)}",
        f"worst_trade {_format_float(stats.worst_trade)}",
        f"days_remaining {'na' if stats.days_remaining is None else stats.days_remaining}",
        f"gross_profit {_format_float(advanced.gross_profit)}",
        f"gross_loss {_format_float(advanced.gross_loss)}",
        f"profit_factor {_format_float(advanced.profit_factor)}",
        f"expectancy {_format_float(advanced.expectancy)}",
        f"trades_per_day {_format_float(advanced.trades_per_day)}",
    ]
    for months, value in snapshot.projections.items():
        lines.append(f"projection_{months}m {_format_float(value)}")
    lines.extend(
        [
            f"max_drawdown {_format_float(snapshot.max_drawdown)}",
            f"avg_r {_format_float(snapshot.r_summary.avg_r)}",
            f"current_balance {_format_float(health.current_balance)}",
            f"cushion {_format_float(health.cushion)}",
            f"health_pct {_format_float(health.health_percent)}",
            f"goal_progress_pct {_format_float(snapshot.goal.progress_percent)}",
        ]
    )
    return "\n".join(lines)


def _format_float(value: float | None) -> str:
    return "na" if value is None else f"{value:.6g}"


if __name__ == "__main__":
    raise SystemExit(main())
