"""Tests for journal JSON import and record normalization."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tradelog.ingest.journal import (
    load_journal,
    load_journal_payload,
    parse_direction,
    parse_timestamp,
    parse_trade,
)
from tradelog.models import Direction

BACKUP = {
    "accounts": [
        {
            "id": "acc-1",
            "name": "Apex 50K",
            "initialBalance": 50000,
            "goal": 3000,
            "maxDrawdown": 2500,
            "dailyLossLimit": 1000,
        }
    ],
    "trades": [
        {
            "id": "t1",
            "accountId": "acc-1",
            "date": "2024-03-01T14:30:00Z",
            "asset": "ES",
            "direction": "LONG",
            "entryPrice": 5100.25,
            "exitPrice": 5110.25,
            "stopLoss": 5095.25,
            "profit": 500,
            "notes": "breakout",
        },
        {
            "id": "t2",
            "date": "2024-03-01T15:00:00Z",
            "asset": "NQ",
            "direction": "SHORT",
            "entryPrice": 18000,
            "exitPrice": 18010,
            "profit": -200,
        },
        {"id": "t3", "asset": "CL", "entryPrice": 80, "exitPrice": 81, "profit": 10, "date": "2024-03-01"},
        "not a trade",
    ],
}


class TestLoadJournal:
    def test_backup_with_accounts(self):
        result = load_journal_payload(BACKUP)
        assert [account.account_id for account in result.accounts] == ["acc-1"]
        assert result.accounts[0].max_drawdown_limit == 2500.0
        assert [trade.trade_id for trade in result.trades] == ["t1", "t2"]
        assert result.skipped == 2

    def test_legacy_trades_get_first_account(self):
        result = load_journal_payload(BACKUP)
        assert {trade.account_id for trade in result.trades} == {"acc-1"}

    def test_explicit_default_account(self):
        result = load_journal_payload(BACKUP["trades"][1:2], default_account_id="default-acc-1")
        assert result.accounts == []
        assert result.trades[0].account_id == "default-acc-1"

    def test_plain_list_without_default_keeps_missing_account(self):
        result = load_journal_payload(BACKUP["trades"][1:2])
        assert result.trades[0].account_id is None

    def test_reads_json_file(self, tmp_path: Path):
        path = tmp_path / "backup.json"
        path.write_text(json.dumps(BACKUP), encoding="utf-8")
        result = load_journal(path)
        assert len(result.trades) == 2

    def test_rejects_other_file_types(self, tmp_path: Path):
        path = tmp_path / "trades.csv"
        path.write_text("id,asset\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported file type"):
            load_journal(path)

    def test_rejects_unknown_payload_shape(self):
        with pytest.raises(ValueError):
            load_journal_payload({"rows": []})


class TestParseTrade:
    def test_camel_case_record(self):
        trade = parse_trade(BACKUP["trades"][0])
        assert trade.direction == Direction.LONG
        assert trade.timestamp == datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)
        assert trade.stop_loss == 5095.25
        assert trade.profit == 500.0
        assert trade.notes == "breakout"

    def test_account_override(self):
        trade = parse_trade(BACKUP["trades"][0], account_id="other")
        assert trade.account_id == "other"

    def test_missing_numeric_field(self):
        record = dict(BACKUP["trades"][1])
        del record["profit"]
        with pytest.raises(ValueError):
            parse_trade(record)

    def test_non_mapping(self):
        with pytest.raises(ValueError):
            parse_trade(["t1", "ES"])

    @pytest.mark.parametrize("value,expected", [("buy", Direction.LONG), ("Short", Direction.SHORT), ("S", Direction.SHORT)])
    def test_direction_aliases(self, value, expected):
        assert parse_direction(value) == expected

    def test_unknown_direction(self):
        with pytest.raises(ValueError):
            parse_direction("flat")


class TestParseTimestamp:
    def test_epoch_seconds_and_millis(self):
        expected = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert parse_timestamp(1709287200) == expected
        assert parse_timestamp(1709287200000) == expected
        assert parse_timestamp("1709287200000") == expected

    def test_iso_with_offset(self):
        parsed = parse_timestamp("2024-03-01T10:00:00-05:00")
        assert parsed.utcoffset() == timedelta(hours=-5)

    def test_naive_iso_stays_naive(self):
        assert parse_timestamp("2024-03-01T10:00:00").tzinfo is None

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday-ish")
