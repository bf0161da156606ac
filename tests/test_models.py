"""Tests for report and record model parsing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from telemetry.models import (
    BotStateSnapshot,
    PositionSide,
    TradeStatus,
    parse_bot_record,
    parse_completed_trade,
    parse_datetime,
    parse_position_report,
    parse_snapshot,
    parse_statistics_summary,
    parse_status_report,
    parse_strategy_signal,
    parse_trade_report,
)
from telemetry.statistics import compute_statistics

RECEIVED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestParseDatetime:
    def test_z_suffix(self) -> None:
        assert parse_datetime("2026-03-01T11:00:00Z") == datetime(
            2026, 3, 1, 11, 0, tzinfo=timezone.utc
        )

    def test_naive_is_utc(self) -> None:
        assert parse_datetime("2026-03-01T11:00:00").tzinfo == timezone.utc

    def test_offset_converted_to_utc(self) -> None:
        dt = parse_datetime("2026-03-01T14:00:00+03:00")
        assert dt == datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)
        assert dt.utcoffset() == timedelta(0)

    def test_garbage_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_datetime("soon")

    def test_non_string_raises(self) -> None:
        with pytest.raises(TypeError):
            parse_datetime(1700000000)


class TestParseReports:
    def test_status(self, status_payload: dict) -> None:
        report = parse_status_report("bot-9", status_payload, RECEIVED)
        assert report.bot_id == "bot-9"
        assert report.bot_name == "EMA Bot"
        assert report.trading_pair == "BTCUSDT"
        assert report.status.is_running is True
        assert report.status.timestamp == datetime(2026, 3, 1, 11, 59, tzinfo=timezone.utc)

    def test_status_display_fields_optional(self) -> None:
        report = parse_status_report(
            "bot-9", {"isRunning": False, "status": "Error"}, RECEIVED
        )
        assert report.bot_name is None
        assert report.exchange is None
        assert report.status.timestamp == RECEIVED

    def test_position(self, position_payload: dict) -> None:
        report = parse_position_report("bot-9", position_payload, RECEIVED)
        p = report.position
        assert p.position_side is PositionSide.LONG
        assert p.unrealized_pnl == 1.0
        assert p.account_balance == 1200.0

    def test_position_bad_side(self, position_payload: dict) -> None:
        position_payload["positionSide"] = "Sideways"
        with pytest.raises(ValueError):
            parse_position_report("bot-9", position_payload, RECEIVED)

    def test_signal(self, signal_payload: dict) -> None:
        signal = parse_strategy_signal(signal_payload)
        assert signal.short_ready is True
        assert signal.short_bars == 6
        assert signal.indicator_value == 50123.4
        assert signal.additional_info is None

    def test_trade(self, trade_payload: dict) -> None:
        report = parse_trade_report(trade_payload, RECEIVED)
        assert report.position_side is PositionSide.SHORT
        assert report.status is TradeStatus.SUCCESS
        assert report.closed_at == datetime(2026, 3, 1, 11, 0, tzinfo=timezone.utc)
        assert report.error_message is None

    def test_trade_closed_at_defaults_to_receipt(self, trade_payload: dict) -> None:
        trade_payload["closedAt"] = None
        assert parse_trade_report(trade_payload, RECEIVED).closed_at == RECEIVED

    def test_trade_missing_field(self, trade_payload: dict) -> None:
        del trade_payload["realizedPnL"]
        with pytest.raises(KeyError):
            parse_trade_report(trade_payload, RECEIVED)


class TestPersistedRecords:
    def test_snapshot_round_trip(self, status_payload: dict, position_payload: dict) -> None:
        status = parse_status_report("bot-1", status_payload, RECEIVED)
        position = parse_position_report("bot-1", position_payload, RECEIVED)
        state = BotStateSnapshot(
            bot_id="bot-1",
            bot_name="EMA Bot",
            last_update=RECEIVED,
            exchange="Binance",
            status=status.status,
            position=position.position,
        )
        assert parse_snapshot(state.to_dict()) == state

    def test_snapshot_without_sections(self) -> None:
        state = parse_snapshot({"botId": "x", "lastUpdate": "2026-03-01T12:00:00Z"})
        assert state.bot_name == "x"
        assert state.status is None
        assert state.position is None
        assert state.strategy_signal is None

    def test_completed_trade_wire_keys(self) -> None:
        trade = parse_completed_trade(
            {
                "id": 3,
                "botId": 2,
                "tradingPair": "SOLUSDT",
                "positionSide": "Long",
                "entryPrice": 150,
                "exitPrice": 148,
                "positionSize": 10,
                "realizedPnL": -0.13,
                "status": "Loss",
                "errorMessage": None,
                "openedAt": "2026-02-27T08:00:00Z",
                "closedAt": "2026-02-27T09:30:00Z",
            }
        )
        assert trade.entry_price == 150.0
        assert trade.status is TradeStatus.LOSS
        assert trade.to_dict()["closedAt"] == "2026-02-27T09:30:00+00:00"

    def test_bot_record_defaults(self) -> None:
        bot = parse_bot_record(
            {
                "id": 1,
                "externalId": "bot-1",
                "name": "Bot",
                "createdAt": "2026-01-01T00:00:00Z",
                "lastActiveAt": "2026-01-02T00:00:00Z",
            }
        )
        assert bot.exchange == "Unknown"
        assert bot.status == "Active"

    def test_statistics_summary_round_trip(self) -> None:
        summary = compute_statistics(5, [], RECEIVED)
        assert parse_statistics_summary(summary.to_dict()) == summary
