"""Shared test fixtures for bot-telemetry-backend tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

import pytest

from telemetry.ledger import TradeLedger
from telemetry.models import (
    PositionInfo,
    PositionReport,
    PositionSide,
    StatusInfo,
    StatusReport,
    StrategySignalInfo,
    TradeReport,
    TradeStatus,
)
from telemetry.records import RecordStore
from telemetry.registry import BotRegistry
from telemetry.state_store import StateStore
from telemetry.statistics import StatisticsAggregator


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def records(data_dir: Path) -> RecordStore:
    return RecordStore(data_dir)


@pytest.fixture
def registry(records: RecordStore, clock: FakeClock) -> BotRegistry:
    return BotRegistry(records, clock)


@pytest.fixture
def store(records: RecordStore, registry: BotRegistry, clock: FakeClock) -> StateStore:
    return StateStore(records, registry, clock)


@pytest.fixture
def ledger(records: RecordStore, registry: BotRegistry) -> TradeLedger:
    return TradeLedger(records, registry)


@pytest.fixture
def statistics(
    records: RecordStore,
    ledger: TradeLedger,
    registry: BotRegistry,
    clock: FakeClock,
) -> StatisticsAggregator:
    return StatisticsAggregator(records, ledger, registry, clock)


# ---------------------------------------------------------------------------
#  Report builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_status(clock: FakeClock) -> Callable[..., StatusReport]:
    def _make(
        bot_id: str = "bot-1",
        is_running: bool = True,
        status: str = "Running",
        **fields: str | None,
    ) -> StatusReport:
        return StatusReport(
            bot_id=bot_id,
            status=StatusInfo(is_running=is_running, status=status, timestamp=clock()),
            **fields,
        )

    return _make


@pytest.fixture
def make_position(clock: FakeClock) -> Callable[..., PositionReport]:
    def _make(bot_id: str = "bot-1", entry_price: float = 100.0) -> PositionReport:
        return PositionReport(
            bot_id=bot_id,
            position=PositionInfo(
                in_position=True,
                entry_price=entry_price,
                current_price=entry_price * 1.01,
                take_profit=entry_price * 1.05,
                stop_loss=entry_price * 0.97,
                position_size=250.0,
                unrealized_pnl=2.5,
                position_side=PositionSide.LONG,
                account_balance=1000.0,
                timestamp=clock(),
            ),
        )

    return _make


@pytest.fixture
def signal_info() -> StrategySignalInfo:
    return StrategySignalInfo(
        long_ready=True,
        long_bars=5,
        short_ready=False,
        short_bars=1,
        threshold=5,
        indicator_value=101.25,
        additional_info="Waiting for zone",
    )


@pytest.fixture
def make_trade(clock: FakeClock) -> Callable[..., TradeReport]:
    def _make(
        realized_pnl: float = 10.0,
        closed_at: datetime | None = None,
        status: TradeStatus | None = None,
        error_message: str | None = None,
    ) -> TradeReport:
        closed = closed_at or clock()
        if status is None:
            status = TradeStatus.SUCCESS if realized_pnl > 0 else TradeStatus.LOSS
        return TradeReport(
            trading_pair="BTCUSDT",
            position_side=PositionSide.LONG,
            entry_price=50000.0,
            exit_price=50100.0,
            position_size=100.0,
            realized_pnl=realized_pnl,
            status=status,
            error_message=error_message,
            opened_at=closed - timedelta(hours=1),
            closed_at=closed,
        )

    return _make


# ---------------------------------------------------------------------------
#  Wire payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def status_payload() -> dict:
    return {
        "botName": "EMA Bot",
        "exchange": "Binance",
        "account": "main",
        "tradingPair": "BTCUSDT",
        "isRunning": True,
        "status": "Running",
        "timestamp": "2026-03-01T11:59:00Z",
    }


@pytest.fixture
def position_payload() -> dict:
    return {
        "inPosition": True,
        "entryPrice": 50000.0,
        "takeProfit": 52000.0,
        "stopLoss": 49000.0,
        "positionSize": 100.0,
        "currentPrice": 50500.0,
        "unrealizedPnL": 1.0,
        "positionSide": "Long",
        "accountBalance": 1200.0,
        "timestamp": "2026-03-01T11:59:30Z",
    }


@pytest.fixture
def signal_payload() -> dict:
    return {
        "longReady": False,
        "longBars": 2,
        "shortReady": True,
        "shortBars": 6,
        "indicatorValue": 50123.4,
        "threshold": 5,
        "additionalInfo": None,
    }


@pytest.fixture
def trade_payload() -> dict:
    return {
        "tradingPair": "BTCUSDT",
        "positionSide": "Short",
        "entryPrice": 50000.0,
        "exitPrice": 49500.0,
        "positionSize": 100.0,
        "realizedPnL": 1.0,
        "status": "Success",
        "openedAt": "2026-03-01T10:00:00Z",
        "closedAt": "2026-03-01T11:00:00Z",
    }
