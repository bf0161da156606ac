"""Data models for bot reports, persisted records and derived views.

Wire payloads and persisted records use camelCase keys (the shape bots
send); the dataclasses here use snake_case.  ``parse_*`` functions build a
model from a dict and raise ``KeyError``/``ValueError``/``TypeError`` on
bad input; ``to_dict()`` produces the camelCase form again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class PositionSide(str, Enum):
    LONG = "Long"
    SHORT = "Short"


class TradeStatus(str, Enum):
    SUCCESS = "Success"
    LOSS = "Loss"
    ERROR = "Error"


# ---------------------------------------------------------------------------
#  Time helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed); naive means UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"expected ISO-8601 timestamp, got {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _optional_datetime(data: dict, key: str, default: datetime) -> datetime:
    value = data.get(key)
    return parse_datetime(value) if value is not None else default


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    return str(value) if value is not None else None


# ---------------------------------------------------------------------------
#  Snapshot sections
# ---------------------------------------------------------------------------


@dataclass
class StatusInfo:
    is_running: bool
    status: str  # "Running", "Stopped", "Error"
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "isRunning": self.is_running,
            "status": self.status,
            "timestamp": format_datetime(self.timestamp),
        }


@dataclass
class PositionInfo:
    in_position: bool
    entry_price: float
    current_price: float
    take_profit: float
    stop_loss: float
    position_size: float
    unrealized_pnl: float
    position_side: PositionSide
    account_balance: float
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "inPosition": self.in_position,
            "entryPrice": self.entry_price,
            "currentPrice": self.current_price,
            "takeProfit": self.take_profit,
            "stopLoss": self.stop_loss,
            "positionSize": self.position_size,
            "unrealizedPnL": self.unrealized_pnl,
            "positionSide": self.position_side.value,
            "accountBalance": self.account_balance,
            "timestamp": format_datetime(self.timestamp),
        }


@dataclass
class StrategySignalInfo:
    long_ready: bool
    long_bars: int
    short_ready: bool
    short_bars: int
    threshold: int
    indicator_value: float | None = None
    additional_info: str | None = None  # e.g. "Waiting for zone"

    def to_dict(self) -> dict:
        return {
            "longReady": self.long_ready,
            "longBars": self.long_bars,
            "shortReady": self.short_ready,
            "shortBars": self.short_bars,
            "threshold": self.threshold,
            "indicatorValue": self.indicator_value,
            "additionalInfo": self.additional_info,
        }


@dataclass
class BotStateSnapshot:
    """Latest known view of one bot."""

    bot_id: str
    bot_name: str
    last_update: datetime
    exchange: str = ""
    account: str = ""
    trading_pair: str = ""
    status: StatusInfo | None = None
    position: PositionInfo | None = None
    strategy_signal: StrategySignalInfo | None = None

    def to_dict(self) -> dict:
        return {
            "botId": self.bot_id,
            "botName": self.bot_name,
            "exchange": self.exchange,
            "account": self.account,
            "tradingPair": self.trading_pair,
            "status": self.status.to_dict() if self.status else None,
            "position": self.position.to_dict() if self.position else None,
            "strategySignal": (
                self.strategy_signal.to_dict() if self.strategy_signal else None
            ),
            "lastUpdate": format_datetime(self.last_update),
        }


# ---------------------------------------------------------------------------
#  Incoming reports
# ---------------------------------------------------------------------------


@dataclass
class StatusReport:
    bot_id: str
    status: StatusInfo
    bot_name: str | None = None
    exchange: str | None = None
    account: str | None = None
    trading_pair: str | None = None


@dataclass
class PositionReport:
    bot_id: str
    position: PositionInfo


@dataclass
class TradeReport:
    """A closed position as reported by a bot (no ledger id yet)."""

    trading_pair: str
    position_side: PositionSide
    entry_price: float
    exit_price: float
    position_size: float
    realized_pnl: float
    status: TradeStatus
    opened_at: datetime
    closed_at: datetime
    error_message: str | None = None


# ---------------------------------------------------------------------------
#  Ledger, registry and derived views
# ---------------------------------------------------------------------------


@dataclass
class CompletedTrade:
    id: int
    bot_id: int
    trading_pair: str
    position_side: PositionSide
    entry_price: float
    exit_price: float
    position_size: float
    realized_pnl: float
    status: TradeStatus
    opened_at: datetime
    closed_at: datetime
    error_message: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "botId": self.bot_id,
            "tradingPair": self.trading_pair,
            "positionSide": self.position_side.value,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "positionSize": self.position_size,
            "realizedPnL": self.realized_pnl,
            "status": self.status.value,
            "errorMessage": self.error_message,
            "openedAt": format_datetime(self.opened_at),
            "closedAt": format_datetime(self.closed_at),
        }


@dataclass
class BotRecord:
    """Bot metadata; maps an external identifier to an internal id."""

    id: int
    external_id: str
    name: str
    created_at: datetime
    last_active_at: datetime
    exchange: str = "Unknown"
    account: str = "Unknown"
    trading_pair: str = "Unknown"
    status: str = "Active"  # "Active" or "Stopped"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "externalId": self.external_id,
            "name": self.name,
            "exchange": self.exchange,
            "account": self.account,
            "tradingPair": self.trading_pair,
            "status": self.status,
            "createdAt": format_datetime(self.created_at),
            "lastActiveAt": format_datetime(self.last_active_at),
        }


@dataclass
class BotStatisticsSummary:
    """Derived from a bot's trades; see statistics.compute_statistics."""

    bot_id: int
    total_trades: int
    winning_trades: int
    losing_trades: int
    total_profit: float
    total_loss: float
    net_profit: float
    win_rate: float
    average_profit: float
    average_loss: float
    max_drawdown: float
    updated_at: datetime

    def to_dict(self) -> dict:
        return {
            "botId": self.bot_id,
            "totalTrades": self.total_trades,
            "winningTrades": self.winning_trades,
            "losingTrades": self.losing_trades,
            "totalProfit": self.total_profit,
            "totalLoss": self.total_loss,
            "netProfit": self.net_profit,
            "winRate": self.win_rate,
            "averageProfit": self.average_profit,
            "averageLoss": self.average_loss,
            "maxDrawdown": self.max_drawdown,
            "updatedAt": format_datetime(self.updated_at),
        }


@dataclass
class ChartPoint:
    date: str  # dd.MM
    full_date: str  # dd.MM.yyyy
    pnl: float

    def to_dict(self) -> dict:
        return {"date": self.date, "fullDate": self.full_date, "pnl": self.pnl}


@dataclass
class PublicAnalyticsSnapshot:
    total_profit: float
    total_trades: int
    winning_trades: int
    win_rate: float
    active_bots: int
    total_bots: int
    period: str
    chart_data: list[ChartPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalProfit": self.total_profit,
            "totalTrades": self.total_trades,
            "winningTrades": self.winning_trades,
            "winRate": self.win_rate,
            "activeBots": self.active_bots,
            "totalBots": self.total_bots,
            "period": self.period,
            "chartData": [p.to_dict() for p in self.chart_data],
        }


# ---------------------------------------------------------------------------
#  Parsers
# ---------------------------------------------------------------------------


def parse_status_info(data: dict, received_at: datetime) -> StatusInfo:
    return StatusInfo(
        is_running=bool(data["isRunning"]),
        status=str(data["status"]),
        timestamp=_optional_datetime(data, "timestamp", received_at),
    )


def parse_position_info(data: dict, received_at: datetime) -> PositionInfo:
    return PositionInfo(
        in_position=bool(data["inPosition"]),
        entry_price=float(data["entryPrice"]),
        current_price=float(data["currentPrice"]),
        take_profit=float(data["takeProfit"]),
        stop_loss=float(data["stopLoss"]),
        position_size=float(data["positionSize"]),
        unrealized_pnl=float(data["unrealizedPnL"]),
        position_side=PositionSide(data["positionSide"]),
        account_balance=float(data["accountBalance"]),
        timestamp=_optional_datetime(data, "timestamp", received_at),
    )


def parse_strategy_signal(data: dict) -> StrategySignalInfo:
    indicator = data.get("indicatorValue")
    return StrategySignalInfo(
        long_ready=bool(data["longReady"]),
        long_bars=int(data["longBars"]),
        short_ready=bool(data["shortReady"]),
        short_bars=int(data["shortBars"]),
        threshold=int(data["threshold"]),
        indicator_value=float(indicator) if indicator is not None else None,
        additional_info=_optional_str(data, "additionalInfo"),
    )


def parse_status_report(
    bot_id: str, data: dict, received_at: datetime
) -> StatusReport:
    """Parse a status report; the routed ``bot_id`` wins over the payload."""
    return StatusReport(
        bot_id=bot_id,
        status=parse_status_info(data, received_at),
        bot_name=_optional_str(data, "botName"),
        exchange=_optional_str(data, "exchange"),
        account=_optional_str(data, "account"),
        trading_pair=_optional_str(data, "tradingPair"),
    )


def parse_position_report(
    bot_id: str, data: dict, received_at: datetime
) -> PositionReport:
    return PositionReport(
        bot_id=bot_id, position=parse_position_info(data, received_at)
    )


def parse_trade_report(data: dict, received_at: datetime) -> TradeReport:
    """Parse a completed-trade report; missing ``closedAt`` means now."""
    return TradeReport(
        trading_pair=str(data["tradingPair"]),
        position_side=PositionSide(data["positionSide"]),
        entry_price=float(data["entryPrice"]),
        exit_price=float(data["exitPrice"]),
        position_size=float(data["positionSize"]),
        realized_pnl=float(data["realizedPnL"]),
        status=TradeStatus(data["status"]),
        error_message=_optional_str(data, "errorMessage"),
        opened_at=parse_datetime(data["openedAt"]),
        closed_at=_optional_datetime(data, "closedAt", received_at),
    )


def parse_snapshot(data: dict) -> BotStateSnapshot:
    """Parse a persisted snapshot record."""
    last_update = parse_datetime(data["lastUpdate"])
    status = data.get("status")
    position = data.get("position")
    signal = data.get("strategySignal")
    return BotStateSnapshot(
        bot_id=str(data["botId"]),
        bot_name=str(data.get("botName") or data["botId"]),
        exchange=str(data.get("exchange") or ""),
        account=str(data.get("account") or ""),
        trading_pair=str(data.get("tradingPair") or ""),
        status=parse_status_info(status, last_update) if status else None,
        position=parse_position_info(position, last_update) if position else None,
        strategy_signal=parse_strategy_signal(signal) if signal else None,
        last_update=last_update,
    )


def parse_completed_trade(data: dict) -> CompletedTrade:
    """Parse a persisted ledger entry."""
    return CompletedTrade(
        id=int(data["id"]),
        bot_id=int(data["botId"]),
        trading_pair=str(data["tradingPair"]),
        position_side=PositionSide(data["positionSide"]),
        entry_price=float(data["entryPrice"]),
        exit_price=float(data["exitPrice"]),
        position_size=float(data["positionSize"]),
        realized_pnl=float(data["realizedPnL"]),
        status=TradeStatus(data["status"]),
        error_message=_optional_str(data, "errorMessage"),
        opened_at=parse_datetime(data["openedAt"]),
        closed_at=parse_datetime(data["closedAt"]),
    )


def parse_bot_record(data: dict) -> BotRecord:
    return BotRecord(
        id=int(data["id"]),
        external_id=str(data["externalId"]),
        name=str(data["name"]),
        exchange=str(data.get("exchange", "Unknown")),
        account=str(data.get("account", "Unknown")),
        trading_pair=str(data.get("tradingPair", "Unknown")),
        status=str(data.get("status", "Active")),
        created_at=parse_datetime(data["createdAt"]),
        last_active_at=parse_datetime(data["lastActiveAt"]),
    )


def parse_statistics_summary(data: dict) -> BotStatisticsSummary:
    return BotStatisticsSummary(
        bot_id=int(data["botId"]),
        total_trades=int(data["totalTrades"]),
        winning_trades=int(data["winningTrades"]),
        losing_trades=int(data["losingTrades"]),
        total_profit=float(data["totalProfit"]),
        total_loss=float(data["totalLoss"]),
        net_profit=float(data["netProfit"]),
        win_rate=float(data["winRate"]),
        average_profit=float(data["averageProfit"]),
        average_loss=float(data["averageLoss"]),
        max_drawdown=float(data["maxDrawdown"]),
        updated_at=parse_datetime(data["updatedAt"]),
    )
