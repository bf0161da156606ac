"""Telemetry service: owns the core components and routes reports into them.

Constructed once at process start (see ``main.py``) and handed to the
ingestion gateway and the Telegram dashboard bot.  Payload dicts are
validated and parsed here, so both surfaces share one code path.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Protocol

from .analytics import PublicAnalyticsAggregator
from .config import BackendConfig
from .errors import NotFoundError, ReportValidationError
from .ledger import TradeLedger
from .models import (
    BotRecord,
    BotStateSnapshot,
    BotStatisticsSummary,
    CompletedTrade,
    PublicAnalyticsSnapshot,
    TradeStatus,
    parse_position_report,
    parse_status_report,
    parse_strategy_signal,
    parse_trade_report,
    utcnow,
)
from .records import RecordStore
from .registry import BotRegistry
from .state_store import StateStore
from .statistics import StatisticsAggregator
from .validator import validate_report

logger = logging.getLogger(__name__)


class TradeAlertSink(Protocol):
    async def send_trade_error_alert(
        self, bot: BotRecord, trade: CompletedTrade
    ) -> None: ...


def _parse(parser: Callable[..., Any], *args: Any) -> Any:
    """Run a model parser, turning bad values into a validation error."""
    try:
        return parser(*args)
    except (KeyError, ValueError, TypeError) as e:
        raise ReportValidationError(f"invalid report: {e}") from e


class TelemetryService:
    """Entry point for ingesting bot reports and serving dashboard reads."""

    def __init__(
        self, config: BackendConfig, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._config = config
        self._clock = clock
        records = RecordStore(
            config.storage.data_dir, config.storage.on_corrupt_record
        )
        self.registry = BotRegistry(records, clock)
        self.store = StateStore(records, self.registry, clock)
        self.ledger = TradeLedger(records, self.registry, config.ledger.lock_scope)
        self.statistics = StatisticsAggregator(
            records, self.ledger, self.registry, clock
        )
        self.analytics = PublicAnalyticsAggregator(self.ledger, self.store, clock)

        self._alerts: TradeAlertSink | None = None
        self._alert_cooldown = timedelta(
            seconds=config.telegram.error_cooldown_seconds if config.telegram else 60
        )
        self._last_alert_at: dict[str, datetime] = {}

    def set_alert_sink(self, sink: TradeAlertSink | None) -> None:
        """Wire the Telegram bot (called after both are constructed)."""
        self._alerts = sink

    # --- Ingestion ---

    async def report_status(self, bot_id: str, data: dict) -> BotStateSnapshot:
        validate_report("status", data)
        report = _parse(parse_status_report, bot_id, data, self._clock())
        return await self.store.upsert_status(report)

    async def report_position(self, bot_id: str, data: dict) -> BotStateSnapshot:
        validate_report("position", data)
        report = _parse(parse_position_report, bot_id, data, self._clock())
        return await self.store.upsert_position(report)

    async def report_signal(self, bot_id: str, data: dict) -> BotStateSnapshot:
        validate_report("signal", data)
        signal = _parse(parse_strategy_signal, data)
        return await self.store.upsert_strategy_signal(bot_id, signal)

    async def report_trade(self, bot_id: str, data: dict) -> CompletedTrade:
        """Append a completed trade for a registered bot.

        Statistics are refreshed afterwards when configured; a failed
        refresh is logged and does not undo the recorded trade.
        """
        validate_report("trade", data)
        report = _parse(parse_trade_report, data, self._clock())

        bot = await self.registry.resolve(bot_id)
        if bot is None:
            raise NotFoundError(f"Bot not found: {bot_id}")

        trade = await self.ledger.append(bot.id, report)

        if self._config.statistics.recalculate_on_trade:
            try:
                await self.statistics.recalculate_for_bot(bot.id)
            except Exception:
                logger.error(
                    "Trade %d for %s saved but statistics refresh failed",
                    trade.id,
                    bot_id,
                )

        if trade.status is TradeStatus.ERROR:
            await self._maybe_send_error_alert(bot, trade)
        return trade

    # --- Reads ---

    async def get_state(self, bot_id: str) -> BotStateSnapshot | None:
        return await self.store.get(bot_id)

    async def list_states(self) -> list[BotStateSnapshot]:
        return await self.store.get_all()

    async def list_bots(self) -> list[BotRecord]:
        return await self.registry.all()

    async def list_trades(self, bot_id: str | None = None) -> list[CompletedTrade]:
        """Trades of one bot (by external id) or of all bots, newest first."""
        if bot_id is None:
            return await self.ledger.list_all()
        return await self.ledger.list_by_external_id(bot_id)

    async def get_statistics(self, bot_id: str) -> BotStatisticsSummary:
        bot = await self.registry.resolve(bot_id)
        if bot is None:
            raise NotFoundError(f"Bot not found: {bot_id}")
        return await self.statistics.get_summary(bot.id)

    async def get_analytics(self, period: object = "all") -> PublicAnalyticsSnapshot:
        return await self.analytics.get_snapshot(period)

    # --- Error Alerting with Cooldown ---

    async def _maybe_send_error_alert(
        self, bot: BotRecord, trade: CompletedTrade
    ) -> None:
        if self._alerts is None:
            return

        now = self._clock()
        last_sent = self._last_alert_at.get(bot.external_id)
        if last_sent and (now - last_sent) < self._alert_cooldown:
            logger.debug("Error alert for %s suppressed (cooldown)", bot.external_id)
            return

        self._last_alert_at[bot.external_id] = now
        try:
            await self._alerts.send_trade_error_alert(bot, trade)
        except Exception as e:
            logger.error("Failed to send error alert for %s: %s", bot.external_id, e)
