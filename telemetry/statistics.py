"""Per-bot performance statistics derived from the trade ledger.

Summaries are a cache of ``compute_statistics`` over a bot's trades: they
are always a full recompute, never an incremental update.  The ledger is
append-only, so a cached summary whose trade count differs from the ledger
is stale; ``get_summary`` recomputes it before answering.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from .ledger import TradeLedger
from .models import (
    BotStatisticsSummary,
    CompletedTrade,
    parse_statistics_summary,
    utcnow,
)
from .records import RecordStore
from .registry import BotRegistry

logger = logging.getLogger(__name__)


def compute_statistics(
    bot_id: int, trades: Iterable[CompletedTrade], computed_at: datetime
) -> BotStatisticsSummary:
    """Summarize a bot's trades.

    Trades are bucketed by the sign of their realized PnL; a zero-PnL trade
    counts toward the total only.  Ratios and averages are rounded to two
    decimals; ``total_loss`` and ``average_loss`` are positive magnitudes.
    """
    trades = list(trades)
    winners = [t.realized_pnl for t in trades if t.realized_pnl > 0]
    losers = [t.realized_pnl for t in trades if t.realized_pnl < 0]
    total = len(trades)
    total_profit = sum(winners)
    total_loss = abs(sum(losers))

    return BotStatisticsSummary(
        bot_id=bot_id,
        total_trades=total,
        winning_trades=len(winners),
        losing_trades=len(losers),
        total_profit=total_profit,
        total_loss=total_loss,
        # Zero-PnL trades add nothing, so this equals the sum over all trades
        net_profit=total_profit - total_loss,
        win_rate=round(len(winners) / total * 100, 2) if total else 0.0,
        average_profit=round(sum(winners) / len(winners), 2) if winners else 0.0,
        average_loss=round(abs(sum(losers) / len(losers)), 2) if losers else 0.0,
        max_drawdown=max_drawdown(trades),
        updated_at=computed_at,
    )


def max_drawdown(trades: Iterable[CompletedTrade]) -> float:
    """Largest peak-to-trough drop of cumulative realized PnL.

    Walks trades in closed-at order; the peak starts at zero.
    """
    peak = 0.0
    running = 0.0
    worst = 0.0
    for trade in sorted(trades, key=lambda t: t.closed_at):
        running += trade.realized_pnl
        peak = max(peak, running)
        worst = max(worst, peak - running)
    return round(worst, 2)


class StatisticsAggregator:
    """Recomputes and caches per-bot statistics summaries."""

    def __init__(
        self,
        records: RecordStore,
        ledger: TradeLedger,
        registry: BotRegistry,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._records = records
        self._ledger = ledger
        self._registry = registry
        self._clock = clock
        self._dir = records.path("statistics")
        self._dir.mkdir(parents=True, exist_ok=True)

    async def recalculate_for_bot(
        self, bot_id: int, trades: list[CompletedTrade] | None = None
    ) -> BotStatisticsSummary:
        try:
            if trades is None:
                trades = await self._ledger.list_by_bot(bot_id)
            summary = compute_statistics(bot_id, trades, self._clock())
            await self._records.write(self._path_for(bot_id), summary.to_dict())
        except Exception:
            logger.exception("Error recalculating statistics for bot %d", bot_id)
            raise

        logger.info(
            "Statistics recalculated for bot %d: trades=%d net=%.2f win_rate=%.2f%%",
            bot_id,
            summary.total_trades,
            summary.net_profit,
            summary.win_rate,
        )
        return summary

    async def recalculate_all(self) -> dict[int, BotStatisticsSummary]:
        """Recalculate every registered bot; failures are logged and skipped."""
        bots = await self._registry.all()
        summaries: dict[int, BotStatisticsSummary] = {}
        for bot in bots:
            try:
                summaries[bot.id] = await self.recalculate_for_bot(bot.id)
            except Exception:
                # Already logged in recalculate_for_bot
                continue

        failed = len(bots) - len(summaries)
        if failed:
            logger.warning(
                "Statistics recalculated for %d of %d bots (%d failed)",
                len(summaries),
                len(bots),
                failed,
            )
        else:
            logger.info("Statistics recalculated for all %d bots", len(bots))
        return summaries

    async def get_summary(self, bot_id: int) -> BotStatisticsSummary:
        """Cached summary, recalculated when missing or behind the ledger."""
        trades = await self._ledger.list_by_bot(bot_id)
        summary = await self._records.read(
            self._path_for(bot_id), parse_statistics_summary
        )
        if summary is None or summary.total_trades != len(trades):
            summary = await self.recalculate_for_bot(bot_id, trades)
        return summary

    def _path_for(self, bot_id: int) -> Path:
        return self._dir / f"bot_{bot_id}.json"
