"""Fleet-wide public analytics over all bots' trades and snapshots."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from .ledger import TradeLedger
from .models import ChartPoint, PublicAnalyticsSnapshot, TradeStatus, utcnow
from .state_store import StateStore

logger = logging.getLogger(__name__)

PERIOD_DAYS: dict[str, int | None] = {"7": 7, "30": 30, "90": 90, "all": None}
DEFAULT_PERIOD = "all"


def normalize_period(value: object) -> str:
    """Map a period selector onto {"7", "30", "90", "all"}."""
    period = str(value).strip().lower() if value is not None else DEFAULT_PERIOD
    return period if period in PERIOD_DAYS else DEFAULT_PERIOD


class PublicAnalyticsAggregator:
    """Computes a fresh analytics snapshot on every request."""

    def __init__(
        self,
        ledger: TradeLedger,
        store: StateStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._clock = clock

    async def get_snapshot(self, period: object = DEFAULT_PERIOD) -> PublicAnalyticsSnapshot:
        period = normalize_period(period)
        trades = await self._ledger.list_all()
        states = await self._store.get_all()

        days = PERIOD_DAYS[period]
        if days is not None:
            cutoff = self._clock() - timedelta(days=days)
            trades = [t for t in trades if t.closed_at >= cutoff]

        total_trades = len(trades)
        winning_trades = sum(1 for t in trades if t.status is TradeStatus.SUCCESS)
        total_profit = sum(t.realized_pnl for t in trades)
        win_rate = (
            round(winning_trades / total_trades * 100, 1) if total_trades else 0.0
        )

        chart_data: list[ChartPoint] = []
        cumulative = 0.0
        for trade in sorted(trades, key=lambda t: t.closed_at):
            cumulative += trade.realized_pnl
            chart_data.append(
                ChartPoint(
                    date=trade.closed_at.strftime("%d.%m"),
                    full_date=trade.closed_at.strftime("%d.%m.%Y"),
                    pnl=round(cumulative, 2),
                )
            )

        snapshot = PublicAnalyticsSnapshot(
            total_profit=round(total_profit, 2),
            total_trades=total_trades,
            winning_trades=winning_trades,
            win_rate=win_rate,
            active_bots=sum(1 for s in states if s.status and s.status.is_running),
            total_bots=len(states),
            period=period,
            chart_data=chart_data,
        )
        logger.debug(
            "Public analytics for period %s: trades=%d profit=%.2f",
            period,
            total_trades,
            snapshot.total_profit,
        )
        return snapshot
