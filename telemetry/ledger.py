"""Append-only trade history per bot.

Each bot's completed trades live in one JSON record,
``<data_dir>/trades/bot_<id>_trades.json``, rewritten as a whole on every
append.  Sequence ids are assigned here as ``max(existing) + 1``.

Storage access goes through a mutual-exclusion gate.  With
``lock_scope="global"`` one gate covers every bot; with ``"per_bot"``
appends for different bots run in parallel.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from .locks import KeyedLock
from .models import CompletedTrade, TradeReport, parse_completed_trade
from .records import RecordStore

if TYPE_CHECKING:
    from .registry import BotRegistry

logger = logging.getLogger(__name__)

LockScope = Literal["global", "per_bot"]

_GLOBAL_GATE = "*"
_FILE_PATTERN = "bot_*_trades.json"


def _parse_trades(raw: list) -> list[CompletedTrade]:
    return [parse_completed_trade(item) for item in raw]


def _newest_first(trades: list[CompletedTrade]) -> list[CompletedTrade]:
    return sorted(trades, key=lambda t: t.closed_at, reverse=True)


class TradeLedger:
    """Durable, per-bot ordered trade history."""

    def __init__(
        self,
        records: RecordStore,
        registry: BotRegistry | None = None,
        lock_scope: LockScope = "global",
    ) -> None:
        self._records = records
        self._registry = registry
        self._lock_scope = lock_scope
        self._dir = records.path("trades")
        self._dir.mkdir(parents=True, exist_ok=True)
        self._locks = KeyedLock()

    async def append(self, bot_id: int, report: TradeReport) -> CompletedTrade:
        """Assign the next sequence id and durably append the trade.

        The existing record is read strictly: appending over a corrupt
        record would overwrite the history it still holds.
        """
        path = self._path_for(bot_id)
        async with self._gate(bot_id):
            try:
                trades = await self._records.read(
                    path, _parse_trades, on_corrupt="raise"
                ) or []
                trade = CompletedTrade(
                    id=max((t.id for t in trades), default=0) + 1,
                    bot_id=bot_id,
                    trading_pair=report.trading_pair,
                    position_side=report.position_side,
                    entry_price=report.entry_price,
                    exit_price=report.exit_price,
                    position_size=report.position_size,
                    realized_pnl=report.realized_pnl,
                    status=report.status,
                    error_message=report.error_message,
                    opened_at=report.opened_at,
                    closed_at=report.closed_at,
                )
                trades.append(trade)
                await self._records.write(path, [t.to_dict() for t in trades])
            except Exception:
                logger.exception("Error saving trade for bot %d", bot_id)
                raise

        logger.info(
            "Saved trade %d for bot %d to %s (pnl=%.2f, status=%s)",
            trade.id,
            bot_id,
            path,
            trade.realized_pnl,
            trade.status.value,
        )
        return trade

    async def list_by_bot(self, bot_id: int) -> list[CompletedTrade]:
        """All trades of one bot, most recently closed first."""
        async with self._gate(bot_id):
            trades = await self._records.read(self._path_for(bot_id), _parse_trades)
        return _newest_first(trades or [])

    async def list_by_external_id(self, external_id: str) -> list[CompletedTrade]:
        """Trades of the bot registered under an external identifier."""
        if self._registry is None:
            return []
        bot = await self._registry.resolve(external_id)
        if bot is None:
            return []
        return await self.list_by_bot(bot.id)

    async def list_all(self) -> list[CompletedTrade]:
        """Trades of every bot, most recently closed first.

        A corrupt record only hides that bot's trades (unless the store is
        configured to fail closed).
        """
        if self._lock_scope == "global":
            async with self._locks.hold(_GLOBAL_GATE):
                trades = await self._read_every_bot()
        else:
            trades = await self._read_every_bot()
        return _newest_first(trades)

    # --- Internal Helpers ---

    async def _read_every_bot(self) -> list[CompletedTrade]:
        collected: list[CompletedTrade] = []
        for path in await self._records.list(self._dir, _FILE_PATTERN):
            collected.extend(await self._records.read(path, _parse_trades) or [])
        return collected

    def _gate(self, bot_id: int):
        key = _GLOBAL_GATE if self._lock_scope == "global" else bot_id
        return self._locks.hold(key)

    def _path_for(self, bot_id: int) -> Path:
        return self._dir / f"bot_{bot_id}_trades.json"
