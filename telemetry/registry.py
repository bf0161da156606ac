"""Bot metadata registry.

Maps the external identifier a bot reports under to the internal integer id
the trade ledger and statistics are keyed by.  Bots are registered
automatically on their first status report.  The registry is a single
JSON record (``<data_dir>/registry.json``).

A corrupt registry is never silently replaced: losing it would let new
registrations reuse internal ids that still own ledger files, so writes
always read it strictly.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from .models import BotRecord, StatusReport, parse_bot_record, utcnow
from .records import RecordStore

logger = logging.getLogger(__name__)


def _parse_registry(raw: list) -> list[BotRecord]:
    return [parse_bot_record(item) for item in raw]


class BotRegistry:
    """Registry of known bots."""

    def __init__(
        self, records: RecordStore, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._records = records
        self._clock = clock
        self._path = records.path("registry.json")
        self._lock = asyncio.Lock()

    async def upsert_from_status(self, report: StatusReport) -> BotRecord:
        """Create or refresh the record for the reporting bot."""
        async with self._lock:
            bots = await self._load(strict=True)
            now = self._clock()
            bot = next((b for b in bots if b.external_id == report.bot_id), None)

            if bot is None:
                bot = BotRecord(
                    id=max((b.id for b in bots), default=0) + 1,
                    external_id=report.bot_id,
                    name=report.bot_name or report.bot_id,
                    exchange=report.exchange or "Unknown",
                    account=report.account or "Unknown",
                    trading_pair=report.trading_pair or "Unknown",
                    created_at=now,
                    last_active_at=now,
                )
                bots.append(bot)
                logger.info(
                    "Registered new bot %s as #%d (name=%s exchange=%s account=%s pair=%s)",
                    report.bot_id,
                    bot.id,
                    bot.name,
                    bot.exchange,
                    bot.account,
                    bot.trading_pair,
                )
            else:
                if report.bot_name:
                    bot.name = report.bot_name
                if report.exchange:
                    bot.exchange = report.exchange
                if report.account:
                    bot.account = report.account
                if report.trading_pair:
                    bot.trading_pair = report.trading_pair
                bot.last_active_at = now

            bot.status = "Active" if report.status.is_running else "Stopped"
            await self._records.write(self._path, [b.to_dict() for b in bots])
            return bot

    async def resolve(self, external_id: str) -> BotRecord | None:
        """Look up a bot by its external identifier."""
        for bot in await self.all():
            if bot.external_id == external_id:
                return bot
        return None

    async def get(self, bot_id: int) -> BotRecord | None:
        for bot in await self.all():
            if bot.id == bot_id:
                return bot
        return None

    async def all(self) -> list[BotRecord]:
        async with self._lock:
            return await self._load(strict=False)

    async def _load(self, strict: bool) -> list[BotRecord]:
        bots = await self._records.read(
            self._path, _parse_registry, on_corrupt="raise" if strict else None
        )
        return bots or []
