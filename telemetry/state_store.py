"""Current-state snapshot per bot identifier.

One JSON record per bot under ``<data_dir>/states``.  Every upsert is a
load / overwrite-one-section / persist cycle; cycles for the same
identifier are serialized with a per-identifier lock so a status update and
a position update arriving together cannot drop each other.  File names
are the percent-encoded identifier, so each distinct identifier has its own
file and the lock for an identifier covers exactly that file.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, Callable

from .locks import KeyedLock
from .models import (
    BotStateSnapshot,
    PositionReport,
    StatusReport,
    StrategySignalInfo,
    parse_snapshot,
    utcnow,
)
from .records import RecordStore, safe_file_stem

if TYPE_CHECKING:
    from .registry import BotRegistry

logger = logging.getLogger(__name__)


class StateStore:
    """Durable latest-state record per bot identifier."""

    def __init__(
        self,
        records: RecordStore,
        registry: BotRegistry | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._records = records
        self._registry = registry
        self._clock = clock
        self._dir = records.path("states")
        self._dir.mkdir(parents=True, exist_ok=True)
        self._locks = KeyedLock()

    # --- Writes ---

    async def upsert_status(self, report: StatusReport) -> BotStateSnapshot:
        """Overwrite the status section and any non-empty display fields."""
        async with self._locks.hold(report.bot_id):
            state = await self._load_or_create(report.bot_id)
            state.status = report.status
            if report.bot_name:
                state.bot_name = report.bot_name
            if report.exchange:
                state.exchange = report.exchange
            if report.account:
                state.account = report.account
            if report.trading_pair:
                state.trading_pair = report.trading_pair
            state.last_update = self._clock()
            await self._save(state)

        # Registry only hears about the bot once the snapshot is durable
        if self._registry is not None:
            await self._registry.upsert_from_status(report)

        logger.info(
            "Updated status for %s: running=%s status=%s",
            report.bot_id,
            report.status.is_running,
            report.status.status,
        )
        return state

    async def upsert_position(self, report: PositionReport) -> BotStateSnapshot:
        async with self._locks.hold(report.bot_id):
            state = await self._load_or_create(report.bot_id)
            state.position = report.position
            state.last_update = self._clock()
            await self._save(state)
        logger.info("Updated position for %s", report.bot_id)
        return state

    async def upsert_strategy_signal(
        self, bot_id: str, signal: StrategySignalInfo
    ) -> BotStateSnapshot:
        async with self._locks.hold(bot_id):
            state = await self._load_or_create(bot_id)
            state.strategy_signal = signal
            state.last_update = self._clock()
            await self._save(state)
        logger.info(
            "Updated strategy signal for %s: long=%d/%d short=%d/%d",
            bot_id,
            signal.long_bars,
            signal.threshold,
            signal.short_bars,
            signal.threshold,
        )
        return state

    # --- Reads ---

    async def get(self, bot_id: str) -> BotStateSnapshot | None:
        """Return the snapshot, or None if unknown or unreadable."""
        path = self._path_for(bot_id)
        state = await self._records.read(path, parse_snapshot)
        if state is not None and state.bot_id != bot_id:
            logger.warning(
                "Record %s belongs to %r, not %r; treating as empty",
                path,
                state.bot_id,
                bot_id,
            )
            return None
        return state

    async def iter_all(self) -> AsyncIterator[BotStateSnapshot]:
        """Yield every readable snapshot, in no particular order."""
        for path in await self._records.list(self._dir):
            state = await self._records.read(path, parse_snapshot)
            if state is not None:
                yield state

    async def get_all(self) -> list[BotStateSnapshot]:
        return [state async for state in self.iter_all()]

    # --- Internal Helpers ---

    async def _load_or_create(self, bot_id: str) -> BotStateSnapshot:
        state = await self.get(bot_id)
        if state is None:
            logger.info("Creating state for new bot %s", bot_id)
            state = BotStateSnapshot(
                bot_id=bot_id, bot_name=bot_id, last_update=self._clock()
            )
        return state

    async def _save(self, state: BotStateSnapshot) -> None:
        await self._records.write(self._path_for(state.bot_id), state.to_dict())

    def _path_for(self, bot_id: str) -> Path:
        return self._dir / f"{safe_file_stem(bot_id)}.json"
