"""Whole-record JSON persistence.

Every durable record (snapshot, per-bot ledger, statistics summary,
registry) is one JSON file that is always read and rewritten as a whole.
Writes go to a temp file in the same directory and are moved into place
with ``os.replace``, so a reader sees either the old or the new record.

Blocking file I/O runs in a worker thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Literal, TypeVar
from urllib.parse import quote

from .errors import MalformedRecordError, WriteFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")

CorruptPolicy = Literal["skip", "raise"]


def safe_file_stem(identifier: str) -> str:
    """Encode an identifier as a file name.

    Plain ASCII ids (letters, digits, ``._-~``) are kept as they are; every
    other character is percent-encoded, so distinct ids never share a file.
    """
    return quote(identifier, safe="")


class RecordStore:
    """Reads and writes JSON records under a root directory."""

    def __init__(self, root: Path, on_corrupt: CorruptPolicy = "skip") -> None:
        self.root = Path(root)
        self.on_corrupt = on_corrupt
        self.root.mkdir(parents=True, exist_ok=True)

    def path(self, *parts: str) -> Path:
        return self.root.joinpath(*parts)

    async def read(
        self,
        path: Path,
        parse: Callable[[Any], T],
        on_corrupt: CorruptPolicy | None = None,
    ) -> T | None:
        """Read and parse one record.

        Returns None when the record does not exist.  A record that cannot
        be read or parsed is handled by the corruption policy: logged and
        treated as absent ("skip"), or raised as MalformedRecordError.
        ``on_corrupt`` overrides the store-wide policy for this call.
        """
        policy = on_corrupt or self.on_corrupt
        try:
            return await asyncio.to_thread(self._read_sync, path, parse)
        except MalformedRecordError as e:
            if policy == "raise":
                raise
            logger.warning("%s; treating as empty", e)
            return None

    async def write(self, path: Path, payload: Any) -> None:
        """Atomically replace one record. Raises WriteFailureError."""
        try:
            await asyncio.to_thread(self._write_sync, path, payload)
        except (OSError, TypeError, ValueError) as e:
            raise WriteFailureError(f"Failed to write {path}: {e}") from e

    async def list(self, directory: Path, pattern: str = "*.json") -> list[Path]:
        return await asyncio.to_thread(self._list_sync, directory, pattern)

    # --- Blocking helpers (worker thread) ---

    @staticmethod
    def _read_sync(path: Path, parse: Callable[[Any], T]) -> T | None:
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return parse(raw)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise MalformedRecordError(path, str(e)) from e

    @staticmethod
    def _write_sync(path: Path, payload: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(payload, indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    @staticmethod
    def _list_sync(directory: Path, pattern: str) -> list[Path]:
        if not directory.is_dir():
            return []
        return sorted(p for p in directory.glob(pattern) if p.is_file())
