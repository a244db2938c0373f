"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadDesk - Durable Log                                                      ║
║                                                                              ║
║  One append-only JSON-lines file per record kind: <data_dir>/<kind>.jsonl    ║
║                                                                              ║
║  INVARIANTS:                                                                 ║
║  - one line = one self-contained record                                      ║
║  - append() returns only after flush + fsync                                 ║
║  - file order == write order (appends of a kind are serialized)              ║
║  - existing lines are only ever removed by rewrite() (compaction)            ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import os
import json
import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable, List

from services.errors import StorageError, StorageFatalError

logger = logging.getLogger("durable_log")

LOG_SUFFIX = ".jsonl"


def serialize_record(record: dict) -> str:
    """One record -> one line (no trailing newline)"""
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


class DurableLog:
    """Append-only record streams under a single directory."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self._locks: Dict[str, asyncio.Lock] = {}

    def path_for(self, kind: str) -> Path:
        return self.data_dir / f"{kind}{LOG_SUFFIX}"

    def _lock(self, kind: str) -> asyncio.Lock:
        if kind not in self._locks:
            self._locks[kind] = asyncio.Lock()
        return self._locks[kind]

    def ensure_dir(self):
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFatalError(f"Cannot create data directory {self.data_dir}: {e}")

    # ==================== READ ====================

    async def read_all(self, kind: str) -> List[str]:
        """
        Every non-blank line of the kind's file, in file order.
        Missing file == empty stream. Any other I/O failure is fatal.
        """
        path = self.path_for(kind)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"[LOG] Cannot read {path}: {e}")
            raise StorageFatalError(f"Cannot read log {path}: {e}")

        return [line for line in content.split("\n") if line.strip()]

    # ==================== WRITE ====================

    async def append(self, kind: str, record: dict):
        line = serialize_record(record) + "\n"
        async with self._lock(kind):
            try:
                await asyncio.to_thread(self._append_sync, self.path_for(kind), line)
            except OSError as e:
                logger.error(f"[LOG] Append to {kind} failed: {e}")
                raise StorageError(f"Cannot append to {kind} log: {e}")

    async def rewrite(self, kind: str, records: Iterable[dict]):
        """
        Compaction: replace the whole file with a snapshot of `records`,
        in the order given. Written to a temp file then renamed over the
        old one, so a crash leaves either the old or the new file.
        """
        lines = [serialize_record(r) + "\n" for r in records]
        async with self._lock(kind):
            try:
                await asyncio.to_thread(self._rewrite_sync, self.path_for(kind), lines)
            except OSError as e:
                logger.error(f"[LOG] Rewrite of {kind} failed: {e}")
                raise StorageError(f"Cannot rewrite {kind} log: {e}")
        logger.info(f"[LOG] Compacted {kind}: {len(lines)} record(s)")

    @staticmethod
    def _append_sync(path: Path, line: str):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())

    @staticmethod
    def _rewrite_sync(path: Path, lines: List[str]):
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.writelines(lines)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
