"""Append-only JSONL journal that lets the undo ledger survive restarts.

Record schema, one JSON object per line:
  {"op": "push", "entry": {<BackupEntry>}}
  {"op": "pop", "timestamp": <entry timestamp>, "path": <entry path>}
  {"op": "clear"}

The in-memory ledger is the read cache; replaying the journal rebuilds it.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .atomic import atomic_write
from .errors import FileIOError, SafeApplyError
from .types import BackupEntry

logger = logging.getLogger(__name__)

# Compact once the log holds this many records per ledger slot.
COMPACT_FACTOR = 4


class LedgerJournal:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._records = 0

    def _append(self, record: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as e:
            raise FileIOError(f"Journal write failed: {e}") from e
        self._records += 1

    def append_push(self, entry: BackupEntry) -> None:
        self._append({"op": "push", "entry": entry.to_dict()})

    def append_pop(self, entry: BackupEntry) -> None:
        self._append({"op": "pop", "timestamp": entry.timestamp, "path": entry.path})

    def append_clear(self) -> None:
        self._append({"op": "clear"})

    def _iter_records(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        records: list[dict[str, Any]] = []
        with open(self.path, encoding="utf-8") as f:
            for ln in f:
                ln = ln.strip()
                if not ln:
                    continue
                try:
                    rec = json.loads(ln)
                except json.JSONDecodeError:
                    logger.warning("Skipping corrupt journal line in %s", self.path)
                    continue
                if isinstance(rec, dict):
                    records.append(rec)
        return records

    def replay(self, max_entries: int) -> list[BackupEntry]:
        """Rebuild the stack (oldest first), honoring capacity eviction."""
        stack: list[BackupEntry] = []
        records = self._iter_records()
        for rec in records:
            op = rec.get("op")
            if op == "push":
                try:
                    stack.append(BackupEntry.from_dict(rec["entry"]))
                except (KeyError, TypeError, ValueError, SafeApplyError):
                    logger.warning("Skipping malformed push record in %s", self.path)
                    continue
                if len(stack) > max_entries:
                    stack.pop(0)
            elif op == "pop":
                ts, path = rec.get("timestamp"), rec.get("path")
                for i in range(len(stack) - 1, -1, -1):
                    if stack[i].timestamp == ts and stack[i].path == path:
                        del stack[i]
                        break
            elif op == "clear":
                stack.clear()
        self._records = len(records)
        return stack

    def needs_compaction(self, max_entries: int) -> bool:
        return self._records > max_entries * COMPACT_FACTOR

    def compact(self, entries: list[BackupEntry]) -> None:
        """Rewrite the journal so it holds only the live entries."""
        body = "".join(
            json.dumps({"op": "push", "entry": e.to_dict()}, ensure_ascii=False) + "\n"
            for e in entries
        )
        res = atomic_write(self.path, body)
        if not res.ok:
            raise FileIOError(f"Journal compaction failed: {res.error}")
        self._records = len(entries)
