"""Bounded undo ledger of pre-mutation snapshots.

Every mutating call records one ``BackupEntry`` right before it touches the
filesystem; undo pops the most recent entry and performs its inverse. Undo is
transactional: if the inverse fails on I/O, the entry is pushed back so the
ledger is left unchanged and the undo can be retried.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from .atomic import atomic_write
from .errors import FileIOError, IntegrityError, SafeApplyError
from .journal import LedgerJournal
from .types import BackupEntry, UndoBatchResult, UndoResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 50


def _read_pre_image(path: str) -> str | None:
    if not os.path.lexists(path):
        return None
    if not os.path.isfile(path):
        raise FileIOError(f"Not a regular file: {path}")
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileIOError(f"Cannot snapshot {path}: {e}") from e


class RollbackLedger:
    """
    Undo stack owned by a session.

    Oldest entries are evicted silently once ``max_entries`` is exceeded; an
    evicted entry can never be undone. All stack access is serialized by a
    lock so one ledger can be shared by a threaded host.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        *,
        journal: LedgerJournal | None = None,
        root: Path | str | None = None,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self.journal = journal
        # Empty-directory cleanup never removes this directory.
        self.root = os.path.abspath(root) if root is not None else None
        self._entries: list[BackupEntry] = []
        self._lock = threading.Lock()

        if journal is not None:
            self._entries = journal.replay(max_entries)

    def record_backup(self, path: Path | str, operation: str) -> BackupEntry:
        """Snapshot the current content of ``path`` (or its absence).

        Raises:
            FileIOError: the existing file could not be read, or the journal
                could not be written. Nothing is pushed in that case.
        """
        abs_path = os.path.abspath(path)
        entry = BackupEntry(
            path=abs_path,
            operation=operation,
            original_content=_read_pre_image(abs_path),
        )
        with self._lock:
            if self.journal is not None:
                self.journal.append_push(entry)
            self._entries.append(entry)
            if len(self._entries) > self.max_entries:
                evicted = self._entries.pop(0)
                logger.debug("Evicted oldest backup %s (%s)", evicted.path, evicted.operation)
            self._maybe_compact()
        return entry

    def _maybe_compact(self) -> None:
        if self.journal is None or not self.journal.needs_compaction(self.max_entries):
            return
        try:
            self.journal.compact(list(self._entries))
        except FileIOError as e:
            logger.warning("%s", e)

    def _journal_pop(self, entry: BackupEntry) -> None:
        if self.journal is None:
            return
        try:
            self.journal.append_pop(entry)
        except FileIOError as e:
            # The filesystem is already restored; only persistence lags.
            logger.warning("%s", e)

    def _remove_empty_parents(self, path: str) -> None:
        """Remove directories left empty by a reverted create, up to the root."""
        parent = os.path.dirname(path)
        while True:
            if self.root is not None:
                if os.path.normcase(parent) == os.path.normcase(self.root):
                    return
                if os.path.commonpath([parent, self.root]) != self.root:
                    return
            try:
                if os.listdir(parent):
                    return
                os.rmdir(parent)
            except OSError:
                logger.debug("Left parent directory in place: %s", parent)
                return
            if self.root is None:
                # Without a sandbox root only the immediate parent is touched.
                return
            parent = os.path.dirname(parent)

    def _restore(self, entry: BackupEntry) -> str:
        if entry.original_content is None:
            raise IntegrityError(f"No backup content for: {entry.path}")
        res = atomic_write(entry.path, entry.original_content)
        if not res.ok:
            raise FileIOError(res.error or f"Restore failed: {entry.path}")
        return f"Restored: {entry.path}"

    def _invert(self, entry: BackupEntry) -> str:
        if entry.operation == "create":
            if entry.original_content is None:
                if os.path.lexists(entry.path):
                    try:
                        os.unlink(entry.path)
                    except OSError as e:
                        raise FileIOError(str(e)) from e
                    self._remove_empty_parents(entry.path)
                return f"Deleted: {entry.path}"
            return self._restore(entry)

        if entry.operation == "modify":
            if entry.original_content is None:
                raise IntegrityError(f"No backup content for: {entry.path}")
            return self._restore(entry)

        if entry.original_content is None:
            raise IntegrityError(f"Cannot restore deleted file (no backup): {entry.path}")
        return self._restore(entry)

    def undo_last(self) -> UndoResult:
        """Pop the most recent entry and reverse it."""
        with self._lock:
            if not self._entries:
                return UndoResult(ok=False, message="Nothing to undo.")

            entry = self._entries.pop()
            try:
                message = self._invert(entry)
            except IntegrityError as e:
                # Retrying cannot help; the entry stays consumed.
                self._journal_pop(entry)
                logger.error("Ledger integrity violation: %s", e)
                return UndoResult(ok=False, message=str(e), entry=entry, error_kind=e.kind)
            except SafeApplyError as e:
                self._entries.append(entry)
                return UndoResult(ok=False, message=f"Undo failed: {e}", error_kind=e.kind)

            self._journal_pop(entry)
            return UndoResult(ok=True, message=message, entry=entry)

    def undo_n(self, count: int) -> UndoBatchResult:
        """Undo up to ``count`` entries, stopping at the first failure.

        A ``count`` below one undoes nothing.
        """
        result = UndoBatchResult(undone=0)
        for _ in range(count):
            step = self.undo_last()
            result.messages.append(step.message)
            if not step.ok:
                result.error_kind = step.error_kind
                break
            result.undone += 1
        return result

    def history(self) -> list[BackupEntry]:
        """Entries oldest first; the last one is undone next."""
        with self._lock:
            return list(self._entries)

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def has_history(self) -> bool:
        return self.count() > 0

    def clear(self) -> None:
        with self._lock:
            if self.journal is not None:
                self.journal.append_clear()
            self._entries.clear()
