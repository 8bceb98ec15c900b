"""A mutation session: one sandbox, one undo ledger, wired components.

Each session owns its ledger, so independent workspaces or test runs never
share undo history.
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

from .applier import ResponseApplier
from .config import SafeApplyConfig
from .executor import FileOperationExecutor
from .journal import LedgerJournal
from .ledger import RollbackLedger
from .patcher import DiffPatcher
from .telemetry import TelemetrySink
from .types import (
    ApplyOptions,
    ApplyResult,
    BackupEntry,
    DiffHunk,
    MutationBatch,
    OperationResult,
    UndoBatchResult,
    UndoResult,
)


def _under(base: Path, p: str) -> Path:
    path = Path(p)
    return path if path.is_absolute() else base / path


class MutationSession:
    def __init__(
        self,
        base_path: Path | str,
        config: SafeApplyConfig | None = None,
        *,
        ledger: RollbackLedger | None = None,
        dry_run: bool = False,
    ):
        self.base_path = Path(base_path).absolute()
        self.config = config or SafeApplyConfig()
        self.dry_run = dry_run
        self.run_id = uuid.uuid4().hex[:12]

        if ledger is None:
            journal = None
            if self.config.ledger.journal_path:
                journal = LedgerJournal(_under(self.base_path, self.config.ledger.journal_path))
            ledger = RollbackLedger(
                self.config.ledger.max_entries, journal=journal, root=self.base_path
            )
        self.ledger = ledger

        resolve_symlinks = self.config.paths.resolve_symlinks
        self.executor = FileOperationExecutor(
            self.ledger, self.config.policy, resolve_symlinks=resolve_symlinks
        )
        self.patcher = DiffPatcher(
            self.ledger, self.config.policy, resolve_symlinks=resolve_symlinks
        )
        self.applier = ResponseApplier(self.executor, self.patcher)
        self.telemetry = TelemetrySink(
            enabled=self.config.telemetry.enabled,
            path=_under(self.base_path, self.config.telemetry.log_path),
        )

    @property
    def options(self) -> ApplyOptions:
        return ApplyOptions(dry_run=self.dry_run, base_path=self.base_path)

    def apply(self, batch: MutationBatch) -> ApplyResult:
        result = self.applier.apply(batch, self.options)
        self._log_apply(result)
        return result

    def apply_response(self, response: dict[str, Any]) -> ApplyResult:
        result = self.applier.apply_response(response, self.options)
        self._log_apply(result)
        return result

    def apply_operation(self, kind: str, path: str, content: str | None = None) -> OperationResult:
        return self.executor.apply(kind, path, content, self.options)

    def apply_diff(self, path: str, hunks: list[DiffHunk]) -> OperationResult:
        return self.patcher.apply_diff(path, hunks, self.options)

    def undo(self) -> UndoResult:
        result = self.ledger.undo_last()
        self.telemetry.log(
            self.run_id,
            "undo_result",
            {"ok": result.ok, "undone": int(result.ok), "error_kind": result.error_kind},
        )
        return result

    def undo_n(self, count: int) -> UndoBatchResult:
        result = self.ledger.undo_n(count)
        self.telemetry.log(
            self.run_id,
            "undo_result",
            {"ok": result.ok, "undone": result.undone, "error_kind": result.error_kind},
        )
        return result

    def history(self) -> list[BackupEntry]:
        return self.ledger.history()

    def reset(self) -> None:
        """Drop all undo history for this session."""
        self.ledger.clear()
        self.telemetry.log(self.run_id, "ledger_cleared", {})

    def _log_apply(self, result: ApplyResult) -> None:
        self.telemetry.log(
            self.run_id,
            "apply_result",
            {"dry_run": self.dry_run, **result.to_dict()},
        )
