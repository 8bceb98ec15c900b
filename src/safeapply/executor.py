"""Create, modify and delete files with a backup recorded before each mutation."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .atomic import atomic_write
from .config import PolicyConfig
from .errors import (
    FileIOError,
    PolicyError,
    PreconditionError,
    SafeApplyError,
    ValidationError,
)
from .ledger import RollbackLedger
from .safe_paths import resolve_within
from .types import OPERATION_KINDS, ApplyOptions, OperationResult

logger = logging.getLogger(__name__)


def check_target(
    path: str | os.PathLike[str],
    options: ApplyOptions,
    policy: PolicyConfig,
    *,
    resolve_symlinks: bool = False,
) -> Path:
    """Sandbox ``path`` and apply the binary-extension policy.

    Shared by the executor and the diff patcher.
    """
    target = resolve_within(options.base_path, path, resolve_symlinks=resolve_symlinks)
    if policy.is_binary(path):
        raise PolicyError(f"Binary file modification blocked: {path}")
    return target


def check_text(content: object) -> None:
    """Reject non-strings and text that cannot be stored as UTF-8 (lone surrogates)."""
    if not isinstance(content, str):
        raise ValidationError("Content must be a string")
    try:
        content.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValidationError(f"Content is not valid UTF-8 text: {e.reason}") from e


def write_or_raise(target: Path, content: str) -> None:
    res = atomic_write(target, content)
    if not res.ok:
        raise FileIOError(res.error or f"Write failed: {target}")


class FileOperationExecutor:
    """
    Applies whole-file operations inside a sandbox.

    A real run follows backup-then-mutate: exactly one ledger entry is pushed
    immediately before the filesystem is touched. A dry run checks the same
    preconditions and stops there.
    """

    def __init__(
        self,
        ledger: RollbackLedger,
        policy: PolicyConfig | None = None,
        *,
        resolve_symlinks: bool = False,
    ):
        self.ledger = ledger
        self.policy = policy or PolicyConfig()
        self.resolve_symlinks = resolve_symlinks

    def apply(
        self,
        kind: str,
        path: str | os.PathLike[str],
        content: str | None = None,
        options: ApplyOptions | None = None,
    ) -> OperationResult:
        options = options or ApplyOptions()
        try:
            self._apply(kind, path, content, options)
        except SafeApplyError as e:
            logger.debug("%s %s failed: %s", kind, path, e)
            return OperationResult.failure(e)
        return OperationResult.success()

    def _apply(
        self,
        kind: str,
        path: str | os.PathLike[str],
        content: str | None,
        options: ApplyOptions,
    ) -> None:
        if kind not in OPERATION_KINDS:
            raise ValidationError(f"Unknown operation: {kind}")

        target = check_target(path, options, self.policy, resolve_symlinks=self.resolve_symlinks)

        if content is not None:
            check_text(content)
            if len(content) > self.policy.large_file_warning_chars:
                logger.warning(
                    "Large file (%dKB): %s", round(len(content) / 1000), path
                )

        exists = target.exists()
        if exists and not target.is_file():
            raise PreconditionError(f"Not a regular file: {target}")
        if kind in ("create", "modify") and content is None:
            raise PreconditionError(f"Content required for {kind} operation")
        if kind in ("modify", "delete") and not exists:
            raise PreconditionError(f"File does not exist: {target}")

        if options.dry_run:
            return

        if kind == "create":
            # Overwriting an existing file must undo to its prior content.
            self.ledger.record_backup(target, "modify" if exists else "create")
            write_or_raise(target, content)  # type: ignore[arg-type]
        elif kind == "modify":
            self.ledger.record_backup(target, "modify")
            write_or_raise(target, content)  # type: ignore[arg-type]
        else:
            self.ledger.record_backup(target, "delete")
            try:
                target.unlink()
            except OSError as e:
                raise FileIOError(str(e)) from e
        logger.debug("%s %s", kind, target)
