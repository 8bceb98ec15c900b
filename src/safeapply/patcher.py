"""Line-range diff hunks applied to a single file."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence

from .config import PolicyConfig
from .errors import FileIOError, PreconditionError, SafeApplyError, ValidationError
from .executor import check_target, check_text, write_or_raise
from .ledger import RollbackLedger
from .types import ApplyOptions, DiffHunk, OperationResult

logger = logging.getLogger(__name__)


def _is_line_number(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def validate_hunks(hunks: Sequence[DiffHunk], line_count: int) -> None:
    """Check every hunk against the file before any splicing happens.

    Raises:
        ValidationError: on the first hunk with bad bounds or non-text content.
    """
    for hunk in hunks:
        start, end = hunk.start, hunk.end
        check_text(hunk.content)
        if not _is_line_number(start) or not _is_line_number(end):
            raise ValidationError("Invalid hunk: start and end must be integers")
        if start < 1:
            raise ValidationError(f"Invalid hunk start line: {start} (must be >= 1)")
        if start > line_count:
            raise ValidationError(
                f"Invalid hunk start line: {start} (file has {line_count} lines)"
            )
        if end < start:
            raise ValidationError(
                f"Invalid hunk: end line ({end}) must be >= start line ({start})"
            )
        if end > line_count:
            raise ValidationError(
                f"Invalid hunk end line: {end} (file has {line_count} lines)"
            )


def splice_hunks(lines: Sequence[str], hunks: Sequence[DiffHunk]) -> list[str]:
    """Apply already-validated hunks to a copy of ``lines``.

    Hunks are applied highest ``start`` first, so every hunk still waiting
    refers to positions in the original numbering regardless of input order.
    Overlapping hunks are not detected; the one applied later wins.
    """
    buf = list(lines)
    for hunk in sorted(hunks, key=lambda h: h.start, reverse=True):
        buf[hunk.start - 1 : hunk.end] = hunk.content.split("\n")
    return buf


class DiffPatcher:
    """
    Applies a list of hunks to one file as a single write.

    All hunks go into an in-memory line buffer; the file is written exactly
    once, or not at all if any hunk is invalid.
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

    def apply_diff(
        self,
        path: str | os.PathLike[str],
        hunks: Sequence[DiffHunk],
        options: ApplyOptions | None = None,
    ) -> OperationResult:
        options = options or ApplyOptions()
        try:
            self._apply_diff(path, hunks, options)
        except SafeApplyError as e:
            logger.debug("diff %s failed: %s", path, e)
            return OperationResult.failure(e)
        return OperationResult.success()

    def _apply_diff(
        self,
        path: str | os.PathLike[str],
        hunks: Sequence[DiffHunk],
        options: ApplyOptions,
    ) -> None:
        target = check_target(path, options, self.policy, resolve_symlinks=self.resolve_symlinks)
        if not target.is_file():
            raise PreconditionError(f"File does not exist: {target}")
        if not hunks:
            raise PreconditionError("No hunks provided")

        try:
            with open(target, encoding="utf-8", newline="") as f:
                lines = f.read().split("\n")
        except (OSError, UnicodeDecodeError) as e:
            raise FileIOError(str(e)) from e

        validate_hunks(hunks, len(lines))
        patched = splice_hunks(lines, hunks)

        if options.dry_run:
            return

        self.ledger.record_backup(target, "modify")
        write_or_raise(target, "\n".join(patched))
        logger.debug("diff %s (%d hunks)", target, len(hunks))
