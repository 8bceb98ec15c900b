"""Batch entry point: apply every operation and diff, report per path."""

from __future__ import annotations

import logging
from typing import Any

from .errors import ValidationError
from .executor import FileOperationExecutor
from .patcher import DiffPatcher
from .types import ApplyOptions, ApplyResult, FailedPath, MutationBatch

logger = logging.getLogger(__name__)

RESPONSE_PATH = "<response>"


class ResponseApplier:
    """
    Applies a ``MutationBatch`` strictly in order: file operations first,
    then diffs.

    A failed path is reported and the batch continues. There is no automatic
    rollback of earlier successes; that takes an explicit undo.
    """

    def __init__(self, executor: FileOperationExecutor, patcher: DiffPatcher):
        self.executor = executor
        self.patcher = patcher

    def apply(self, batch: MutationBatch, options: ApplyOptions | None = None) -> ApplyResult:
        options = options or ApplyOptions()
        result = ApplyResult()

        for op in batch.files:
            res = self.executor.apply(op.kind, op.path, op.content, options)
            if res.ok:
                result.applied.append(f"{op.kind}:{op.path}")
            else:
                result.failed.append(
                    FailedPath(path=op.path, error=res.error or "Unknown error", error_kind=res.error_kind)
                )

        for diff in batch.diffs:
            res = self.patcher.apply_diff(diff.path, diff.hunks, options)
            if res.ok:
                result.applied.append(f"diff:{diff.path}")
            else:
                result.failed.append(
                    FailedPath(path=diff.path, error=res.error or "Unknown error", error_kind=res.error_kind)
                )

        if result.failed:
            logger.info(
                "Applied %d change(s), %d failed", len(result.applied), len(result.failed)
            )
        return result

    def apply_response(
        self, response: dict[str, Any], options: ApplyOptions | None = None
    ) -> ApplyResult:
        """Parse a raw generator response and apply it."""
        try:
            batch = MutationBatch.from_dict(response)
        except ValidationError as e:
            return ApplyResult(
                failed=[FailedPath(path=RESPONSE_PATH, error=str(e), error_kind=e.kind)]
            )
        return self.apply(batch, options)
