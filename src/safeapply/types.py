"""Core data types for the mutation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import SafeApplyError, ValidationError

OPERATION_KINDS = ("create", "modify", "delete")


def _check_kind(kind: str) -> str:
    if kind not in OPERATION_KINDS:
        raise ValidationError(
            f"Invalid operation: {kind}. Must be one of {set(OPERATION_KINDS)}"
        )
    return kind


@dataclass
class FileOperation:
    """A whole-file change proposed by the generator."""

    kind: str  # "create", "modify", "delete"; checked when applied
    path: str
    content: str | None = None


@dataclass
class DiffHunk:
    """Replace lines ``start..end`` (1-indexed, inclusive) with ``content``."""

    start: int
    end: int
    content: str = ""


@dataclass
class FileDiff:
    path: str
    hunks: list[DiffHunk] = field(default_factory=list)


@dataclass
class MutationBatch:
    """A batch of file operations and diffs to apply in order."""

    files: list[FileOperation] = field(default_factory=list)
    diffs: list[FileDiff] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files and not self.diffs

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MutationBatch:
        """Build a batch from the generator's response shape.

        Expected keys are ``files`` (``path``, ``operation``, optional
        ``content``) and ``diffs`` (``file``, ``hunks``). Anything else in the
        response is ignored. The ``operation`` string is kept as given; an
        unknown kind fails for its own path when the batch is applied.
        """
        if not isinstance(data, dict):
            raise ValidationError("Response must be a mapping")

        files: list[FileOperation] = []
        for i, item in enumerate(data.get("files") or []):
            if not isinstance(item, dict):
                raise ValidationError(f"files[{i}] must be a mapping")
            path = item.get("path")
            if not isinstance(path, str) or not path:
                raise ValidationError(f"files[{i}] is missing 'path'")
            content = item.get("content")
            if content is not None and not isinstance(content, str):
                raise ValidationError(f"files[{i}].content must be a string")
            files.append(
                FileOperation(kind=str(item.get("operation", "")), path=path, content=content)
            )

        diffs: list[FileDiff] = []
        for i, item in enumerate(data.get("diffs") or []):
            if not isinstance(item, dict):
                raise ValidationError(f"diffs[{i}] must be a mapping")
            path = item.get("file")
            if not isinstance(path, str) or not path:
                raise ValidationError(f"diffs[{i}] is missing 'file'")
            hunks: list[DiffHunk] = []
            for j, h in enumerate(item.get("hunks") or []):
                if not isinstance(h, dict):
                    raise ValidationError(f"diffs[{i}].hunks[{j}] must be a mapping")
                content = h.get("content")
                if content is None:
                    content = ""
                elif not isinstance(content, str):
                    raise ValidationError(f"diffs[{i}].hunks[{j}].content must be a string")
                hunks.append(DiffHunk(start=h.get("start"), end=h.get("end"), content=content))
            diffs.append(FileDiff(path=path, hunks=hunks))

        return cls(files=files, diffs=diffs)


@dataclass
class ApplyOptions:
    dry_run: bool = False
    base_path: Path | None = None


@dataclass
class PathValidation:
    """Outcome of sandboxing a path."""

    valid: bool
    resolved_path: str
    error: str | None = None


@dataclass
class OperationResult:
    """Outcome of a single mutating call."""

    ok: bool
    error: str | None = None
    error_kind: str | None = None

    @classmethod
    def success(cls) -> OperationResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, err: SafeApplyError) -> OperationResult:
        return cls(ok=False, error=str(err), error_kind=err.kind)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class BackupEntry:
    """Pre-image of a file captured right before it was mutated."""

    path: str  # absolute
    operation: str
    original_content: str | None  # None: file did not exist
    timestamp: str = field(default_factory=_now_iso)

    def __post_init__(self) -> None:
        _check_kind(self.operation)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "operation": self.operation,
            "original_content": self.original_content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupEntry:
        if not isinstance(data, dict):
            raise ValidationError("Backup entry must be a mapping")
        original = data.get("original_content")
        if original is not None and not isinstance(original, str):
            raise ValidationError("original_content must be a string or null")
        return cls(
            path=str(data["path"]),
            operation=str(data["operation"]),
            original_content=original,
            timestamp=str(data["timestamp"]),
        )


@dataclass
class FailedPath:
    path: str
    error: str
    error_kind: str | None = None


@dataclass
class ApplyResult:
    """Per-path outcome of applying a batch."""

    applied: list[str] = field(default_factory=list)
    failed: list[FailedPath] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "applied": list(self.applied),
            "failed": [
                {"path": f.path, "error": f.error, "error_kind": f.error_kind}
                for f in self.failed
            ],
        }


@dataclass
class UndoResult:
    ok: bool
    message: str
    entry: BackupEntry | None = None
    error_kind: str | None = None


@dataclass
class UndoBatchResult:
    undone: int
    messages: list[str] = field(default_factory=list)
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.undone > 0
