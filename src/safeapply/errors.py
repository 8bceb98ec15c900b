"""Error taxonomy for file mutations.

Components raise these internally and convert them into failed
``OperationResult`` values at their public boundary, so a batch can report a
failed path and keep going.
"""

from __future__ import annotations


class SafeApplyError(Exception):
    """Base class for all mutation errors."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class PathError(SafeApplyError):
    """Path escapes the sandbox or cannot be resolved."""


class PreconditionError(SafeApplyError):
    """Existence mismatch or missing required content."""


class PolicyError(SafeApplyError):
    """Operation blocked by policy (e.g. binary file extension)."""


class FileIOError(SafeApplyError):
    """OS-level failure while reading or writing."""


class ValidationError(SafeApplyError):
    """Malformed input such as out-of-range hunk bounds."""


class IntegrityError(SafeApplyError):
    """Undo requested but the expected backup content is missing.

    Signals that the ledger itself is corrupted; callers should treat it as
    fatal rather than as a normal user error.
    """
