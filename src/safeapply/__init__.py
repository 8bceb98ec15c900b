"""SafeApply: sandboxed, atomic and reversible file mutations."""

from .applier import ResponseApplier
from .atomic import atomic_write
from .config import SafeApplyConfig, load_config
from .errors import (
    FileIOError,
    IntegrityError,
    PathError,
    PolicyError,
    PreconditionError,
    SafeApplyError,
    ValidationError,
)
from .executor import FileOperationExecutor
from .ledger import RollbackLedger
from .patcher import DiffPatcher
from .safe_paths import validate_path
from .session import MutationSession
from .types import (
    ApplyOptions,
    ApplyResult,
    BackupEntry,
    DiffHunk,
    FileDiff,
    FileOperation,
    MutationBatch,
)

__all__ = [
    "ResponseApplier",
    "atomic_write",
    "SafeApplyConfig",
    "load_config",
    "FileIOError",
    "IntegrityError",
    "PathError",
    "PolicyError",
    "PreconditionError",
    "SafeApplyError",
    "ValidationError",
    "FileOperationExecutor",
    "RollbackLedger",
    "DiffPatcher",
    "validate_path",
    "MutationSession",
    "ApplyOptions",
    "ApplyResult",
    "BackupEntry",
    "DiffHunk",
    "FileDiff",
    "FileOperation",
    "MutationBatch",
]
