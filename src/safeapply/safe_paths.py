"""Path sandboxing.

Containment is decided lexically: ``.`` and ``..`` are collapsed without
touching the filesystem. A symlink inside the sandbox that points outside of
it is therefore NOT caught unless ``resolve_symlinks`` is set, which repeats
the check on the real paths of both the base and the target.
"""

from __future__ import annotations

import os
from pathlib import Path

from .errors import PathError
from .types import PathValidation


def _escapes(rel: str) -> bool:
    # relpath on a foreign drive/root comes back absolute.
    if os.path.isabs(rel):
        return True
    return rel == os.pardir or rel.startswith(os.pardir + os.sep)


def _outside(resolved: str, base: str) -> bool:
    try:
        rel = os.path.relpath(resolved, base)
    except ValueError:
        # Windows: paths on different drives have no relative form.
        return True
    return _escapes(rel)


def validate_path(
    path: str | os.PathLike[str],
    base_path: str | os.PathLike[str] | None = None,
    *,
    resolve_symlinks: bool = False,
) -> PathValidation:
    """Resolve ``path`` and check that it stays inside ``base_path``.

    Without a base path there is no sandbox to anchor against, so any input
    that still contains ``..`` after normalization is rejected.

    Never raises; failures come back as ``PathValidation(valid=False)``.
    """
    try:
        raw = os.fspath(path)
        if base_path is not None:
            base = os.path.normpath(os.path.abspath(os.fspath(base_path)))
            resolved = os.path.normpath(os.path.join(base, raw))
        else:
            base = None
            resolved = os.path.normpath(os.path.abspath(raw))

        if base is not None:
            if _outside(resolved, base):
                return PathValidation(
                    valid=False,
                    resolved_path=resolved,
                    error=f"Path '{raw}' is outside base path '{os.fspath(base_path)}'",
                )
            if resolve_symlinks and _outside(os.path.realpath(resolved), os.path.realpath(base)):
                return PathValidation(
                    valid=False,
                    resolved_path=resolved,
                    error=f"Path '{raw}' resolves outside base path '{os.fspath(base_path)}' via a symlink",
                )
        else:
            normalized = os.path.normpath(raw) if raw else ""
            if os.pardir in Path(normalized).parts:
                return PathValidation(
                    valid=False,
                    resolved_path=resolved,
                    error=f"Path '{raw}' contains path traversal",
                )

        return PathValidation(valid=True, resolved_path=resolved)
    except (TypeError, ValueError, OSError) as e:
        return PathValidation(valid=False, resolved_path=str(path), error=str(e))


def resolve_within(
    base_path: str | os.PathLike[str] | None,
    path: str | os.PathLike[str],
    *,
    resolve_symlinks: bool = False,
) -> Path:
    """Like ``validate_path`` but raises ``PathError`` instead of reporting."""
    result = validate_path(path, base_path, resolve_symlinks=resolve_symlinks)
    if not result.valid:
        raise PathError(result.error or f"Invalid path: {path}")
    return Path(result.resolved_path)
