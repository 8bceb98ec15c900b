"""Atomic file writes: temp file in the destination directory, then rename."""

from __future__ import annotations

import logging
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    ok: bool
    error: str | None = None


def temp_name_for(target: Path) -> Path:
    """Collision-resistant sibling name: pid + ms timestamp + random suffix."""
    stamp = int(time.time() * 1000)
    return target.parent / f".tmp_{os.getpid()}_{stamp}_{secrets.token_hex(4)}"


def atomic_write(path: str | os.PathLike[str], content: str) -> WriteResult:
    """Write ``content`` to ``path`` so no reader ever sees a partial file.

    The temp file lives in the same directory as the destination so that
    ``os.replace`` stays on one filesystem and is a single rename.
    """
    target = Path(path)
    tmp: Path | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = temp_name_for(target)
        # newline="" keeps the bytes on disk identical to the string.
        with open(tmp, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp, target)
        return WriteResult(ok=True)
    except (OSError, UnicodeError) as e:
        if tmp is not None:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove orphaned temp file %s", tmp)
        return WriteResult(ok=False, error=str(e))
