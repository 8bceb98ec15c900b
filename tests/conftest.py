"""Global pytest configuration for hermetic test runs."""

from __future__ import annotations

import os

import pytest

from safeapply.ledger import RollbackLedger
from safeapply.types import ApplyOptions


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # Keep developer SAFEAPPLY_* settings from leaking into config tests.
    for key in list(os.environ):
        if key.startswith("SAFEAPPLY_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def project(tmp_path):
    """An empty sandbox directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def ledger(project):
    return RollbackLedger(root=project)


@pytest.fixture
def options(project):
    return ApplyOptions(base_path=project)


@pytest.fixture
def dry_options(project):
    return ApplyOptions(dry_run=True, base_path=project)


def _snapshot_tree(root):
    out = {}
    for dirpath, dirnames, filenames in os.walk(root):
        for d in dirnames:
            out[os.path.relpath(os.path.join(dirpath, d), root)] = None
        for f in filenames:
            p = os.path.join(dirpath, f)
            with open(p, "rb") as fh:
                out[os.path.relpath(p, root)] = fh.read()
    return out


@pytest.fixture
def snapshot_tree():
    """Map every file under a root to its bytes (directories as None)."""
    return _snapshot_tree
