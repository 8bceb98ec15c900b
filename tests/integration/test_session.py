"""Integration tests for MutationSession: batch apply, undo and persistence."""

import pytest

from safeapply.config import SafeApplyConfig
from safeapply.ledger import RollbackLedger
from safeapply.session import MutationSession
from safeapply.telemetry import read_events
from safeapply.types import DiffHunk, FileDiff, FileOperation, MutationBatch


@pytest.fixture
def session(project):
    return MutationSession(project)


class TestApply:
    def test_files_then_diffs_in_order(self, project, session):
        (project / "a.txt").write_text("1\n2\n3\n4\n5")
        batch = MutationBatch(
            files=[
                FileOperation("create", "src/app.ts", "x"),
                FileOperation("modify", "a.txt", "1\n2\n3\n4\n5\n6"),
            ],
            diffs=[FileDiff("a.txt", [DiffHunk(6, 6, "six")])],
        )

        result = session.apply(batch)

        assert result.ok is True
        assert result.applied == ["create:src/app.ts", "modify:a.txt", "diff:a.txt"]
        assert (project / "a.txt").read_text() == "1\n2\n3\n4\n5\nsix"
        assert session.ledger.count() == 3

    def test_continues_past_failures(self, project, session):
        batch = MutationBatch(
            files=[
                FileOperation("modify", "missing.txt", "x"),
                FileOperation("create", "ok.txt", "ok"),
                FileOperation("create", "../escape.txt", "x"),
            ],
            diffs=[FileDiff("ok.txt", [DiffHunk(5, 5, "bad")])],
        )

        result = session.apply(batch)

        assert result.ok is False
        assert result.applied == ["create:ok.txt"]
        assert [(f.path, f.error_kind) for f in result.failed] == [
            ("missing.txt", "PreconditionError"),
            ("../escape.txt", "PathError"),
            ("ok.txt", "ValidationError"),
        ]
        # No automatic rollback of the success.
        assert (project / "ok.txt").read_text() == "ok"
        assert session.ledger.count() == 1

    def test_apply_response_dict(self, project, session):
        result = session.apply_response(
            {"status": "success", "files": [{"path": "r.txt", "operation": "create", "content": "r"}]}
        )
        assert result.applied == ["create:r.txt"]

    def test_malformed_response(self, session):
        result = session.apply_response({"files": [{"operation": "create"}]})
        assert result.ok is False
        assert result.failed[0].path == "<response>"
        assert result.failed[0].error_kind == "ValidationError"

    def test_unknown_operation_fails_only_its_path(self, project, session):
        result = session.apply_response(
            {
                "files": [
                    {"path": "ok.txt", "operation": "create", "content": "x"},
                    {"path": "b.txt", "operation": "rename"},
                ]
            }
        )

        assert result.applied == ["create:ok.txt"]
        assert [(f.path, f.error_kind) for f in result.failed] == [("b.txt", "ValidationError")]
        assert (project / "ok.txt").read_text() == "x"

    def test_unencodable_content_fails_only_its_path(self, project, session, snapshot_tree):
        (project / "a.txt").write_text("1\n2")
        before = snapshot_tree(project)

        result = session.apply_response(
            {
                "files": [{"path": "s.txt", "operation": "create", "content": "bad\udc80"}],
                "diffs": [{"file": "a.txt", "hunks": [{"start": 1, "end": 1, "content": "\udc80"}]}],
            }
        )

        assert result.applied == []
        assert [f.error_kind for f in result.failed] == ["ValidationError", "ValidationError"]
        assert snapshot_tree(project) == before
        assert session.ledger.count() == 0

    def test_non_string_hunk_content(self, project, session):
        (project / "a.txt").write_text("1")
        result = session.apply_response(
            {"diffs": [{"file": "a.txt", "hunks": [{"start": 1, "end": 1, "content": 5}]}]}
        )
        assert result.ok is False
        assert result.failed[0].error_kind == "ValidationError"
        assert (project / "a.txt").read_text() == "1"

    def test_dry_run_session(self, project, snapshot_tree):
        session = MutationSession(project, dry_run=True)
        (project / "a.txt").write_text("keep")
        before = snapshot_tree(project)

        result = session.apply(
            MutationBatch(
                files=[FileOperation("delete", "a.txt"), FileOperation("create", "b.txt", "b")],
                diffs=[FileDiff("a.txt", [DiffHunk(1, 1, "x")])],
            )
        )

        assert result.ok is True
        assert snapshot_tree(project) == before
        assert session.ledger.count() == 0

    def test_single_operation_helpers(self, project, session):
        assert session.apply_operation("create", "h.txt", "1\n2").ok is True
        assert session.apply_diff("h.txt", [DiffHunk(2, 2, "two")]).ok is True
        assert (project / "h.txt").read_text() == "1\ntwo"


class TestUndo:
    def test_undo_and_undo_n(self, project, session):
        session.apply_operation("create", "a.txt", "a")
        session.apply_operation("modify", "a.txt", "b")
        session.apply_operation("create", "c.txt", "c")

        assert session.undo().ok is True
        assert not (project / "c.txt").exists()

        result = session.undo_n(5)
        assert result.undone == 2
        assert not (project / "a.txt").exists()
        assert session.history() == []

    def test_reset(self, project, session):
        session.apply_operation("create", "a.txt", "a")
        session.reset()
        assert session.history() == []
        assert session.undo().ok is False
        assert (project / "a.txt").exists()

    def test_sessions_do_not_share_ledgers(self, tmp_path):
        one, two = tmp_path / "one", tmp_path / "two"
        one.mkdir()
        two.mkdir()
        s1, s2 = MutationSession(one), MutationSession(two)

        s1.apply_operation("create", "a.txt", "a")

        assert s1.ledger.count() == 1
        assert s2.ledger.count() == 0

    def test_injected_ledger(self, project):
        ledger = RollbackLedger(max_entries=1, root=project)
        session = MutationSession(project, ledger=ledger)
        session.apply_operation("create", "a.txt", "a")
        session.apply_operation("create", "b.txt", "b")
        assert ledger.count() == 1
        assert ledger.history()[0].path == str(project / "b.txt")


class TestConfiguredSession:
    def test_journal_and_telemetry(self, project):
        config = SafeApplyConfig()
        config.ledger.journal_path = ".safeapply/ledger.jsonl"
        config.telemetry.enabled = True

        first = MutationSession(project, config)
        first.apply_operation("create", "a.txt", "a")
        first.apply(MutationBatch(files=[FileOperation("modify", "a.txt", "b")]))

        second = MutationSession(project, config)
        assert second.ledger.count() == 2
        assert second.undo_n(2).undone == 2
        assert not (project / "a.txt").exists()
        second.reset()

        events = read_events(project / ".safeapply" / "telemetry.jsonl")
        assert [e["type"] for e in events] == ["apply_result", "undo_result", "ledger_cleared"]
        assert events[0]["data"]["applied"] == ["modify:a.txt"]
        assert events[1]["data"]["undone"] == 2

    def test_symlink_policy_from_config(self, tmp_path):
        base, outside = tmp_path / "base", tmp_path / "outside"
        base.mkdir()
        outside.mkdir()
        try:
            (base / "link").symlink_to(outside, target_is_directory=True)
        except OSError:
            pytest.skip("Cannot create symlinks on this system")

        config = SafeApplyConfig()
        config.paths.resolve_symlinks = True
        result = MutationSession(base, config).apply_operation("create", "link/x.txt", "x")

        assert result.error_kind == "PathError"
        assert not (outside / "x.txt").exists()
