"""Unit tests for telemetry.py - JSONL event sink."""

from safeapply.telemetry import TelemetrySink, read_events


class TestTelemetrySink:
    def test_disabled_sink_writes_nothing(self, tmp_path):
        path = tmp_path / "t.jsonl"
        TelemetrySink(enabled=False, path=path).log("run", "apply_result", {})
        assert not path.exists()

    def test_appends_events(self, tmp_path):
        path = tmp_path / "nested" / "t.jsonl"
        sink = TelemetrySink(enabled=True, path=path)
        sink.log("r1", "apply_result", {"ok": True})
        sink.log("r1", "undo_result", {"undone": 1})

        events = read_events(path)
        assert [e["type"] for e in events] == ["apply_result", "undo_result"]
        assert events[0]["run_id"] == "r1"
        assert events[1]["data"] == {"undone": 1}
        assert isinstance(events[0]["timestamp"], float)

    def test_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        TelemetrySink(enabled=True, path=blocker / "t.jsonl").log("r", "x", {})

    def test_read_skips_corrupt_lines(self, tmp_path):
        path = tmp_path / "t.jsonl"
        path.write_text('{"type": "a"}\n\nnot-json\n{"type": "b"}\n')
        assert [e["type"] for e in read_events(path)] == ["a", "b"]
