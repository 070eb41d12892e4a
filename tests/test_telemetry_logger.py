import json

from transcript_bridge.error_handling import ToolResultIdMismatchError
from transcript_bridge.monitoring import TelemetryLogger
from transcript_bridge.tool_result_validator import reconcile_tool_results
from transcript_bridge.transcript import ToolInvocation, ToolOutcome, Turn


def test_telemetry_jsonl(tmp_path):
    outp = tmp_path / "telemetry.jsonl"
    tl = TelemetryLogger(str(outp))
    tl.log({"event": "encode", "backend": "anthropic"})
    tl.capture_exception(ToolResultIdMismatchError("mismatch", ["x"], ["y"]), {"task": "t1"})
    tl.close()
    lines = [json.loads(line) for line in outp.read_text().splitlines()]
    assert len(lines) == 2
    assert lines[0]["event"] == "encode"
    assert lines[1]["error_type"] == "ToolResultIdMismatchError"
    assert lines[1]["details"] == {"tool_result_ids": ["x"], "tool_use_ids": ["y"]}
    assert lines[1]["context"] == {"task": "t1"}


def test_telemetry_path_from_env(tmp_path, monkeypatch):
    outp = tmp_path / "nested" / "events.jsonl"
    monkeypatch.setenv("TRANSCRIPT_BRIDGE_TELEMETRY_PATH", str(outp))
    tl = TelemetryLogger()
    history = [Turn.assistant(ToolInvocation(id="a", name="ls"))]
    reconcile_tool_results(Turn.user(ToolOutcome("stale", "ok")), history, tl)
    tl.close()
    events = [json.loads(line) for line in outp.read_text().splitlines()]
    assert {e["error_type"] for e in events} == {"MissingToolResultError", "ToolResultIdMismatchError"}


def test_disabled_logger_is_noop():
    tl = TelemetryLogger()
    tl.log({"event": "ignored"})
    tl.close()
