"""Repair tool_result/tool_use pairing before a user turn is sent.

Asynchronous tool execution can record results whose ids no longer match the
assistant turn they answer, or drop results entirely.  ``reconcile_tool_results``
rebinds stale ids by position, synthesizes placeholders for results that are
still missing, and reports every anomaly to an error reporter.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .error_handling import MissingToolResultError, ToolResultIdMismatchError
from .monitoring.telemetry import ErrorReporter
from .transcript import Segment, ToolInvocation, ToolOutcome, Turn, find_last


logger = logging.getLogger(__name__)

INTERRUPTED_TOOL_RESULT = "Tool execution was interrupted before completion."


def _report(reporter: Optional[ErrorReporter], error: Exception, context: Dict[str, Any]) -> None:
    logger.warning("%s", error)
    if reporter is None:
        return
    try:
        reporter.capture_exception(error, context)
    except Exception as exc:  # reporting must never block the request
        logger.error("error reporter failed: %s", exc)


def reconcile_tool_results(
    latest_turn: Turn,
    preceding_turns: Sequence[Turn],
    reporter: Optional[ErrorReporter] = None,
) -> Turn:
    """Return ``latest_turn`` with every tool outcome bound to a preceding invocation.

    The same object is returned when nothing needs fixing.
    """
    if latest_turn.role != "user" or not latest_turn.segments:
        return latest_turn

    assistant = find_last(preceding_turns, lambda t: t.role == "assistant")
    if assistant is None:
        return latest_turn

    invocations = assistant.of_type(ToolInvocation)
    if not invocations:
        return latest_turn

    outcomes = latest_turn.of_type(ToolOutcome)
    use_ids = [inv.id or "" for inv in invocations]
    valid_ids = set(use_ids)
    result_ids = [o.tool_invocation_id for o in outcomes]
    existing = set(result_ids)

    missing = [uid for uid in use_ids if uid not in existing]
    has_invalid = any(rid not in valid_ids for rid in result_ids)
    if not missing and not has_invalid:
        return latest_turn

    if missing:
        _report(
            reporter,
            MissingToolResultError(
                "Detected missing tool_result blocks. "
                f"Missing tool_use IDs: [{', '.join(missing)}], "
                f"existing tool_result IDs: [{', '.join(result_ids)}]",
                missing,
                result_ids,
            ),
            {
                "missing_tool_use_ids": missing,
                "existing_tool_result_ids": result_ids,
                "tool_use_count": len(invocations),
                "tool_result_count": len(outcomes),
            },
        )
    if has_invalid:
        _report(
            reporter,
            ToolResultIdMismatchError(
                "Detected tool_result ID mismatch. "
                f"tool_result IDs: [{', '.join(result_ids)}], "
                f"tool_use IDs: [{', '.join(use_ids)}]",
                result_ids,
                use_ids,
            ),
            {
                "tool_result_ids": result_ids,
                "tool_use_ids": use_ids,
                "tool_result_count": len(outcomes),
                "tool_use_count": len(invocations),
            },
        )

    corrected: List[Segment] = []
    position = 0
    for segment in latest_turn.segments:
        if not isinstance(segment, ToolOutcome):
            corrected.append(segment)
            continue
        # position among outcomes, so duplicate stale ids rebind independently
        index, position = position, position + 1
        if segment.tool_invocation_id in valid_ids or index >= len(use_ids):
            corrected.append(segment)
            continue
        corrected.append(
            ToolOutcome(
                tool_invocation_id=use_ids[index],
                content=segment.content,
                is_error=segment.is_error,
            )
        )

    covered = {s.tool_invocation_id for s in corrected if isinstance(s, ToolOutcome)}
    placeholders: List[Segment] = [
        ToolOutcome(tool_invocation_id=uid, content=INTERRUPTED_TOOL_RESULT) for uid in use_ids if uid not in covered
    ]
    return latest_turn.with_segments(placeholders + corrected)
