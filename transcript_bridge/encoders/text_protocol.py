"""
Text-emulated ("XML") tool calling.

Tool invocations and outcomes are rendered into plain text so backends that
do not receive structured tools still see the full call/result history:

<tool_use>
<tool_name>read_file</tool_name>
<tool_input>{"path": "a.py"}</tool_input>
</tool_use>

<tool_result>
<tool_use_id>call_1</tool_use_id>
<output>...</output>
</tool_result>

The same tag format is parsed back out of assistant text by
``parse_text_tool_calls``; parsed invocations never carry an id.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Sequence

from ..transcript import Image, Segment, Text, ToolInvocation, ToolOutcome, Turn, outcome_text


logger = logging.getLogger(__name__)

TEXT_RESULT_IMAGE_PLACEHOLDER = "(see following message for image)"

_TOOL_USE_PATTERN = re.compile(
    r"<tool_use>\s*<tool_name>(.*?)</tool_name>\s*<tool_input>(.*?)</tool_input>\s*</tool_use>",
    re.DOTALL,
)


def format_tool_invocation(invocation: ToolInvocation) -> str:
    payload = json.dumps(invocation.input if invocation.input is not None else {})
    return (
        "<tool_use>\n"
        f"<tool_name>{invocation.name}</tool_name>\n"
        f"<tool_input>{payload}</tool_input>\n"
        "</tool_use>"
    )


def format_tool_outcome(
    outcome: ToolOutcome,
    tool_use_id: Optional[str] = None,
    image_placeholder: str = TEXT_RESULT_IMAGE_PLACEHOLDER,
) -> str:
    use_id = outcome.tool_invocation_id if tool_use_id is None else tool_use_id
    return (
        "<tool_result>\n"
        f"<tool_use_id>{use_id}</tool_use_id>\n"
        f"<output>{outcome_text(outcome, image_placeholder)}</output>\n"
        "</tool_result>"
    )


def text_emulate_segments(segments: Sequence[Segment]) -> List[Segment]:
    """Replace tool segments with their text form.

    Images found inside outcomes follow the outcome text as plain image
    segments of the same turn.
    """
    out: List[Segment] = []
    for segment in segments:
        if isinstance(segment, ToolInvocation):
            out.append(Text(format_tool_invocation(segment)))
        elif isinstance(segment, ToolOutcome):
            out.append(Text(format_tool_outcome(segment)))
            out.extend(p for p in segment.parts() if isinstance(p, Image))
        else:
            out.append(segment)
    return out


def to_text_emulated(transcript: Sequence[Turn]) -> List[Turn]:
    """Return a transcript with no structured tool segments left."""
    out: List[Turn] = []
    for turn in transcript:
        if any(isinstance(s, (ToolInvocation, ToolOutcome)) for s in turn.segments):
            out.append(turn.with_segments(text_emulate_segments(turn.segments)))
        else:
            out.append(turn)
    return out


def _convert_input(raw: str) -> Any:
    raw = raw.strip()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        logger.debug("tool_input is not JSON, keeping raw text")
        return raw


def parse_text_tool_calls(text: str) -> List[ToolInvocation]:
    """Extract text-emulated tool invocations from assistant output."""
    calls: List[ToolInvocation] = []
    for name, raw_input in _TOOL_USE_PATTERN.findall(text or ""):
        calls.append(ToolInvocation(id=None, name=name.strip(), input=_convert_input(raw_input)))
    return calls
