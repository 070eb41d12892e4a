"""Encoder for the Anthropic Messages API.

Messages keep only the fields and block types the API accepts; turns left
without content are dropped.  With cache hints enabled the system prompt and
the last text block of the two most recent user messages carry
``cache_control`` breakpoints.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..transcript import (
    Image,
    Reasoning,
    ReasoningDetail,
    Segment,
    Text,
    ToolInvocation,
    ToolOutcome,
    Turn,
    UnknownSegment,
    find_last_index,
    outcome_text,
)
from .common import (
    UNKNOWN_BLOCK_PLACEHOLDER,
    BackendKind,
    EncodeOptions,
    mark_recent_user_messages,
    text_part,
    tool_input,
)
from .quirks import resolve_options
from .text_protocol import to_text_emulated


logger = logging.getLogger(__name__)

VALID_BLOCK_TYPES = frozenset(
    {"text", "image", "tool_use", "tool_result", "thinking", "redacted_thinking", "document"}
)


def _image_block(image: Image) -> Dict[str, Any]:
    return {"type": "image", "source": {"type": "base64", "media_type": image.media_type, "data": image.data}}


def _tool_result_block(outcome: ToolOutcome, opts: EncodeOptions) -> Dict[str, Any]:
    content: Union[str, List[Dict[str, Any]]]
    if isinstance(outcome.content, str):
        content = outcome.content
    else:
        content = [_image_block(p) if isinstance(p, Image) else text_part(p.text) for p in outcome.content]
    block: Dict[str, Any] = {
        "type": "tool_result",
        "tool_use_id": opts.tool_call_id(outcome.tool_invocation_id),
        "content": content,
    }
    if outcome.is_error:
        block["is_error"] = True
    return block


def _block(segment: Segment, opts: EncodeOptions) -> Optional[Dict[str, Any]]:
    if isinstance(segment, Text):
        return text_part(segment.text, segment.cache_hint)
    if isinstance(segment, Image):
        return _image_block(segment)
    if isinstance(segment, ToolInvocation):
        return {
            "type": "tool_use",
            "id": opts.tool_call_id(segment.id),
            "name": segment.name,
            "input": tool_input(segment.input),
        }
    if isinstance(segment, ToolOutcome):
        return _tool_result_block(segment, opts)
    if isinstance(segment, Reasoning):
        # unsigned reasoning from other providers cannot be replayed
        if not segment.signature:
            return None
        return {"type": "thinking", "thinking": segment.text, "signature": segment.signature}
    if isinstance(segment, ReasoningDetail):
        if segment.kind == "encrypted" and segment.data:
            return {"type": "redacted_thinking", "data": segment.data}
        return None
    if isinstance(segment, UnknownSegment) and segment.type in VALID_BLOCK_TYPES:
        return dict(segment.payload)
    logger.debug("replacing unsupported segment %r", segment)
    return text_part(UNKNOWN_BLOCK_PLACEHOLDER)


def merge_text_into_tool_result(turn: Turn) -> Turn:
    """Fold the text segments of a tool-result turn into its last tool result.

    Turns with an image anywhere, including inside a tool result, or lacking
    either tool results or text, are returned unchanged.  Other segments keep
    their position.
    """
    if turn.role != "user":
        return turn
    outcomes = turn.of_type(ToolOutcome)
    texts = turn.of_type(Text)
    if not outcomes or not texts or turn.of_type(Image) or any(o.has_images() for o in outcomes):
        return turn

    extra = "\n\n".join(t.text for t in texts)
    last = outcomes[-1]
    existing = outcome_text(last, "")
    merged = ToolOutcome(
        tool_invocation_id=last.tool_invocation_id,
        content=f"{existing}\n\n{extra}" if existing else extra,
        is_error=last.is_error,
    )
    last_index = find_last_index(turn.segments, lambda s: isinstance(s, ToolOutcome))
    segments: List[Segment] = []
    for i, segment in enumerate(turn.segments):
        if isinstance(segment, Text):
            continue
        segments.append(merged if i == last_index else segment)
    return turn.with_segments(segments)


def encode_system(opts: EncodeOptions) -> List[Dict[str, Any]]:
    if not opts.system_prompt:
        return []
    return [text_part(opts.system_prompt, cache_hint=bool(opts.cache_hints))]


def encode(transcript: Sequence[Turn], options: Optional[EncodeOptions] = None) -> List[Dict[str, Any]]:
    opts = resolve_options(BackendKind.ANTHROPIC, options)
    turns = list(transcript)
    if not opts.native:
        turns = to_text_emulated(turns)
    if opts.merge_tool_result_text:
        turns = [merge_text_into_tool_result(t) for t in turns]

    messages: List[Dict[str, Any]] = []
    for turn in turns:
        blocks = [b for b in (_block(s, opts) for s in turn.segments) if b is not None]
        if not blocks:
            continue
        messages.append({"role": "assistant" if turn.role == "assistant" else "user", "content": blocks})

    if opts.cache_hints:
        messages = mark_recent_user_messages(messages)
    return messages


# ---------------------------------------------------------------------------
# Tool definitions and tool_choice
# ---------------------------------------------------------------------------

def to_anthropic_tools(tools: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert OpenAI-style function tools to Anthropic tool definitions."""
    out: List[Dict[str, Any]] = []
    for tool in tools:
        fn = tool.get("function") or tool
        out.append(
            {
                "name": fn.get("name"),
                "description": fn.get("description") or "",
                "input_schema": fn.get("parameters") or {"type": "object", "properties": {}},
            }
        )
    return out


def to_anthropic_tool_choice(tool_choice: Any, parallel_tool_calls: bool = False) -> Optional[Dict[str, Any]]:
    """Map an OpenAI ``tool_choice`` value; ``None`` result means omit tools."""
    disable_parallel = not parallel_tool_calls
    if not tool_choice:
        return {"type": "auto", "disable_parallel_tool_use": disable_parallel}
    if isinstance(tool_choice, str):
        if tool_choice == "none":
            return None
        if tool_choice == "required":
            return {"type": "any", "disable_parallel_tool_use": disable_parallel}
        return {"type": "auto", "disable_parallel_tool_use": disable_parallel}
    if isinstance(tool_choice, dict) and "function" in tool_choice:
        return {
            "type": "tool",
            "name": tool_choice["function"].get("name"),
            "disable_parallel_tool_use": disable_parallel,
        }
    return {"type": "auto", "disable_parallel_tool_use": disable_parallel}
