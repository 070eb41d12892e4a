"""Encode canonical transcripts for OpenAI-compatible chat completion APIs."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from ..transcript import (
    Image,
    ReasoningDetail,
    Text,
    ToolInvocation,
    ToolOutcome,
    Turn,
    UnknownSegment,
    outcome_text,
)
from .common import (
    TOOL_RESULT_IMAGE_PLACEHOLDER,
    UNKNOWN_BLOCK_PLACEHOLDER,
    BackendKind,
    EncodeOptions,
    image_url_part,
    mark_recent_user_messages,
    reasoning_details_payload,
    text_part,
    tool_input,
)
from .quirks import resolve_options
from .text_protocol import to_text_emulated


def _user_part(segment: Any) -> Optional[Dict[str, Any]]:
    if isinstance(segment, Text):
        return text_part(segment.text, segment.cache_hint)
    if isinstance(segment, Image):
        return image_url_part(segment.data_uri())
    if isinstance(segment, UnknownSegment):
        return text_part(UNKNOWN_BLOCK_PLACEHOLDER)
    return None


def _collapse(parts: List[Dict[str, Any]]) -> Any:
    if len(parts) == 1 and parts[0]["type"] == "text" and "cache_control" not in parts[0]:
        return parts[0]["text"]
    return parts


def encode_user_turn(turn: Turn, opts: EncodeOptions) -> List[Dict[str, Any]]:
    """Tool messages first, then the remaining user content."""
    messages: List[Dict[str, Any]] = []
    outcome_images: List[Image] = []
    parts: List[Dict[str, Any]] = []

    for segment in turn.segments:
        if isinstance(segment, ToolOutcome):
            outcome_images.extend(p for p in segment.parts() if isinstance(p, Image))
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": opts.tool_call_id(segment.tool_invocation_id),
                    "content": outcome_text(segment, TOOL_RESULT_IMAGE_PLACEHOLDER),
                }
            )
            continue
        part = _user_part(segment)
        if part is not None:
            parts.append(part)

    merge = (
        opts.merge_tool_result_text
        and messages
        and parts
        and not outcome_images
        and all(p["type"] == "text" for p in parts)
    )
    if merge:
        extra = "\n".join(p["text"] for p in parts)
        messages[-1]["content"] = f"{messages[-1]['content']}\n\n{extra}"
        return messages

    parts.extend(image_url_part(img.data_uri()) for img in outcome_images)
    if parts:
        messages.append({"role": "user", "content": _collapse(parts)})
    return messages


def encode_assistant_turn(turn: Turn, opts: EncodeOptions) -> Dict[str, Any]:
    texts: List[str] = []
    for segment in turn.segments:
        if isinstance(segment, Text):
            texts.append(segment.text or "")
        elif isinstance(segment, UnknownSegment):
            texts.append(UNKNOWN_BLOCK_PLACEHOLDER)

    tool_calls = [
        {
            "id": opts.tool_call_id(inv.id),
            "type": "function",
            "function": {"name": inv.name, "arguments": json.dumps(tool_input(inv.input))},
        }
        for inv in turn.of_type(ToolInvocation)
    ]

    message: Dict[str, Any] = {"role": "assistant", "content": "\n".join(texts) if texts else None}
    if message["content"] is None and not tool_calls:
        message["content"] = ""

    details = turn.of_type(ReasoningDetail)
    if details:
        # must precede tool_calls
        message["reasoning_details"] = reasoning_details_payload(details, opts.reasoning_id_strip_formats)
    if tool_calls:
        message["tool_calls"] = tool_calls
    return message


def encode_turns(transcript: Sequence[Turn], opts: EncodeOptions) -> List[Dict[str, Any]]:
    messages: List[Dict[str, Any]] = []
    for turn in transcript:
        if turn.role == "assistant":
            messages.append(encode_assistant_turn(turn, opts))
        else:
            messages.extend(encode_user_turn(turn, opts))
    return messages


def encode(transcript: Sequence[Turn], options: Optional[EncodeOptions] = None) -> List[Dict[str, Any]]:
    opts = resolve_options(BackendKind.OPENAI_CHAT, options)
    if not opts.native:
        transcript = to_text_emulated(transcript)

    messages = encode_turns(transcript, opts)
    if opts.cache_hints:
        messages = mark_recent_user_messages(messages)
    if opts.system_prompt:
        system: Any = opts.system_prompt
        if opts.cache_hints:
            system = [text_part(opts.system_prompt, cache_hint=True)]
        messages.insert(0, {"role": "system", "content": system})
    return messages
