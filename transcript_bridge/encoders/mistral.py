"""Encoder for the Mistral chat API.

Mistral enforces user -> assistant -> tool -> assistant ordering, so any
plain user content that shares a turn with tool outcomes is dropped rather
than emitted after the tool messages.  Tool call ids are limited to nine
alphanumeric characters; keys use camelCase.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..transcript import Image, Text, ToolInvocation, ToolOutcome, Turn, UnknownSegment
from .common import UNKNOWN_BLOCK_PLACEHOLDER, BackendKind, EncodeOptions, tool_arguments
from .quirks import resolve_options
from .text_protocol import to_text_emulated


def _outcome_text(outcome: ToolOutcome) -> str:
    if isinstance(outcome.content, str):
        return outcome.content
    return "\n".join(p.text for p in outcome.content if isinstance(p, Text))


def _user_messages(turn: Turn, opts: EncodeOptions) -> List[Dict[str, Any]]:
    outcomes = turn.of_type(ToolOutcome)
    if outcomes:
        return [
            {"role": "tool", "toolCallId": opts.tool_call_id(o.tool_invocation_id), "content": _outcome_text(o)}
            for o in outcomes
        ]

    single = turn.single_text()
    if single is not None:
        return [{"role": "user", "content": single}]

    parts: List[Dict[str, Any]] = []
    for segment in turn.segments:
        if isinstance(segment, Text):
            parts.append({"type": "text", "text": segment.text or ""})
        elif isinstance(segment, Image):
            parts.append({"type": "image_url", "imageUrl": {"url": segment.data_uri()}})
        elif isinstance(segment, UnknownSegment):
            parts.append({"type": "text", "text": UNKNOWN_BLOCK_PLACEHOLDER})
    return [{"role": "user", "content": parts}] if parts else []


def _assistant_message(turn: Turn, opts: EncodeOptions) -> Dict[str, Any]:
    texts = [s.text or "" for s in turn.segments if isinstance(s, Text)]
    message: Dict[str, Any] = {"role": "assistant", "content": "\n".join(texts) if texts else None}
    calls = turn.of_type(ToolInvocation)
    if calls:
        message["toolCalls"] = [
            {
                "id": opts.tool_call_id(c.id),
                "type": "function",
                "function": {"name": c.name, "arguments": tool_arguments(c.input, raw_strings=True)},
            }
            for c in calls
        ]
    elif message["content"] is None:
        message["content"] = ""
    return message


def encode(transcript: Sequence[Turn], options: Optional[EncodeOptions] = None) -> List[Dict[str, Any]]:
    opts = resolve_options(BackendKind.MISTRAL, options)
    if not opts.native:
        transcript = to_text_emulated(transcript)

    messages: List[Dict[str, Any]] = []
    if opts.system_prompt:
        messages.append({"role": "system", "content": opts.system_prompt})
    for turn in transcript:
        if turn.role == "assistant":
            messages.append(_assistant_message(turn, opts))
        else:
            messages.extend(_user_messages(turn, opts))
    return messages
