"""Encoder for DeepSeek R1-style reasoning models.

OpenAI chat lowering plus two rules: consecutive messages of the same role
are merged (these models reject back-to-back user or assistant messages),
and assistant reasoning text travels back as ``reasoning_content``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..transcript import Reasoning, Turn
from .common import BackendKind, EncodeOptions
from .openai_chat import encode_assistant_turn, encode_user_turn
from .quirks import resolve_options
from .text_protocol import to_text_emulated


def _as_parts(content: Any) -> List[Dict[str, Any]]:
    if content is None:
        return []
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return list(content)


def _merge_content(first: Any, second: Any) -> Any:
    if isinstance(first, str) and isinstance(second, str):
        return f"{first}\n{second}"
    return _as_parts(first) + _as_parts(second)


def _mergeable(prev: Dict[str, Any], message: Dict[str, Any]) -> bool:
    if prev["role"] != message["role"] or message["role"] not in ("user", "assistant"):
        return False
    return not prev.get("tool_calls") and not message.get("tool_calls")


def merge_consecutive(messages: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge adjacent same-role messages; tool-call messages stay separate."""
    out: List[Dict[str, Any]] = []
    for message in messages:
        if out and _mergeable(out[-1], message):
            prev = out[-1]
            merged = dict(prev)
            merged["content"] = _merge_content(prev.get("content"), message.get("content"))
            if message.get("reasoning_content"):
                previous = prev.get("reasoning_content")
                merged["reasoning_content"] = (
                    f"{previous}\n{message['reasoning_content']}" if previous else message["reasoning_content"]
                )
            if message.get("reasoning_details"):
                merged["reasoning_details"] = list(prev.get("reasoning_details") or []) + list(
                    message["reasoning_details"]
                )
            out[-1] = merged
        else:
            out.append(dict(message))
    return out


def _assistant_message(turn: Turn, opts: EncodeOptions) -> Dict[str, Any]:
    message = encode_assistant_turn(turn, opts)
    reasoning = "\n".join(r.text for r in turn.of_type(Reasoning) if r.text)
    if not reasoning:
        return message
    out: Dict[str, Any] = {"role": "assistant", "content": message["content"], "reasoning_content": reasoning}
    for key, value in message.items():
        out.setdefault(key, value)
    return out


def encode(transcript: Sequence[Turn], options: Optional[EncodeOptions] = None) -> List[Dict[str, Any]]:
    opts = resolve_options(BackendKind.R1, options)
    turns = list(transcript)
    if not opts.native:
        turns = to_text_emulated(turns)
    if opts.system_prompt:
        # R1 models take no system role
        turns.insert(0, Turn.user(opts.system_prompt))

    messages: List[Dict[str, Any]] = []
    for turn in turns:
        if turn.role == "assistant":
            messages.append(_assistant_message(turn, opts))
        else:
            messages.extend(encode_user_turn(turn, opts))
    return merge_consecutive(messages)
