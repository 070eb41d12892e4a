"""
Backend transcript encoders.

``encode_messages`` is the single dispatch point from a :class:`BackendKind`
to its encoder; ``encode_request`` additionally serializes tools for the
chosen protocol and assembles the system prompt.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..tool_protocol import ToolProtocol
from ..tools.serialize import SerializedTool, format_anthropic, format_bedrock, format_native, format_xml
from ..transcript import Turn
from . import anthropic_messages, bedrock_converse, mistral, openai_chat, r1
from .common import (
    BackendKind,
    EncodeOptions,
    fixed_length_id_normalizer,
    identity_id,
    normalize_mistral_tool_call_id,
    sanitize_reasoning_detail_id,
)
from .quirks import BACKEND_QUIRKS, quirks_for, resolve_options
from .text_protocol import parse_text_tool_calls, to_text_emulated


Encoder = Callable[[Sequence[Turn], Optional[EncodeOptions]], List[Dict[str, Any]]]

ENCODERS: Dict[BackendKind, Encoder] = {
    BackendKind.OPENAI_CHAT: openai_chat.encode,
    BackendKind.ANTHROPIC: anthropic_messages.encode,
    BackendKind.BEDROCK_CONVERSE: bedrock_converse.encode,
    BackendKind.MISTRAL: mistral.encode,
    BackendKind.R1: r1.encode,
}

# backends that take the system prompt outside the message list
_SEPARATE_SYSTEM = {
    BackendKind.ANTHROPIC: anthropic_messages.encode_system,
    BackendKind.BEDROCK_CONVERSE: bedrock_converse.encode_system,
}


@dataclass
class EncodedRequest:
    messages: List[Dict[str, Any]]
    protocol: ToolProtocol
    system: Optional[List[Dict[str, Any]]] = None
    tools: List[Dict[str, Any]] = field(default_factory=list)
    tool_choice: Any = None
    tool_config: Optional[Dict[str, Any]] = None


def encode_messages(
    kind: Any,
    transcript: Sequence[Turn],
    options: Optional[EncodeOptions] = None,
) -> List[Dict[str, Any]]:
    return ENCODERS[BackendKind.parse(kind)](transcript, options)


def _wire_tools(kind: BackendKind, tools: Sequence[SerializedTool]) -> List[Dict[str, Any]]:
    if kind is BackendKind.ANTHROPIC:
        return [format_anthropic(t) for t in tools]
    if kind is BackendKind.BEDROCK_CONVERSE:
        return [format_bedrock(t) for t in tools]
    if kind is BackendKind.MISTRAL:
        return [format_native(t, strict=False) for t in tools]
    return [format_native(t) for t in tools]


def encode_request(
    kind: Any,
    transcript: Sequence[Turn],
    tools: Sequence[SerializedTool] = (),
    protocol: Optional[Any] = None,
    options: Optional[EncodeOptions] = None,
    tool_choice: Any = None,
    parallel_tool_calls: bool = False,
) -> EncodedRequest:
    """Encode one model request: messages, system prompt and tool payload."""
    backend = BackendKind.parse(kind)
    opts = options or EncodeOptions()
    chosen = ToolProtocol.parse(protocol)
    if chosen is not None:
        opts = replace(opts, protocol=chosen)
    if opts.native and not tools and quirks_for(backend).native_needs_tool_config:
        opts = replace(opts, protocol=ToolProtocol.TEXT_EMULATED)

    system_text = opts.system_prompt or ""
    if tools and not opts.native:
        catalog = format_xml(tools)
        system_text = f"{system_text}\n\n{catalog}" if system_text else catalog
    opts = resolve_options(backend, replace(opts, system_prompt=system_text or None))

    request = EncodedRequest(messages=encode_messages(backend, transcript, opts), protocol=opts.protocol)
    if backend in _SEPARATE_SYSTEM:
        request.system = _SEPARATE_SYSTEM[backend](opts)

    if not tools or not opts.native:
        return request

    if backend is BackendKind.ANTHROPIC:
        choice = anthropic_messages.to_anthropic_tool_choice(tool_choice, parallel_tool_calls)
        if choice is None:
            return request
        request.tools = _wire_tools(backend, tools)
        request.tool_choice = choice
    elif backend is BackendKind.BEDROCK_CONVERSE:
        request.tools = _wire_tools(backend, tools)
        request.tool_config = {"tools": request.tools}
    else:
        request.tools = _wire_tools(backend, tools)
        request.tool_choice = tool_choice
    return request


__all__ = [
    "BACKEND_QUIRKS",
    "BackendKind",
    "ENCODERS",
    "EncodeOptions",
    "EncodedRequest",
    "encode_messages",
    "encode_request",
    "fixed_length_id_normalizer",
    "identity_id",
    "normalize_mistral_tool_call_id",
    "parse_text_tool_calls",
    "quirks_for",
    "resolve_options",
    "sanitize_reasoning_detail_id",
    "to_text_emulated",
]
