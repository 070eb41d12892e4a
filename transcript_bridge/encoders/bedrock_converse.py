"""Encoder for the AWS Bedrock Converse API.

Bedrock rejects ``toolUse``/``toolResult`` blocks unless the request also
carries a tool configuration, so outside native mode tool segments are sent
in their text-emulated form.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..error_handling import UnsupportedImageFormatError
from ..transcript import (
    Image,
    Reasoning,
    ReasoningDetail,
    Segment,
    Text,
    ToolInvocation,
    ToolOutcome,
    Turn,
)
from .common import UNKNOWN_BLOCK_PLACEHOLDER, BackendKind, EncodeOptions, tool_input
from .quirks import resolve_options
from .text_protocol import TEXT_RESULT_IMAGE_PLACEHOLDER, format_tool_invocation, format_tool_outcome


logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_FORMATS = ("png", "jpeg", "gif", "webp")


def image_block(image: Image) -> Dict[str, Any]:
    fmt = image.media_type.split("/")[-1].lower()
    if fmt not in SUPPORTED_IMAGE_FORMATS:
        raise UnsupportedImageFormatError(fmt)
    try:
        raw = base64.b64decode(image.data)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"image payload is not valid base64: {exc}") from exc
    return {"image": {"format": fmt, "source": {"bytes": raw}}}


def _tool_result_block(outcome: ToolOutcome, opts: EncodeOptions) -> Dict[str, Any]:
    content = [
        {"text": TEXT_RESULT_IMAGE_PLACEHOLDER if isinstance(p, Image) else (p.text or "")}
        for p in outcome.parts()
    ]
    return {
        "toolResult": {
            "toolUseId": opts.tool_call_id(outcome.tool_invocation_id),
            "content": content,
            "status": "error" if outcome.is_error else "success",
        }
    }


def _blocks(segment: Segment, opts: EncodeOptions) -> List[Dict[str, Any]]:
    if isinstance(segment, Text):
        return [{"text": segment.text or ""}]
    if isinstance(segment, Image):
        return [image_block(segment)]
    if isinstance(segment, ToolInvocation):
        if not opts.native:
            return [{"text": format_tool_invocation(segment)}]
        return [
            {
                "toolUse": {
                    "toolUseId": opts.tool_call_id(segment.id),
                    "name": segment.name or "",
                    "input": tool_input(segment.input),
                }
            }
        ]
    if isinstance(segment, ToolOutcome):
        images = [image_block(p) for p in segment.parts() if isinstance(p, Image)]
        if not opts.native:
            return [{"text": format_tool_outcome(segment, opts.tool_call_id(segment.tool_invocation_id))}] + images
        return [_tool_result_block(segment, opts)] + images
    if isinstance(segment, Reasoning):
        if not segment.signature:
            return []
        return [{"reasoningContent": {"reasoningText": {"text": segment.text, "signature": segment.signature}}}]
    if isinstance(segment, ReasoningDetail):
        return []
    logger.debug("unknown segment %r replaced with placeholder", segment)
    return [{"text": UNKNOWN_BLOCK_PLACEHOLDER}]


def encode_system(opts: EncodeOptions) -> List[Dict[str, Any]]:
    return [{"text": opts.system_prompt}] if opts.system_prompt else []


def encode(transcript: Sequence[Turn], options: Optional[EncodeOptions] = None) -> List[Dict[str, Any]]:
    opts = resolve_options(BackendKind.BEDROCK_CONVERSE, options)
    messages: List[Dict[str, Any]] = []
    for turn in transcript:
        role = "assistant" if turn.role == "assistant" else "user"
        content: List[Dict[str, Any]] = []
        for segment in turn.segments:
            content.extend(_blocks(segment, opts))
        if not content:
            continue
        messages.append({"role": role, "content": content})
    return messages
