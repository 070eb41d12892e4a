"""Pieces shared by every backend encoder."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from ..tool_protocol import ToolProtocol
from ..transcript import ReasoningDetail


IdNormalizer = Callable[[str], str]

TOOL_RESULT_IMAGE_PLACEHOLDER = "(see following user message for image)"
UNKNOWN_BLOCK_PLACEHOLDER = "[Unknown Block Type]"
CACHE_CONTROL: Dict[str, str] = {"type": "ephemeral"}

REASONING_FORMATS_WITHOUT_PERSISTENCE: FrozenSet[str] = frozenset({"openai-responses-v1"})


class BackendKind(str, Enum):
    OPENAI_CHAT = "openai_chat"
    ANTHROPIC = "anthropic"
    BEDROCK_CONVERSE = "bedrock_converse"
    MISTRAL = "mistral"
    R1 = "r1"

    @classmethod
    def parse(cls, value: Any) -> "BackendKind":
        if isinstance(value, BackendKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown backend kind: {value!r}") from None


@dataclass
class EncodeOptions:
    """Knobs every encoder understands.

    ``None`` means "use the backend default" (see ``quirks.BACKEND_QUIRKS``).
    """

    protocol: ToolProtocol = ToolProtocol.NATIVE
    normalize_tool_call_id: Optional[IdNormalizer] = None
    merge_tool_result_text: Optional[bool] = None
    cache_hints: Optional[bool] = None
    system_prompt: Optional[str] = None
    reasoning_id_strip_formats: FrozenSet[str] = field(
        default_factory=lambda: REASONING_FORMATS_WITHOUT_PERSISTENCE
    )

    @property
    def native(self) -> bool:
        return self.protocol is ToolProtocol.NATIVE

    def tool_call_id(self, raw: Optional[str]) -> str:
        normalize = self.normalize_tool_call_id or identity_id
        return normalize(raw or "")


# ---------------------------------------------------------------------------
# Tool call id normalization
# ---------------------------------------------------------------------------

def identity_id(value: str) -> str:
    return value


_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def fixed_length_id_normalizer(length: int, fill: str = "0") -> IdNormalizer:
    """Build a normalizer producing exactly ``length`` alphanumeric characters."""
    if length <= 0 or len(fill) != 1:
        raise ValueError("length must be positive and fill a single character")

    def normalize(value: str) -> str:
        cleaned = _NON_ALNUM.sub("", value or "")
        return cleaned[:length].ljust(length, fill)

    return normalize


normalize_mistral_tool_call_id = fixed_length_id_normalizer(9)


# ---------------------------------------------------------------------------
# Reasoning details
# ---------------------------------------------------------------------------

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_reasoning_detail_id(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return _UNSAFE_ID_CHARS.sub("_", value)


def reasoning_details_payload(
    details: Iterable[ReasoningDetail],
    strip_formats: FrozenSet[str],
) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for detail in details:
        wire = detail.to_wire()
        if detail.format in strip_formats:
            # never persisted server side, echoing the id back fails
            wire.pop("id", None)
        elif "id" in wire:
            wire["id"] = sanitize_reasoning_detail_id(wire["id"])
        out.append(wire)
    return out


# ---------------------------------------------------------------------------
# Misc lowering helpers
# ---------------------------------------------------------------------------

def tool_arguments(value: Any, raw_strings: bool = False) -> str:
    if raw_strings and isinstance(value, str):
        return value
    return json.dumps(value if value is not None else {})


def tool_input(value: Any) -> Any:
    return {} if value is None else value


def image_url_part(data_uri: str) -> Dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": data_uri}}


# ---------------------------------------------------------------------------
# Prompt cache breakpoints
# ---------------------------------------------------------------------------

def _with_cache_marker(content: Any) -> Any:
    if isinstance(content, str):
        return [{"type": "text", "text": content, "cache_control": dict(CACHE_CONTROL)}]
    if not isinstance(content, list):
        return content
    parts = list(content)
    for i in range(len(parts) - 1, -1, -1):
        part = parts[i]
        if isinstance(part, dict) and part.get("type") == "text":
            parts[i] = {**part, "cache_control": dict(CACHE_CONTROL)}
            break
    return parts


def mark_recent_user_messages(messages: List[Dict[str, Any]], count: int = 2) -> List[Dict[str, Any]]:
    """Mark the last text part of the ``count`` most recent user messages."""
    out = list(messages)
    marked = 0
    for i in range(len(out) - 1, -1, -1):
        if marked >= count:
            break
        if out[i].get("role") != "user":
            continue
        out[i] = {**out[i], "content": _with_cache_marker(out[i].get("content"))}
        marked += 1
    return out


def text_part(text: str, cache_hint: bool = False) -> Dict[str, Any]:
    part: Dict[str, Any] = {"type": "text", "text": text or ""}
    if cache_hint:
        part["cache_control"] = dict(CACHE_CONTROL)
    return part
