"""Canonical, provider-agnostic transcript model.

A transcript is a plain list of :class:`Turn` values.  Each turn carries an
ordered tuple of segments (text, images, tool invocations and outcomes,
reasoning artifacts).  Everything here is an immutable value; helpers return
new objects instead of mutating their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Type, TypeVar, Union


Role = Literal["user", "assistant"]
ReasoningKind = Literal["summary", "encrypted", "text"]


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Text:
    text: str = ""
    cache_hint: bool = False


@dataclass(frozen=True)
class Image:
    media_type: str
    data: str

    def data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


@dataclass(frozen=True)
class ToolInvocation:
    id: Optional[str]
    name: str
    input: Any = None


OutcomePart = Union[Text, Image]


@dataclass(frozen=True)
class ToolOutcome:
    tool_invocation_id: str
    content: Union[str, Tuple[OutcomePart, ...]] = ""
    is_error: bool = False

    def parts(self) -> Tuple[OutcomePart, ...]:
        if isinstance(self.content, str):
            return (Text(self.content),)
        return tuple(self.content)

    def has_images(self) -> bool:
        return any(isinstance(p, Image) for p in self.parts())


@dataclass(frozen=True)
class Reasoning:
    text: str = ""
    signature: Optional[str] = None


@dataclass(frozen=True)
class ReasoningDetail:
    kind: ReasoningKind
    format: Optional[str] = None
    index: int = 0
    data: Optional[str] = None
    summary: Optional[str] = None
    text: Optional[str] = None
    id: Optional[str] = None
    signature: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": f"reasoning.{self.kind}"}
        for key in ("summary", "text", "data", "signature", "id", "format"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        out["index"] = self.index
        return out


@dataclass(frozen=True)
class UnknownSegment:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)


Segment = Union[Text, Image, ToolInvocation, ToolOutcome, Reasoning, ReasoningDetail, UnknownSegment]

S = TypeVar("S")


# ---------------------------------------------------------------------------
# Turns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Turn:
    role: Role
    segments: Tuple[Segment, ...] = ()
    ts: Optional[float] = None
    seq: Optional[int] = None

    @staticmethod
    def user(*segments: Union[Segment, str], ts: Optional[float] = None, seq: Optional[int] = None) -> "Turn":
        return Turn("user", _coerce_segments(segments), ts=ts, seq=seq)

    @staticmethod
    def assistant(*segments: Union[Segment, str], ts: Optional[float] = None, seq: Optional[int] = None) -> "Turn":
        return Turn("assistant", _coerce_segments(segments), ts=ts, seq=seq)

    def with_segments(self, segments: Iterable[Segment]) -> "Turn":
        return replace(self, segments=tuple(segments))

    def of_type(self, kind: Type[S]) -> List[S]:
        return [s for s in self.segments if isinstance(s, kind)]

    @property
    def tool_invocations(self) -> List[ToolInvocation]:
        return self.of_type(ToolInvocation)

    @property
    def tool_outcomes(self) -> List[ToolOutcome]:
        return self.of_type(ToolOutcome)

    def has_tool_invocations(self) -> bool:
        return any(isinstance(s, ToolInvocation) for s in self.segments)

    def text(self, sep: str = "\n") -> str:
        return sep.join(s.text for s in self.segments if isinstance(s, Text))

    def single_text(self) -> Optional[str]:
        """Return the text when the turn is exactly one text segment."""
        if len(self.segments) == 1 and isinstance(self.segments[0], Text):
            return self.segments[0].text
        return None


Transcript = List[Turn]


def _coerce_segments(items: Iterable[Union[Segment, str]]) -> Tuple[Segment, ...]:
    return tuple(Text(i) if isinstance(i, str) else i for i in items)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def find_last_index(items: Sequence[S], predicate: Callable[[S], bool]) -> int:
    for i in range(len(items) - 1, -1, -1):
        if predicate(items[i]):
            return i
    return -1


def find_last(items: Sequence[S], predicate: Callable[[S], bool]) -> Optional[S]:
    idx = find_last_index(items, predicate)
    return items[idx] if idx >= 0 else None


def count_segments(transcript: Iterable[Turn], kind: Type[Any]) -> int:
    return sum(1 for turn in transcript for s in turn.segments if isinstance(s, kind))


def segments_of_type(transcript: Iterable[Turn], kind: Type[S]) -> List[S]:
    return [s for turn in transcript for s in turn.segments if isinstance(s, kind)]


def outcome_text(outcome: ToolOutcome, image_placeholder: str, sep: str = "\n") -> str:
    """Flatten tool outcome content to one string."""
    if isinstance(outcome.content, str):
        return outcome.content
    parts: List[str] = []
    for part in outcome.content:
        if isinstance(part, Image):
            parts.append(image_placeholder)
        else:
            parts.append(part.text or "")
    return sep.join(parts)


# ---------------------------------------------------------------------------
# Dict conversion (Anthropic-style message shape)
# ---------------------------------------------------------------------------

def _parse_image(block: Dict[str, Any]) -> Image:
    source = block.get("source") or {}
    return Image(media_type=source.get("media_type") or "image/png", data=source.get("data") or "")


def _parse_outcome_content(content: Any) -> Union[str, Tuple[OutcomePart, ...]]:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts: List[OutcomePart] = []
    for block in content:
        if block.get("type") == "image":
            parts.append(_parse_image(block))
        else:
            parts.append(Text(block.get("text") or ""))
    return tuple(parts)


def _parse_reasoning_detail(raw: Dict[str, Any], position: int) -> ReasoningDetail:
    kind = str(raw.get("type") or "reasoning.text")
    if kind.startswith("reasoning."):
        kind = kind[len("reasoning."):]
    return ReasoningDetail(
        kind=kind,  # type: ignore[arg-type]
        format=raw.get("format"),
        index=raw.get("index", position),
        data=raw.get("data"),
        summary=raw.get("summary"),
        text=raw.get("text"),
        id=raw.get("id"),
        signature=raw.get("signature"),
    )


def segment_from_dict(block: Dict[str, Any]) -> Segment:
    btype = block.get("type")
    if btype == "text":
        return Text(block.get("text") or "", cache_hint=bool(block.get("cache_control")))
    if btype == "image":
        return _parse_image(block)
    if btype == "tool_use":
        return ToolInvocation(id=block.get("id"), name=block.get("name") or "", input=block.get("input"))
    if btype == "tool_result":
        return ToolOutcome(
            tool_invocation_id=block.get("tool_use_id") or "",
            content=_parse_outcome_content(block.get("content")),
            is_error=bool(block.get("is_error", False)),
        )
    if btype == "thinking":
        return Reasoning(text=block.get("thinking") or "", signature=block.get("signature"))
    if btype == "reasoning":
        return Reasoning(text=block.get("text") or "")
    return UnknownSegment(type=str(btype), payload=dict(block))


def turn_from_dict(message: Dict[str, Any]) -> Turn:
    content = message.get("content")
    segments: List[Segment] = []
    if message.get("reasoning_content"):
        segments.append(Reasoning(text=message["reasoning_content"]))
    for i, raw in enumerate(message.get("reasoning_details") or []):
        segments.append(_parse_reasoning_detail(raw, i))
    if isinstance(content, str):
        segments.append(Text(content))
    elif content:
        segments.extend(segment_from_dict(b) for b in content)
    return Turn(
        role=message.get("role", "user"),
        segments=tuple(segments),
        ts=message.get("ts"),
        seq=message.get("seq"),
    )


def transcript_from_dicts(messages: Iterable[Dict[str, Any]]) -> Transcript:
    return [turn_from_dict(m) for m in messages]


def segment_to_dict(segment: Segment) -> Dict[str, Any]:
    if isinstance(segment, Text):
        return {"type": "text", "text": segment.text}
    if isinstance(segment, Image):
        return {"type": "image", "source": {"type": "base64", "media_type": segment.media_type, "data": segment.data}}
    if isinstance(segment, ToolInvocation):
        return {"type": "tool_use", "id": segment.id, "name": segment.name, "input": segment.input}
    if isinstance(segment, ToolOutcome):
        content: Any = segment.content
        if not isinstance(content, str):
            content = [segment_to_dict(p) for p in content]
        out = {"type": "tool_result", "tool_use_id": segment.tool_invocation_id, "content": content}
        if segment.is_error:
            out["is_error"] = True
        return out
    if isinstance(segment, Reasoning):
        out = {"type": "thinking", "thinking": segment.text}
        if segment.signature is not None:
            out["signature"] = segment.signature
        return out
    if isinstance(segment, UnknownSegment):
        return dict(segment.payload) or {"type": segment.type}
    raise TypeError(f"Segment {type(segment).__name__} has no block form")


def turn_to_dict(turn: Turn) -> Dict[str, Any]:
    out: Dict[str, Any] = {"role": turn.role}
    details = turn.of_type(ReasoningDetail)
    out["content"] = [segment_to_dict(s) for s in turn.segments if not isinstance(s, ReasoningDetail)]
    if details:
        out["reasoning_details"] = [d.to_wire() for d in details]
    if turn.ts is not None:
        out["ts"] = turn.ts
    if turn.seq is not None:
        out["seq"] = turn.seq
    return out


def transcript_to_dicts(transcript: Iterable[Turn]) -> List[Dict[str, Any]]:
    return [turn_to_dict(t) for t in transcript]
