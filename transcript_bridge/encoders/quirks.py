"""Per-backend defaults that differ between otherwise similar wire formats."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional

from .common import BackendKind, EncodeOptions, IdNormalizer, normalize_mistral_tool_call_id


@dataclass(frozen=True)
class BackendQuirks:
    images: str  # "data_uri", "bytes"
    cache_hints: bool
    merge_tool_result_text: bool
    id_normalizer: Optional[IdNormalizer] = None
    reasoning: str = "none"  # "details", "thinking", "reasoning_content", "none"
    native_needs_tool_config: bool = False


BACKEND_QUIRKS: Dict[BackendKind, BackendQuirks] = {
    BackendKind.OPENAI_CHAT: BackendQuirks(
        images="data_uri",
        cache_hints=False,
        merge_tool_result_text=False,
        reasoning="details",
    ),
    BackendKind.ANTHROPIC: BackendQuirks(
        images="data_uri",
        cache_hints=True,
        merge_tool_result_text=False,
        reasoning="thinking",
    ),
    BackendKind.BEDROCK_CONVERSE: BackendQuirks(
        images="bytes",
        cache_hints=False,
        merge_tool_result_text=False,
        reasoning="thinking",
        native_needs_tool_config=True,
    ),
    BackendKind.MISTRAL: BackendQuirks(
        images="data_uri",
        cache_hints=False,
        merge_tool_result_text=False,
        id_normalizer=normalize_mistral_tool_call_id,
    ),
    BackendKind.R1: BackendQuirks(
        images="data_uri",
        cache_hints=False,
        merge_tool_result_text=False,
        reasoning="reasoning_content",
    ),
}


def quirks_for(kind: BackendKind) -> BackendQuirks:
    return BACKEND_QUIRKS[BackendKind.parse(kind)]


def resolve_options(kind: BackendKind, options: Optional[EncodeOptions] = None) -> EncodeOptions:
    """Fill unset option fields from the backend's quirk entry."""
    quirks = quirks_for(kind)
    opts = options or EncodeOptions()
    return replace(
        opts,
        normalize_tool_call_id=opts.normalize_tool_call_id or quirks.id_normalizer,
        merge_tool_result_text=(
            quirks.merge_tool_result_text if opts.merge_tool_result_text is None else opts.merge_tool_result_text
        ),
        cache_hints=quirks.cache_hints if opts.cache_hints is None else opts.cache_hints,
    )
