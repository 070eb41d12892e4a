"""Capability descriptors for models and per-profile provider settings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class ModelInfo:
    """What a backend model declares about itself.

    ``supports_native_tools`` is tri-state: only an explicit ``True`` enables
    native tool calling.
    """

    model_id: str = ""
    supports_native_tools: Optional[bool] = None
    default_tool_protocol: Optional[str] = None
    supports_images: bool = True
    supports_prompt_cache: bool = False
    max_tokens: Optional[int] = None
    excluded_tools: Tuple[str, ...] = ()
    included_tools: Tuple[str, ...] = ()


@dataclass
class ProviderSettings:
    """Per-profile settings chosen by the user."""

    api_provider: Optional[str] = None
    tool_protocol: Optional[str] = None
    model_id: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)


def parse_model_id(model_id: str) -> Tuple[Optional[str], str]:
    """
    Split an optional provider prefix from a model id.

    - "gpt-4" -> (None, "gpt-4")
    - "openai/gpt-4" -> ("openai", "gpt-4")
    - "openrouter/google/gemini-2.5-pro" -> ("openrouter", "google/gemini-2.5-pro")
    """
    if "/" not in model_id:
        return None, model_id
    provider, rest = model_id.split("/", 1)
    return provider, rest


# Tool-set adjustments for router-hosted model families.
ROUTER_TOOL_PREFERENCES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "openai": {
        "exclude": ("apply_diff", "write_to_file"),
        "include": ("apply_patch",),
    },
    "gemini": {
        "exclude": ("apply_diff",),
        "include": ("write_file", "edit_file"),
    },
}


def _merge_names(existing: Tuple[str, ...], extra: Tuple[str, ...]) -> Tuple[str, ...]:
    out = list(existing)
    for name in extra:
        if name not in out:
            out.append(name)
    return tuple(out)


def apply_router_tool_preferences(info: ModelInfo, model_id: Optional[str] = None) -> ModelInfo:
    """Adjust included/excluded tools for a routed model by family."""
    mid = (model_id or info.model_id or "").lower()
    result = info
    for family, prefs in ROUTER_TOOL_PREFERENCES.items():
        if family in mid:
            result = replace(
                result,
                excluded_tools=_merge_names(result.excluded_tools, prefs["exclude"]),
                included_tools=_merge_names(result.included_tools, prefs["include"]),
            )
    return result
