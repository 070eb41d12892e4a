"""
YAML configuration for the transcript bridge.

    extends: base.yaml            # optional, str or list; deep-merged in order
    provider:
      api_provider: openrouter
      tool_protocol: native       # profile preference: native | xml
      model:
        id: openrouter/openai/gpt-4.1
        supports_native_tools: true
        default_tool_protocol: native
        supports_images: true
        supports_prompt_cache: false
        max_tokens: 8192
    tools:
      directories: [.tools, ~/.config/bridge/tools]
      cache_dir: /tmp/bridge-tools
    reasoning:
      strip_id_formats: [openai-responses-v1]
    backends:
      mistral:
        tool_call_id_length: 9
      r1:
        merge_tool_result_text: true
    telemetry:
      path: logs/bridge.jsonl

Env overrides: TRANSCRIPT_BRIDGE_TOOL_PROTOCOL, TRANSCRIPT_BRIDGE_TOOL_CACHE_DIR.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

from jsonschema import ValidationError, validate

from .encoders.common import REASONING_FORMATS_WITHOUT_PERSISTENCE, BackendKind, EncodeOptions, fixed_length_id_normalizer
from .monitoring.telemetry import TelemetryLogger
from .provider_capabilities import ModelInfo, ProviderSettings, apply_router_tool_preferences
from .error_handling import ConfigValidationError
from .tool_protocol import TaskProtocolLock, ToolProtocol, resolve_tool_protocol
from .tools.registry import ToolRegistry


logger = logging.getLogger(__name__)

TOOL_PROTOCOL_ENV = "TRANSCRIPT_BRIDGE_TOOL_PROTOCOL"
TOOL_CACHE_DIR_ENV = "TRANSCRIPT_BRIDGE_TOOL_CACHE_DIR"

_PROTOCOL = {"type": ["string", "null"], "enum": ["native", "xml", None]}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "extends": {"type": ["string", "array"]},
        "provider": {
            "type": "object",
            "properties": {
                "api_provider": {"type": ["string", "null"]},
                "tool_protocol": _PROTOCOL,
                "model": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "supports_native_tools": {"type": ["boolean", "null"]},
                        "default_tool_protocol": _PROTOCOL,
                        "supports_images": {"type": "boolean"},
                        "supports_prompt_cache": {"type": "boolean"},
                        "max_tokens": {"type": ["integer", "null"], "minimum": 1},
                        "apply_router_preferences": {"type": "boolean"},
                    },
                },
            },
        },
        "tools": {
            "type": "object",
            "properties": {
                "directories": {"type": "array", "items": {"type": "string"}},
                "cache_dir": {"type": ["string", "null"]},
            },
        },
        "reasoning": {
            "type": "object",
            "properties": {"strip_id_formats": {"type": "array", "items": {"type": "string"}}},
        },
        "backends": {
            "type": "object",
            "propertyNames": {"enum": [k.value for k in BackendKind]},
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "cache_hints": {"type": "boolean"},
                    "merge_tool_result_text": {"type": "boolean"},
                    "tool_call_id_length": {"type": "integer", "minimum": 1},
                },
                "additionalProperties": False,
            },
        },
        "telemetry": {
            "type": "object",
            "properties": {"path": {"type": ["string", "null"]}},
        },
    },
}


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    import yaml  # lazy import
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"{path}: top level must be a mapping")
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two dicts recursively. Lists/tuples are replaced, not merged.
    Scalars replace.
    """
    out: Dict[str, Any] = dict(base)
    for k, v in (override or {}).items():
        if isinstance(out.get(k), dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _resolve_extends(doc: Dict[str, Any], config_path: Path, seen: Optional[List[Path]] = None) -> Dict[str, Any]:
    extends_val = doc.get("extends")
    if not extends_val:
        return doc
    seen = list(seen or []) + [config_path]
    paths = list(extends_val) if isinstance(extends_val, (list, tuple)) else [extends_val]

    merged: Dict[str, Any] = {}
    for rel in paths:
        base_path = (config_path.parent / str(rel)).resolve()
        if base_path in seen:
            raise ConfigValidationError(f"circular extends: {base_path}")
        merged = _deep_merge(merged, _resolve_extends(_load_yaml(base_path), base_path, seen))
    return _deep_merge(merged, {k: v for k, v in doc.items() if k != "extends"})


def _apply_env(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    protocol = os.environ.get(TOOL_PROTOCOL_ENV)
    if protocol:
        out = _deep_merge(out, {"provider": {"tool_protocol": protocol.strip().lower()}})
    cache_dir = os.environ.get(TOOL_CACHE_DIR_ENV)
    if cache_dir:
        out = _deep_merge(out, {"tools": {"cache_dir": cache_dir}})
    return out


def _validate(doc: Dict[str, Any]) -> None:
    try:
        validate(instance=doc, schema=CONFIG_SCHEMA)
    except ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigValidationError(f"Configuration validation failed at {location}: {e.message}") from e


# ---------------------------------------------------------------------------
# Typed view
# ---------------------------------------------------------------------------

@dataclass
class BackendOverrides:
    cache_hints: Optional[bool] = None
    merge_tool_result_text: Optional[bool] = None
    tool_call_id_length: Optional[int] = None


@dataclass
class BridgeConfig:
    provider_settings: ProviderSettings = field(default_factory=ProviderSettings)
    model_info: ModelInfo = field(default_factory=ModelInfo)
    tool_directories: List[str] = field(default_factory=list)
    tool_cache_dir: Optional[str] = None
    reasoning_id_strip_formats: FrozenSet[str] = REASONING_FORMATS_WITHOUT_PERSISTENCE
    backends: Dict[BackendKind, BackendOverrides] = field(default_factory=dict)
    telemetry_path: Optional[str] = None

    def encode_options(
        self,
        kind: Any,
        protocol: Optional[ToolProtocol] = None,
        system_prompt: Optional[str] = None,
    ) -> EncodeOptions:
        overrides = self.backends.get(BackendKind.parse(kind), BackendOverrides())
        normalizer = None
        if overrides.tool_call_id_length:
            normalizer = fixed_length_id_normalizer(overrides.tool_call_id_length)
        return EncodeOptions(
            protocol=protocol or self.resolve_protocol(),
            normalize_tool_call_id=normalizer,
            merge_tool_result_text=overrides.merge_tool_result_text,
            cache_hints=overrides.cache_hints,
            system_prompt=system_prompt,
            reasoning_id_strip_formats=self.reasoning_id_strip_formats,
        )

    def resolve_protocol(self, lock: Optional[TaskProtocolLock] = None) -> ToolProtocol:
        locked = lock.protocol if lock is not None else None
        return resolve_tool_protocol(self.provider_settings, self.model_info, locked)

    def build_registry(self) -> ToolRegistry:
        registry = ToolRegistry(cache_dir=self.tool_cache_dir)
        result = registry.load_from_directories_if_stale(self.tool_directories)
        for failure in result.failed:
            logger.warning("tool file %s failed to load: %s", failure.file, failure.error)
        return registry

    def telemetry(self) -> TelemetryLogger:
        return TelemetryLogger(self.telemetry_path)


def _resolve_dir(value: str, base: Path) -> str:
    expanded = Path(os.path.expanduser(value))
    return str(expanded if expanded.is_absolute() else (base / expanded).resolve())


def config_from_dict(doc: Dict[str, Any], base_dir: Optional[Path] = None) -> BridgeConfig:
    _validate(doc)
    base = base_dir or Path.cwd()

    provider = doc.get("provider") or {}
    model = provider.get("model") or {}
    settings = ProviderSettings(
        api_provider=provider.get("api_provider"),
        tool_protocol=provider.get("tool_protocol"),
        model_id=model.get("id"),
    )
    info = ModelInfo(
        model_id=model.get("id", ""),
        supports_native_tools=model.get("supports_native_tools"),
        default_tool_protocol=model.get("default_tool_protocol"),
        supports_images=model.get("supports_images", True),
        supports_prompt_cache=model.get("supports_prompt_cache", False),
        max_tokens=model.get("max_tokens"),
    )
    if model.get("apply_router_preferences", True):
        info = apply_router_tool_preferences(info)

    tools = doc.get("tools") or {}
    cache_dir = tools.get("cache_dir")
    reasoning = doc.get("reasoning") or {}
    strip_formats = reasoning.get("strip_id_formats")
    telemetry = doc.get("telemetry") or {}

    return BridgeConfig(
        provider_settings=settings,
        model_info=info,
        tool_directories=[_resolve_dir(d, base) for d in tools.get("directories") or []],
        tool_cache_dir=_resolve_dir(cache_dir, base) if cache_dir else None,
        reasoning_id_strip_formats=(
            frozenset(strip_formats) if strip_formats is not None else REASONING_FORMATS_WITHOUT_PERSISTENCE
        ),
        backends={
            BackendKind.parse(name): BackendOverrides(**(values or {}))
            for name, values in (doc.get("backends") or {}).items()
        },
        telemetry_path=telemetry.get("path"),
    )


def load_bridge_config(config_path_str: str) -> BridgeConfig:
    """Load a config file: resolve extends, apply env overrides, validate."""
    config_path = Path(config_path_str).resolve()
    raw = _load_yaml(config_path)
    doc = _resolve_extends(raw, config_path)
    return config_from_dict(_apply_env(doc), base_dir=config_path.parent)
