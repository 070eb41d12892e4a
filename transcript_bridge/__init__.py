"""
Transcript Bridge

Converts one canonical conversation transcript into the request shapes of
several LLM backends, decides per task whether tools are called natively or
through text emulation, and manages user-defined tools.
"""

from .config import BridgeConfig, load_bridge_config
from .encoders import BackendKind, EncodedRequest, EncodeOptions, encode_messages, encode_request
from .rewind import rewind_to_index, rewind_to_sequence, rewind_to_timestamp
from .schema_normalizer import normalize_tool_schema
from .tool_protocol import TaskProtocolLock, ToolProtocol, detect_tool_protocol_from_history, resolve_tool_protocol
from .tool_result_validator import reconcile_tool_results
from .tools import ToolRegistry, format_native, format_xml, serialize_tools
from .transcript import (
    Image,
    Reasoning,
    ReasoningDetail,
    Text,
    ToolInvocation,
    ToolOutcome,
    Turn,
    UnknownSegment,
)

__all__ = [
    "BackendKind",
    "BridgeConfig",
    "EncodeOptions",
    "EncodedRequest",
    "Image",
    "Reasoning",
    "ReasoningDetail",
    "TaskProtocolLock",
    "Text",
    "ToolInvocation",
    "ToolOutcome",
    "ToolProtocol",
    "ToolRegistry",
    "Turn",
    "UnknownSegment",
    "detect_tool_protocol_from_history",
    "encode_messages",
    "encode_request",
    "format_native",
    "format_xml",
    "load_bridge_config",
    "normalize_tool_schema",
    "reconcile_tool_results",
    "resolve_tool_protocol",
    "rewind_to_index",
    "rewind_to_sequence",
    "rewind_to_timestamp",
    "serialize_tools",
]
