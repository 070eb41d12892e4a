"""
User-defined tool definitions: validation, loading, registry and wire formats
"""

from .definition import ToolDefinition, coerce_tool_definition, validate_tool_definition
from .loaders import CompositeToolLoader, PythonToolLoader, ToolModuleLoader, YamlToolLoader, default_loader
from .registry import LoadFailure, LoadResult, ToolRegistry
from .serialize import (
    SerializedTool,
    format_anthropic,
    format_bedrock,
    format_native,
    format_xml,
    serialize_tool,
    serialize_tools,
)

__all__ = [
    "CompositeToolLoader",
    "LoadFailure",
    "LoadResult",
    "PythonToolLoader",
    "SerializedTool",
    "ToolDefinition",
    "ToolModuleLoader",
    "ToolRegistry",
    "YamlToolLoader",
    "coerce_tool_definition",
    "default_loader",
    "format_anthropic",
    "format_bedrock",
    "format_native",
    "format_xml",
    "serialize_tool",
    "serialize_tools",
    "validate_tool_definition",
]
