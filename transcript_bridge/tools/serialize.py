"""Wire forms of tool definitions.

``serialize_tool`` drops the executor and normalizes the parameter schema;
the ``format_*`` helpers turn a serialized tool into each backend's tool
payload, and ``format_xml`` renders the catalog injected into the system
prompt when tools are text-emulated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import Environment, StrictUndefined

from ..schema_normalizer import normalize_tool_schema, strip_schema_meta
from .definition import ToolDefinition


@dataclass(frozen=True)
class SerializedTool:
    name: str
    description: str
    parameters: Optional[Dict[str, Any]] = None
    source: Optional[str] = None


EMPTY_PARAMETERS: Dict[str, Any] = {"type": "object", "properties": {}}


def serialize_tool(definition: ToolDefinition) -> SerializedTool:
    parameters = None
    if definition.parameters is not None:
        parameters = strip_schema_meta(normalize_tool_schema(strip_schema_meta(definition.parameters)))
    return SerializedTool(
        name=definition.name,
        description=definition.description,
        parameters=parameters,
        source=definition.source,
    )


def serialize_tools(definitions: Sequence[ToolDefinition]) -> List[SerializedTool]:
    return [serialize_tool(d) for d in definitions]


def _parameters(tool: SerializedTool) -> Dict[str, Any]:
    if tool.parameters is not None:
        return strip_schema_meta(tool.parameters)
    return strip_schema_meta(normalize_tool_schema(EMPTY_PARAMETERS))


def format_native(tool: SerializedTool, strict: bool = True) -> Dict[str, Any]:
    """OpenAI-compatible function tool."""
    function: Dict[str, Any] = {"name": tool.name, "description": tool.description}
    if strict:
        function["strict"] = True
    function["parameters"] = _parameters(tool)
    return {"type": "function", "function": function}


def format_anthropic(tool: SerializedTool) -> Dict[str, Any]:
    return {"name": tool.name, "description": tool.description or "", "input_schema": _parameters(tool)}


def format_bedrock(tool: SerializedTool) -> Dict[str, Any]:
    return {
        "toolSpec": {
            "name": tool.name,
            "description": tool.description,
            "inputSchema": {"json": _parameters(tool)},
        }
    }


# ---------------------------------------------------------------------------
# Text-emulated catalog
# ---------------------------------------------------------------------------

CATALOG_HEADER = (
    "# Custom Tools\n\n"
    "The following custom tools are available for this mode. "
    "Use them in the same way as built-in tools."
)

TOOL_TEMPLATE = """## {{ name }}
Description: {{ description }}
{% if params %}
Parameters:
{% for p in params %}
- {{ p.name }}: {{ p.flag }} {{ p.description }} (type: {{ p.type }})
{% endfor %}
{% else %}
Parameters: None
{% endif %}
Usage:
<{{ name }}>
{% for p in params %}
<{{ p.name }}>{{ p.placeholder }}</{{ p.name }}>
{% endfor %}
</{{ name }}>"""

_env = Environment(autoescape=False, undefined=StrictUndefined, trim_blocks=True, lstrip_blocks=True)
_tool_template = _env.from_string(TOOL_TEMPLATE)


def parameter_type(schema: Dict[str, Any]) -> str:
    if schema.get("type"):
        return str(schema["type"])
    branches = schema.get("anyOf")
    if isinstance(branches, list):
        types = [str(b["type"]) for b in branches if isinstance(b, dict) and b.get("type") and b["type"] != "null"]
        if types:
            return " | ".join(types)
    return "unknown"


def _param_rows(tool: SerializedTool) -> List[Dict[str, str]]:
    params = tool.parameters or {}
    required = params.get("required") or []
    rows: List[Dict[str, str]] = []
    for name, schema in (params.get("properties") or {}).items():
        if not isinstance(schema, dict):
            continue
        is_required = name in required
        rows.append(
            {
                "name": name,
                "flag": "(required)" if is_required else "(optional)",
                "description": schema.get("description") or "",
                "type": parameter_type(schema),
                "placeholder": f"{name} value here" if is_required else f"optional {name} value",
            }
        )
    return rows


def format_xml(tools: Sequence[SerializedTool]) -> str:
    if not tools:
        return ""
    sections = [
        _tool_template.render(name=t.name, description=t.description, params=_param_rows(t)) for t in tools
    ]
    return CATALOG_HEADER + "\n\n" + "\n\n".join(sections)
