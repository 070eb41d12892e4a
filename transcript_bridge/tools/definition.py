from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from ..error_handling import ToolDefinitionError


@dataclass(frozen=True)
class ToolDefinition:
    """A user-defined tool: metadata plus the callable that runs it."""

    name: str
    description: str
    execute: Callable[..., Any]
    parameters: Optional[Dict[str, Any]] = None
    source: Optional[str] = None


def _field(candidate: Any, key: str) -> Any:
    if isinstance(candidate, Mapping):
        return candidate.get(key)
    return getattr(candidate, key, None)


def validate_tool_definition(candidate: Any) -> List[str]:
    """Return every violated field as ``"<field>: <problem>"``; empty when valid."""
    errors: List[str] = []

    name = _field(candidate, "name")
    if not isinstance(name, str):
        errors.append("name: Expected string")
    elif not name:
        errors.append("name: Tool must have a non-empty name")

    description = _field(candidate, "description")
    if not isinstance(description, str):
        errors.append("description: Expected string")
    elif not description:
        errors.append("description: Tool must have a non-empty description")

    parameters = _field(candidate, "parameters")
    if parameters is not None:
        if not isinstance(parameters, dict):
            errors.append("parameters: parameters must be a JSON Schema object")
        else:
            try:
                Draft7Validator.check_schema(parameters)
            except SchemaError as exc:
                errors.append(f"parameters: {exc.message}")

    if not callable(_field(candidate, "execute")):
        errors.append("execute: Expected callable")

    return errors


def looks_like_tool(value: Any) -> bool:
    """Exports without a callable ``execute`` are not tool candidates at all."""
    if isinstance(value, ToolDefinition):
        return True
    return isinstance(value, Mapping) and callable(value.get("execute"))


def coerce_tool_definition(label: str, value: Any) -> ToolDefinition:
    """Validate ``value`` and return it as a ToolDefinition.

    Raises ToolDefinitionError naming ``label`` with every violated field.
    """
    errors = validate_tool_definition(value)
    if errors:
        raise ToolDefinitionError(label, errors)
    if isinstance(value, ToolDefinition):
        return value
    return ToolDefinition(
        name=value["name"],
        description=value["description"],
        execute=value["execute"],
        parameters=value.get("parameters"),
        source=value.get("source"),
    )
