"""Rewrite tool parameter schemas into the dialect strict function-calling backends accept.

Rules applied at every node:

* ``type: [a, b]`` becomes ``anyOf: [{type: a}, {type: b}]``; object and array
  keywords move into the matching branch.
* object nodes get ``additionalProperties: false`` unless already set, and an
  empty ``properties`` map when none is given.
* ``required`` only lists keys present in ``properties``.

The input is never mutated.  A result that fails meta-schema validation is
discarded in favour of the original schema.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for


logger = logging.getLogger(__name__)

UNION_KEYS = ("anyOf", "oneOf", "allOf")
SCHEMA_MAP_KEYS = ("properties", "patternProperties", "$defs", "definitions")
OBJECT_KEYWORDS = (
    "properties",
    "required",
    "additionalProperties",
    "patternProperties",
    "minProperties",
    "maxProperties",
)
ARRAY_KEYWORDS = ("items", "prefixItems", "minItems", "maxItems", "uniqueItems")


def _union_branches(node: Dict[str, Any]) -> List[Any]:
    branches: List[Any] = []
    for key in UNION_KEYS:
        value = node.get(key)
        if isinstance(value, list):
            branches.extend(value)
    return branches


def _may_be_object(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    t = node.get("type")
    if t is None:
        branches = _union_branches(node)
        if branches:
            return any(_may_be_object(b) for b in branches)
        return True
    if isinstance(t, list):
        return "object" in t
    return t == "object"


def _split_type_array(node: Dict[str, Any]) -> Dict[str, Any]:
    types = node["type"]
    out = {k: v for k, v in node.items() if k != "type"}
    branches: List[Dict[str, Any]] = []
    for t in types:
        branch: Dict[str, Any] = {"type": t}
        if t == "object":
            for key in OBJECT_KEYWORDS:
                if key in out:
                    branch[key] = out.pop(key)
        elif t == "array":
            for key in ARRAY_KEYWORDS:
                if key in out:
                    branch[key] = out.pop(key)
        branches.append(branch)
    if "anyOf" in out:
        # keep both constraints
        out["allOf"] = list(out.get("allOf") or []) + [{"anyOf": branches}]
    else:
        out["anyOf"] = branches
    return out


def _normalize_node(node: Any) -> Any:
    if not isinstance(node, dict):
        return node

    out: Dict[str, Any] = dict(node)
    if isinstance(out.get("type"), list):
        out = _split_type_array(out)

    for key in SCHEMA_MAP_KEYS:
        value = out.get(key)
        if isinstance(value, dict):
            out[key] = {name: _normalize_node(sub) for name, sub in value.items()}

    items = out.get("items")
    if isinstance(items, list):
        out["items"] = [_normalize_node(i) for i in items]
    elif isinstance(items, dict):
        out["items"] = _normalize_node(items)
    if isinstance(out.get("prefixItems"), list):
        out["prefixItems"] = [_normalize_node(i) for i in out["prefixItems"]]

    for key in UNION_KEYS:
        if isinstance(out.get(key), list):
            out[key] = [_normalize_node(b) for b in out[key]]

    if isinstance(out.get("additionalProperties"), dict):
        out["additionalProperties"] = _normalize_node(out["additionalProperties"])

    t = out.get("type")
    if t == "object":
        out.setdefault("properties", {})
        out.setdefault("additionalProperties", False)
    elif t is None and "additionalProperties" not in out and "$ref" not in out:
        branches = _union_branches(out)
        if "properties" in out or (branches and not any(_may_be_object(b) for b in branches)):
            out["additionalProperties"] = False

    required = out.get("required")
    if isinstance(required, list) and isinstance(out.get("properties"), dict):
        out["required"] = [r for r in required if isinstance(r, str) and r in out["properties"]]

    return out


def normalize_tool_schema(schema: Any) -> Any:
    """Return a normalized copy of ``schema``; non-dict input is returned as is."""
    if not isinstance(schema, dict):
        return schema
    result = _normalize_node(schema)
    try:
        validator_for(result, default=Draft7Validator).check_schema(result)
    except SchemaError as exc:
        logger.warning("normalized tool schema is invalid, keeping original: %s", exc.message)
        return schema
    return result


def strip_schema_meta(schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy ``schema`` without ``$schema`` and with a ``required`` list."""
    out = dict(schema or {"type": "object", "properties": {}})
    out.pop("$schema", None)
    out.setdefault("required", [])
    return out
