"""Schema descriptors for structured generation.

Converts pydantic models into the small JSON-schema subset that structured
output endpoints accept: object / array / string / integer, nested objects,
required lists, arrays of objects and numeric / length bounds. ``$ref``
pointers are inlined, titles and defaults dropped, and ``Optional[X]`` is
collapsed to ``X`` (the field is simply left out of ``required``).
"""

from __future__ import annotations

from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from parallel_thought.errors import EmptyResponse, SchemaViolation

SchemaDescriptor = Dict[str, Any]
ModelT = TypeVar("ModelT", bound=BaseModel)

_KEPT_KEYS = (
    "type",
    "description",
    "enum",
    "minimum",
    "maximum",
    "minItems",
    "maxItems",
)


def schema_descriptor(model: Type[BaseModel]) -> SchemaDescriptor:
    """Build the request schema for ``model``."""
    raw = model.model_json_schema()
    return _convert(raw, raw.get("$defs", {}))


def _convert(node: Dict[str, Any], defs: Dict[str, Any]) -> SchemaDescriptor:
    if "$ref" in node:
        name = node["$ref"].rsplit("/", 1)[-1]
        resolved = _convert(defs[name], defs)
        if "description" in node:
            resolved["description"] = node["description"]
        return resolved

    if "allOf" in node and len(node["allOf"]) == 1:
        return _convert(node["allOf"][0], defs)

    if "anyOf" in node:
        # Optional[X] -> X
        options = [o for o in node["anyOf"] if o.get("type") != "null"]
        if len(options) != 1:
            raise ValueError(f"Unsupported union in schema: {node['anyOf']}")
        return _convert(options[0], defs)

    out: SchemaDescriptor = {k: node[k] for k in _KEPT_KEYS if k in node}

    if node.get("type") == "object":
        properties = node.get("properties", {})
        out["properties"] = {
            key: _convert(value, defs) for key, value in properties.items()
        }
        out["required"] = list(node.get("required", []))
        out["additionalProperties"] = False
    elif node.get("type") == "array":
        out["items"] = _convert(node.get("items", {}), defs)

    return out


def validate_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """Validate a decoded model response strictly against ``model``.

    Raises:
        EmptyResponse: payload is None or an empty object.
        SchemaViolation: payload does not conform to the schema.
    """
    if payload is None or payload == {} or payload == "":
        raise EmptyResponse()
    if not isinstance(payload, dict):
        raise SchemaViolation(
            f"Expected a JSON object for {model.__name__}, "
            f"got {type(payload).__name__}.",
        )
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()[:5]
        )
        raise SchemaViolation(
            f"The AI response did not match the expected structure "
            f"({model.__name__}): {problems}",
            detail=str(e)[:500],
        ) from e
