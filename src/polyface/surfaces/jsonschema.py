"""JSON Schema (draft-07) definitions for every operation's request and response."""

from __future__ import annotations

import json
from typing import Any

from polyface.domain.descriptors import OperationDescriptor, ParamDescriptor, ServiceDescriptor
from polyface.domain.naming import to_pascal
from polyface.domain.shapes import OptionalOf
from polyface.domain.types import Surface
from polyface.surfaces._shared import ensure_no_streams, json_schema, result_shape

DRAFT_07 = "http://json-schema.org/draft-07/schema#"


def _property(p: ParamDescriptor) -> dict[str, Any]:
    schema = json_schema(p.type_shape)
    if p.default_literal is not None:
        try:
            schema["default"] = json.loads(p.default_literal)
        except json.JSONDecodeError:
            schema["default"] = p.default_literal
    return schema


def request_schema(op: OperationDescriptor) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {p.key: _property(p) for p in op.wire_params},
        "required": [p.key for p in op.wire_params if p.is_required],
        "additionalProperties": False,
    }


def response_schema(op: OperationDescriptor) -> dict[str, Any]:
    """``{"result": ...}``; unit operations carry no properties."""
    payload = result_shape(op)
    properties: dict[str, Any] = {}
    required: list[str] = []
    if payload is not None:
        result = json_schema(payload)
        if isinstance(payload, OptionalOf):
            result = {"oneOf": [result, {"type": "null"}]}
        else:
            required.append("result")
        properties["result"] = result
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def json_schema_document(
    service: ServiceDescriptor, *, materialize_streams: bool = False
) -> dict[str, Any]:
    ensure_no_streams(service, Surface.JSONSCHEMA, materialize=materialize_streams)
    definitions: dict[str, Any] = {}
    for op in service.for_surface(Surface.JSONSCHEMA):
        base = to_pascal(op.name)
        definitions[f"{base}Request"] = request_schema(op)
        definitions[f"{base}Response"] = response_schema(op)
    document: dict[str, Any] = {"$schema": DRAFT_07, "title": service.name}
    if service.doc:
        document["description"] = service.doc.strip()
    document["definitions"] = definitions
    return document
