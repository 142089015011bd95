"""Specification composer — merge partial OpenAPI contracts into one.

Paths are last-writer-wins per ``(path, method)``: re-merging a service
under another prefix overrides the earlier entry.  Named schemas are never
overwritten.  An identical body is a no-op, a differing body raises
:class:`SchemaConflictError`.  Merges over disjoint keys commute.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polyface.domain.exceptions import SchemaConflictError

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.0"
DEFAULT_TITLE = "API"
DEFAULT_VERSION = "0.1.0"


# ── Typed fragments ──────────────────────────────────────────────────


class OpenApiParameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    location: str = Field(alias="in")
    required: bool = False
    schema_: dict[str, Any] = Field(default_factory=lambda: {"type": "string"}, alias="schema")
    description: str | None = None

    @classmethod
    def path(cls, name: str) -> OpenApiParameter:
        """Path parameters are always required."""
        return cls(name=name, location="path", required=True)

    @classmethod
    def query(cls, name: str, required: bool) -> OpenApiParameter:
        return cls(name=name, location="query", required=required)

    @classmethod
    def header(cls, name: str, required: bool) -> OpenApiParameter:
        return cls(name=name, location="header", required=required)

    def with_schema(self, schema: dict[str, Any]) -> OpenApiParameter:
        return self.model_copy(update={"schema_": schema})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class OpenApiOperation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str | None = None
    description: str | None = None
    operation_id: str | None = Field(default=None, alias="operationId")
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False
    parameters: list[OpenApiParameter] = Field(default_factory=list)
    request_body: dict[str, Any] | None = Field(default=None, alias="requestBody")
    responses: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.summary is not None:
            data["summary"] = self.summary
        if self.description is not None:
            data["description"] = self.description
        if self.operation_id is not None:
            data["operationId"] = self.operation_id
        if self.tags:
            data["tags"] = list(self.tags)
        if self.deprecated:
            data["deprecated"] = True
        if self.parameters:
            data["parameters"] = [p.to_dict() for p in self.parameters]
        if self.request_body is not None:
            data["requestBody"] = self.request_body
        data["responses"] = dict(self.responses)
        data.update(self.extra)
        return data


class OpenApiPath(BaseModel):
    path: str
    method: str
    operation: OpenApiOperation = Field(default_factory=OpenApiOperation)

    @field_validator("method")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.lower()


# ── Contract ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ServiceContract:
    """Immutable composed contract."""

    title: str
    version: str
    description: str | None = None
    paths: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    schemas: Mapping[str, Any] = field(default_factory=dict)

    def operation(self, path: str, method: str) -> Any | None:
        return self.paths.get(path, {}).get(method.lower())

    def routes(self) -> list[tuple[str, str]]:
        return [(path, method) for path, methods in self.paths.items() for method in methods]

    def to_document(self) -> dict[str, Any]:
        info: dict[str, Any] = {"title": self.title, "version": self.version}
        if self.description is not None:
            info["description"] = self.description
        doc: dict[str, Any] = {"openapi": OPENAPI_VERSION, "info": info}
        if self.paths:
            doc["paths"] = copy.deepcopy({p: dict(m) for p, m in self.paths.items()})
        if self.schemas:
            doc["components"] = {"schemas": copy.deepcopy(dict(self.schemas))}
        return doc


class ContractBuilder:
    """Accumulates paths and schemas; chainable.

    Usage::

        doc = (
            ContractBuilder()
            .title("Users")
            .version("1.0.0")
            .merge(users_doc)
            .merge(orders_doc)
            .build()
        )
    """

    def __init__(self) -> None:
        self._title: str | None = None
        self._version: str | None = None
        self._description: str | None = None
        self._paths: dict[str, dict[str, Any]] = {}
        self._schemas: dict[str, Any] = {}

    def title(self, title: str) -> Self:
        self._title = title
        return self

    def version(self, version: str) -> Self:
        self._version = version
        return self

    def description(self, description: str) -> Self:
        self._description = description
        return self

    def merge(self, document: Mapping[str, Any]) -> Self:
        """Merge an OpenAPI-shaped document (``paths``, ``components.schemas``, ``schemas``)."""
        paths = document.get("paths")
        if isinstance(paths, Mapping):
            for path, methods in paths.items():
                if not isinstance(methods, Mapping):
                    continue
                entry = self._paths.setdefault(path, {})
                for method, operation in methods.items():
                    entry[method] = copy.deepcopy(operation)

        components = document.get("components")
        if isinstance(components, Mapping) and isinstance(components.get("schemas"), Mapping):
            self.merge_schemas(components["schemas"])
        if isinstance(document.get("schemas"), Mapping):
            self.merge_schemas(document["schemas"])
        return self

    def merge_paths(self, paths: Iterable[OpenApiPath]) -> Self:
        for item in paths:
            self._paths.setdefault(item.path, {})[item.method] = item.operation.to_dict()
        return self

    def merge_schemas(self, schemas: Mapping[str, Any]) -> Self:
        for name, body in schemas.items():
            self.merge_schema(name, body)
        return self

    def merge_schema(self, name: str, body: Any) -> Self:
        existing = self._schemas.get(name)
        if existing is None:
            self._schemas[name] = copy.deepcopy(body)
        elif existing != body:
            logger.debug("Schema conflict on %s", name)
            raise SchemaConflictError(name)
        return self

    def contract(self) -> ServiceContract:
        return ServiceContract(
            title=self._title or DEFAULT_TITLE,
            version=self._version or DEFAULT_VERSION,
            description=self._description,
            paths=copy.deepcopy(self._paths),
            schemas=copy.deepcopy(self._schemas),
        )

    def build(self) -> dict[str, Any]:
        return self.contract().to_document()
