"""OpenAPI document for a service's HTTP surface, assembled by the composer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from polyface.domain.descriptors import ServiceDescriptor
from polyface.services.composer import ContractBuilder, OpenApiPath
from polyface.surfaces.http import build_routes, openapi_paths


def openapi_document(
    service: ServiceDescriptor,
    *,
    title: str | None = None,
    version: str | None = None,
    description: str | None = None,
    prefix: str = "",
    extra_paths: Iterable[OpenApiPath] = (),
) -> dict[str, Any]:
    """Build the OpenAPI 3.0 document.

    *extra_paths* lets other surfaces contribute endpoints, e.g. the
    ``/graphql`` pair from :func:`polyface.surfaces.graphql.graphql_openapi_paths`.
    """
    builder = ContractBuilder().title(title or service.name)
    if version:
        builder.version(version)
    if description or service.doc:
        builder.description(description or service.doc or "")
    builder.merge_paths(openapi_paths(build_routes(service, prefix=prefix)))
    builder.merge_paths(extra_paths)
    return builder.build()
