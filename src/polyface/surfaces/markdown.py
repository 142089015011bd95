"""Markdown API reference.  Hidden operations are left out."""

from __future__ import annotations

from polyface.domain.descriptors import OperationDescriptor, ServiceDescriptor
from polyface.domain.naming import to_camel, to_kebab, to_title
from polyface.domain.shapes import describe_return, describe_shape
from polyface.domain.types import Surface
from polyface.services.conventions import graphql_kind
from polyface.surfaces.http import Route, build_routes


def _cell(text: str) -> str:
    return text.replace("|", "\\|")


def _section(op: OperationDescriptor, route: Route | None) -> list[str]:
    lines = [f"## {to_title(op.name)}", ""]
    if op.deprecated:
        lines += ["> **Deprecated.**", ""]
    if op.doc:
        lines += [op.description, ""]

    surfaces: list[str] = []
    if route is not None:
        surfaces.append(f"- **HTTP:** `{route.method} {route.path}`")
    if not op.skipped_on(Surface.GRAPHQL):
        surfaces.append(f"- **GraphQL:** {graphql_kind(op.name)} `{to_camel(op.name)}`")
    if not op.skipped_on(Surface.JSONRPC):
        surfaces.append(f"- **JSON-RPC:** `{op.name}`")
    if not op.skipped_on(Surface.CLI):
        surfaces.append(f"- **CLI:** `{to_kebab(op.name)}`")
    if surfaces:
        lines += [*surfaces, ""]

    if op.wire_params:
        locations = {pl.key: str(pl.location) for pl in route.placements} if route else {}
        lines += [
            "### Parameters",
            "",
            "| Name | Type | Required | Location |",
            "|------|------|----------|----------|",
        ]
        for p in op.wire_params:
            required = "yes" if p.is_required else "no"
            location = locations.get(p.key, "-")
            lines.append(
                f"| `{p.key}` | `{_cell(describe_shape(p.type_shape))}` | {required} | {location} |"
            )
        lines.append("")

    lines += ["### Returns", "", f"`{_cell(describe_return(op.return_shape))}`", ""]
    return lines


def markdown_document(service: ServiceDescriptor, *, prefix: str = "") -> str:
    routes = {r.name: r for r in build_routes(service, prefix=prefix)}
    lines = [f"# {service.name}", ""]
    if service.doc:
        lines += [service.doc.strip(), ""]
    for op in service.for_surface(Surface.MARKDOWN):
        if op.hidden:
            continue
        lines += _section(op, routes.get(op.name))
    return "\n".join(lines).rstrip() + "\n"
