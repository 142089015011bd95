"""Built-in artifact formats, registered like any other plugin.

Every emitter is ``(service, options) -> str``; JSON documents are
pretty-printed with a trailing newline.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from polyface.domain.descriptors import ServiceDescriptor
    from polyface.plugins.hookspecs import Emitter
    from polyface.services.emit import EmitOptions

hookimpl = pluggy.HookimplMarker("polyface")


def _dump(document: Any) -> str:
    return json.dumps(document, indent=2) + "\n"


def emit_openapi(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.openapi import openapi_document

    return _dump(
        openapi_document(
            service,
            title=options.title,
            version=options.version,
            description=options.description,
            prefix=options.prefix,
        )
    )


def emit_graphql(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.graphql import graphql_sdl

    return graphql_sdl(service, materialize_streams=options.materialize_streams)


def emit_openrpc(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.jsonrpc import openrpc_document

    return _dump(
        openrpc_document(
            service,
            title=options.title,
            version=options.version or "0.1.0",
            materialize_streams=options.materialize_streams,
        )
    )


def emit_jsonschema(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.jsonschema import json_schema_document

    return _dump(json_schema_document(service, materialize_streams=options.materialize_streams))


def emit_markdown(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.markdown import markdown_document

    return markdown_document(service, prefix=options.prefix)


def emit_proto(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.idl import render_proto

    return render_proto(
        service,
        package=options.package,
        materialize_streams=options.materialize_streams,
        project_root=options.project_root,
        template_dir=options.template_dir,
    )


def emit_connect(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.idl import render_connect

    return render_connect(
        service,
        package=options.package,
        materialize_streams=options.materialize_streams,
        project_root=options.project_root,
        template_dir=options.template_dir,
    )


def emit_smithy(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.idl import render_smithy

    return render_smithy(
        service,
        namespace=options.idl_namespace,
        materialize_streams=options.materialize_streams,
        project_root=options.project_root,
        template_dir=options.template_dir,
    )


def emit_thrift(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.idl import render_thrift

    return render_thrift(
        service,
        namespace=options.idl_namespace,
        materialize_streams=options.materialize_streams,
        project_root=options.project_root,
        template_dir=options.template_dir,
    )


def emit_capnp(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.idl import render_capnp

    return render_capnp(
        service,
        schema_id=options.capnp_id,
        materialize_streams=options.materialize_streams,
        project_root=options.project_root,
        template_dir=options.template_dir,
    )


def emit_asyncapi(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.asyncapi import asyncapi_document

    return _dump(
        asyncapi_document(
            service,
            title=options.title,
            version=options.version,
            description=options.description,
            server=options.ws_server,
            path=options.ws_path,
            materialize_streams=options.materialize_streams,
        )
    )


def emit_mcp_tools(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.mcp import mcp_tools

    return _dump(mcp_tools(service, namespace=options.namespace))


def emit_cli_shape(service: ServiceDescriptor, options: EmitOptions) -> str:
    from polyface.surfaces.cli import cli_shape

    return _dump([c.to_dict() for c in cli_shape(service)])


BUILTIN_EMITTERS: dict[str, Emitter] = {
    "openapi": emit_openapi,
    "graphql": emit_graphql,
    "openrpc": emit_openrpc,
    "jsonschema": emit_jsonschema,
    "markdown": emit_markdown,
    "proto": emit_proto,
    "smithy": emit_smithy,
    "thrift": emit_thrift,
    "capnp": emit_capnp,
    "mcp-tools": emit_mcp_tools,
    "cli-shape": emit_cli_shape,
    "asyncapi": emit_asyncapi,
    "connect": emit_connect,
}


class BuiltinEmitters:
    """Registers :data:`BUILTIN_EMITTERS`."""

    @hookimpl
    def register_emitters(self) -> dict[str, Emitter]:
        return dict(BUILTIN_EMITTERS)
