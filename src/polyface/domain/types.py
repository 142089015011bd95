"""Closed vocabularies shared across the descriptor model and surfaces."""

from __future__ import annotations

from enum import StrEnum


class Location(StrEnum):
    """Where an HTTP parameter travels."""

    PATH = "path"
    QUERY = "query"
    BODY = "body"
    HEADER = "header"


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Surface(StrEnum):
    """Targets an operation can be skipped on.

    ``ALL`` skips the operation everywhere.
    """

    ALL = "*"
    HTTP = "http"
    GRAPHQL = "graphql"
    JSONRPC = "jsonrpc"
    WS = "ws"
    MCP = "mcp"
    CLI = "cli"
    PROTO = "proto"
    SMITHY = "smithy"
    THRIFT = "thrift"
    CAPNP = "capnp"
    OPENRPC = "openrpc"
    JSONSCHEMA = "jsonschema"
    MARKDOWN = "markdown"


class GraphQLKind(StrEnum):
    QUERY = "query"
    MUTATION = "mutation"
