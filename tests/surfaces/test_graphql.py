"""Tests for the GraphQL surface."""

from __future__ import annotations

import asyncio

import pytest

from polyface import route
from polyface.domain.descriptors import ServiceDescriptor
from polyface.domain.exceptions import DuplicateOperationError, StreamingUnsupportedError
from polyface.domain.types import GraphQLKind
from polyface.services.analysis import describe_service
from polyface.services.dispatch import AsyncHandling
from polyface.surfaces.graphql import (
    EMPTY_QUERY_FIELD,
    GraphQLFieldError,
    GraphQLSurface,
    graphql_openapi_paths,
    graphql_sdl,
)
from sample_services import Calculator, Feed, Folding, UserService


class Legacy:
    @route(deprecated=True)
    def get_thing(self, thing_id: str) -> str:
        """Old lookup."""
        return thing_id


@pytest.fixture
def gql(users: ServiceDescriptor) -> GraphQLSurface:
    return GraphQLSurface(users, UserService())


class TestSdl:
    def test_user_service(self, users: ServiceDescriptor) -> None:
        sdl = graphql_sdl(users)
        assert sdl.startswith("scalar JSON\n\ntype Query {\n")
        assert '  """Fetch one user."""\n  getUser(userId: String!): JSON\n' in sdl
        assert "  listUsers(limit: Int!, domain: String): [JSON!]!" in sdl
        assert "type Mutation {" in sdl
        assert '  createUser(name: String!, email: String!): JSON!' in sdl
        assert "  deleteUser(userId: String!): Boolean!" in sdl
        assert "purge" not in sdl
        assert "ctx" not in sdl

    def test_json_scalar_only_when_used(self, calculator: ServiceDescriptor) -> None:
        sdl = graphql_sdl(calculator)
        assert "scalar" not in sdl
        assert "  add(a: Int!, b: Int!): Int!" in sdl
        assert "  divide(a: Float!, b: Float!): Float!" in sdl

    def test_mutation_only_gets_placeholder_query(self, calculator: ServiceDescriptor) -> None:
        sdl = graphql_sdl(calculator)
        assert sdl.startswith(
            'type Query {\n  """No queries: this service only has mutations."""\n'
            f"  {EMPTY_QUERY_FIELD}: Boolean\n}}\n\ntype Mutation {{\n"
        )

    def test_no_placeholder_when_queries_exist(self, users: ServiceDescriptor) -> None:
        assert EMPTY_QUERY_FIELD not in graphql_sdl(users)

    def test_camel_case_collision(self) -> None:
        with pytest.raises(DuplicateOperationError, match="external name 'getUser'"):
            graphql_sdl(describe_service(Folding))

    def test_deprecated(self) -> None:
        sdl = graphql_sdl(describe_service(Legacy))
        assert "  getThing(thingId: String!): String! @deprecated" in sdl

    def test_streams(self, feed: ServiceDescriptor) -> None:
        with pytest.raises(StreamingUnsupportedError):
            graphql_sdl(feed)
        sdl = graphql_sdl(feed, materialize_streams=True)
        assert "  streamEvents(count: Int!): [Int!]!" in sdl


class TestExecution:
    def test_query(self, gql: GraphQLSurface) -> None:
        user = gql.execute_field(GraphQLKind.QUERY, "getUser", {"userId": "42"})
        assert user == {"id": "42", "name": "Ada", "email": "ada@example.com"}
        assert gql.execute_field(GraphQLKind.QUERY, "getUser", {"userId": "7"}) is None

    def test_unit_mutation_resolves_true(self, gql: GraphQLSurface) -> None:
        assert gql.execute_field(GraphQLKind.MUTATION, "deleteUser", {"userId": "42"}) is True

    def test_wrong_root_type(self, gql: GraphQLSurface) -> None:
        with pytest.raises(GraphQLFieldError, match="Unknown query: createUser"):
            gql.execute_field(GraphQLKind.QUERY, "createUser", {})

    def test_err_becomes_field_error(self, gql: GraphQLSurface) -> None:
        args = {"name": "Ada", "email": "ada@example.com"}
        with pytest.raises(GraphQLFieldError, match="Email already registered"):
            gql.execute_field(GraphQLKind.MUTATION, "createUser", args)

    def test_missing_argument(self, gql: GraphQLSurface) -> None:
        with pytest.raises(GraphQLFieldError, match="Missing required parameter: user_id"):
            gql.execute_field(GraphQLKind.QUERY, "getUser", {})

    def test_resolvers(self, gql: GraphQLSurface) -> None:
        resolvers = gql.resolvers()
        assert "purge" not in resolvers["Mutation"]
        assert resolvers["Query"]["listUsers"]({"limit": 1})[0]["id"] == "42"

    def test_async(self, calculator: ServiceDescriptor) -> None:
        gql = GraphQLSurface(calculator, Calculator())
        with pytest.raises(GraphQLFieldError):
            gql.execute_field(GraphQLKind.MUTATION, "multiply", {"a": 2, "b": 4})
        result = asyncio.run(
            gql.execute_field_async(GraphQLKind.MUTATION, "multiply", {"a": 2, "b": 4})
        )
        assert result == 8

    def test_materialized_stream(self, feed: ServiceDescriptor) -> None:
        gql = GraphQLSurface(
            feed, Feed(), materialize_streams=True, handling=AsyncHandling.BLOCK_ON
        )
        assert gql.execute_field(GraphQLKind.MUTATION, "followEvents", {"count": 1}) == [
            "event-0"
        ]


class TestOpenApi:
    def test_endpoint_and_playground(self) -> None:
        paths = graphql_openapi_paths()
        assert [(p.path, p.method) for p in paths] == [("/graphql", "post"), ("/graphql", "get")]
        body = paths[0].operation.to_dict()["requestBody"]
        assert body["content"]["application/json"]["schema"]["required"] == ["query"]
