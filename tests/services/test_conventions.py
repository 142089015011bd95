"""Tests for the convention engine."""

from __future__ import annotations

import pytest

from polyface.domain.descriptors import (
    OperationDescriptor,
    ParamDescriptor,
    RouteOverride,
)
from polyface.domain.exceptions import DuplicateRouteError, InvalidPathError
from polyface.domain.shapes import Unit, classify_type
from polyface.domain.types import GraphQLKind, HttpMethod, Location
from polyface.services.conventions import (
    check_duplicate_routes,
    graphql_kind,
    http_facts,
    infer_http_method,
    infer_location,
    infer_path,
    is_query_operation,
    normalize_path,
    path_param_names,
    resource_stem,
    validate_http_path,
)


def _p(
    name: str, type_text: str = "str", location: Location | None = None
) -> ParamDescriptor:
    return ParamDescriptor(name, type_text, classify_type(type_text), location_override=location)


def _op(
    name: str, *params: ParamDescriptor, route: RouteOverride | None = None
) -> OperationDescriptor:
    return OperationDescriptor(name, params, Unit(), route=route)


def _route(op: OperationDescriptor, prefix: str = "") -> tuple[HttpMethod, str]:
    method = infer_http_method(op)
    return method, infer_path(op, method, prefix=prefix)


class TestHttpMethod:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("get_user", HttpMethod.GET),
            ("fetch_user", HttpMethod.GET),
            ("search_users", HttpMethod.GET),
            ("create_user", HttpMethod.POST),
            ("add_item", HttpMethod.POST),
            ("update_user", HttpMethod.PUT),
            ("set_flag", HttpMethod.PUT),
            ("patch_user", HttpMethod.PATCH),
            ("delete_user", HttpMethod.DELETE),
            ("remove_item", HttpMethod.DELETE),
            ("frobnicate", HttpMethod.POST),
            ("getter", HttpMethod.POST),
        ],
    )
    def test_verb_table(self, name: str, expected: HttpMethod) -> None:
        assert infer_http_method(_op(name)) is expected

    def test_override_wins(self) -> None:
        op = _op("get_user", route=RouteOverride(method=HttpMethod.POST))
        assert infer_http_method(op) is HttpMethod.POST


class TestPath:
    def test_get_user_scenario(self) -> None:
        assert _route(_op("get_user", _p("user_id"))) == (HttpMethod.GET, "/users/{id}")

    def test_create_user_scenario(self) -> None:
        op = _op("create_user", _p("name"), _p("email"))
        method, path = _route(op)
        assert (method, path) == (HttpMethod.POST, "/users")
        assert [infer_location(p, method) for p in op.params] == [Location.BODY, Location.BODY]

    def test_collection_prefixes_ignore_identifiers(self) -> None:
        assert _route(_op("list_users", _p("org_id"))) == (HttpMethod.GET, "/users")

    def test_item_paths(self) -> None:
        assert _route(_op("delete_user", _p("user_id")))[1] == "/users/{id}"
        assert _route(_op("update_user", _p("id"), _p("name")))[1] == "/users/{id}"

    def test_post_never_addresses_an_item(self) -> None:
        assert _route(_op("create_comment", _p("post_id")))[1] == "/comments"

    def test_stem_handling(self) -> None:
        assert resource_stem("get_status") == "status"
        assert resource_stem("frobnicate") == "frobnicates"
        assert resource_stem("get_user_profile") == "user-profiles"

    def test_prefix(self) -> None:
        assert _route(_op("get_user", _p("user_id")), "/api/")[1] == "/api/users/{id}"

    def test_path_override_takes_prefix(self) -> None:
        op = _op("whoami", route=RouteOverride(path="/me"))
        assert _route(op, "/v1") == (HttpMethod.POST, "/v1/me")

    def test_inference_is_pure(self) -> None:
        op = _op("get_user", _p("user_id"))
        assert _route(op) == _route(op)


class TestLocation:
    def test_identifier_goes_to_path(self) -> None:
        assert infer_location(_p("user_id"), HttpMethod.POST) is Location.PATH

    def test_read_verbs_use_query(self) -> None:
        assert infer_location(_p("limit", "int"), HttpMethod.GET) is Location.QUERY
        assert infer_location(_p("limit", "int"), HttpMethod.DELETE) is Location.QUERY

    def test_write_verbs_use_body(self) -> None:
        for method in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH):
            assert infer_location(_p("name"), method) is Location.BODY

    def test_override(self) -> None:
        p = _p("token", location=Location.HEADER)
        assert infer_location(p, HttpMethod.POST) is Location.HEADER


class TestValidatePath:
    @pytest.mark.parametrize("path", ["/", "/users", "/users/{id}", "/a-b/{item_id}/c"])
    def test_valid(self, path: str) -> None:
        validate_http_path("op", path)

    @pytest.mark.parametrize(
        ("path", "reason"),
        [
            ("users", "must start with '/'"),
            ("/a//b", "consecutive slashes"),
            ("/users/", "trailing slash"),
            ("/users?x=1", "invalid character"),
            ("/users/{id", "mismatched braces"),
            ("/users/{a b}", "invalid character"),
            ("/users/{a.b}", "malformed parameter"),
        ],
    )
    def test_invalid(self, path: str, reason: str) -> None:
        with pytest.raises(InvalidPathError, match=reason) as exc_info:
            validate_http_path("op", path)
        assert exc_info.value.code == "INVALID_PATH"


class TestDuplicateRoutes:
    def test_parameter_names_are_normalized(self) -> None:
        assert normalize_path("/users/{id}/posts/{post_id}") == "/users/{*}/posts/{*}"
        with pytest.raises(DuplicateRouteError) as exc_info:
            check_duplicate_routes(
                [
                    ("get_user", HttpMethod.GET, "/users/{id}"),
                    ("fetch_user", HttpMethod.GET, "/users/{user_id}"),
                ]
            )
        err = exc_info.value
        assert (err.first, err.second) == ("get_user", "fetch_user")
        assert "Hint:" in str(err)

    def test_different_methods_coexist(self) -> None:
        check_duplicate_routes(
            [
                ("get_user", HttpMethod.GET, "/users/{id}"),
                ("delete_user", HttpMethod.DELETE, "/users/{id}"),
            ]
        )

    def test_path_param_names(self) -> None:
        assert path_param_names("/orgs/{org}/users/{id}") == ["org", "id"]


class TestGraphQLKind:
    @pytest.mark.parametrize(
        "name", ["get_user", "list_users", "count_users", "exists_user", "is_admin", "has_role"]
    )
    def test_queries(self, name: str) -> None:
        assert graphql_kind(name) is GraphQLKind.QUERY
        assert is_query_operation(name)

    @pytest.mark.parametrize("name", ["create_user", "update_user", "frobnicate"])
    def test_mutations(self, name: str) -> None:
        assert graphql_kind(name) is GraphQLKind.MUTATION

    def test_independent_of_http_verb(self) -> None:
        # DELETE over HTTP, mutation in GraphQL; count_ is a query with a POST route.
        assert graphql_kind("delete_user") is GraphQLKind.MUTATION
        assert infer_http_method(_op("count_users")) is HttpMethod.POST
        assert graphql_kind("count_users") is GraphQLKind.QUERY


class TestHttpFacts:
    def test_facts(self) -> None:
        facts = http_facts(_op("get_user", _p("user_id"), _p("verbose", "bool")))
        assert facts.method is HttpMethod.GET
        assert facts.path == "/users/{id}"
        assert facts.placements == (("user_id", Location.PATH), ("verbose", Location.QUERY))
        assert facts.graphql is GraphQLKind.QUERY
