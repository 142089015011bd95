"""Tests for the AsyncAPI description of the WebSocket surface."""

from __future__ import annotations

import json

import pytest

from polyface.domain.descriptors import ServiceDescriptor
from polyface.domain.exceptions import StreamingUnsupportedError
from polyface.surfaces.asyncapi import ASYNCAPI_VERSION, asyncapi_document
from polyface.surfaces.ws import WsSurface, ws_operations
from sample_services import Calculator


class TestDocument:
    def test_header(self, calculator: ServiceDescriptor) -> None:
        doc = asyncapi_document(calculator)
        assert doc["asyncapi"] == ASYNCAPI_VERSION == "2.6.0"
        assert doc["info"] == {
            "title": "Calculator",
            "version": "1.0.0",
            "description": "Arithmetic.",
        }
        assert doc["servers"] == {"default": {"url": "ws://localhost:8080/ws", "protocol": "ws"}}

    def test_overrides(self, calculator: ServiceDescriptor) -> None:
        doc = asyncapi_document(
            calculator,
            title="Calc",
            version="2.0.0",
            server="wss://api.example.com/",
            path="/rpc",
        )
        assert doc["info"]["title"] == "Calc"
        assert doc["info"]["version"] == "2.0.0"
        assert doc["servers"]["default"]["url"] == "wss://api.example.com/rpc"

    def test_one_channel_per_socket_method(self, calculator: ServiceDescriptor) -> None:
        doc = asyncapi_document(calculator)
        socket = WsSurface(calculator, Calculator())
        assert list(doc["channels"]) == socket.methods() == ["add", "multiply", "divide"]

    def test_channel(self, users: ServiceDescriptor) -> None:
        channels = asyncapi_document(users)["channels"]
        assert channels["get_user"] == {
            "description": "Fetch one user.",
            "publish": {
                "operationId": "get_user",
                "message": {"$ref": "#/components/messages/GetUserRequest"},
            },
            "subscribe": {
                "message": {
                    "oneOf": [
                        {"$ref": "#/components/messages/GetUserResponse"},
                        {"$ref": "#/components/messages/Error"},
                    ]
                }
            },
        }
        assert channels["list_users"]["description"] == "list_users operation"

    def test_skipped_operations(self, users: ServiceDescriptor) -> None:
        channels = asyncapi_document(users)["channels"]
        assert list(channels) == [op.name for op in ws_operations(users)]
        assert "purge" in channels

    def test_messages(self, calculator: ServiceDescriptor) -> None:
        messages = asyncapi_document(calculator)["components"]["messages"]
        request = messages["AddRequest"]["payload"]
        assert request["required"] == ["method"]
        assert request["properties"]["method"] == {"type": "string", "const": "add"}
        assert request["properties"]["params"]["required"] == ["a", "b"]
        response = messages["AddResponse"]["payload"]
        assert response["properties"]["result"] == {"type": "integer"}
        assert response["required"] == ["result"]
        assert "id" in response["properties"]
        assert messages["Error"]["payload"]["required"] == ["error"]

    def test_unit_response_has_no_result(self, users: ServiceDescriptor) -> None:
        messages = asyncapi_document(users)["components"]["messages"]
        payload = messages["DeleteUserResponse"]["payload"]
        assert "result" not in payload["properties"]
        assert payload["required"] == []

    def test_streams(self, feed: ServiceDescriptor) -> None:
        with pytest.raises(StreamingUnsupportedError):
            asyncapi_document(feed)
        doc = asyncapi_document(feed, materialize_streams=True)
        result = doc["components"]["messages"]["StreamEventsResponse"]["payload"]
        assert result["properties"]["result"] == {"type": "array", "items": {"type": "integer"}}

    def test_json_safe(self, users: ServiceDescriptor) -> None:
        assert json.loads(json.dumps(asyncapi_document(users)))["asyncapi"] == "2.6.0"
