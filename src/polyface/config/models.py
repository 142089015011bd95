"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ``polyface.toml`` only contains
overrides.  A project usually needs nothing beyond ``[service] target``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

# --- polyface.toml sections ---


class ServiceConfig(BaseModel):
    """[service] section.

    ``target`` is a ``module:attr`` reference to the service class or
    instance; ``file`` is a TOML/JSON service description used instead.
    """

    model_config = {"frozen": True}

    target: str | None = None
    file: Path | None = None
    title: str | None = None
    version: str = "0.1.0"
    description: str | None = None


class HttpConfig(BaseModel):
    """[http] section."""

    model_config = {"frozen": True}

    prefix: str = ""


class McpConfig(BaseModel):
    """[mcp] section."""

    model_config = {"frozen": True}

    namespace: str | None = None
    materialize_streams: bool = False
    transport: str = "stdio"


class IdlConfig(BaseModel):
    """[idl] section."""

    model_config = {"frozen": True}

    package: str | None = None
    namespace: str | None = None
    capnp_id: str | None = None


class WsConfig(BaseModel):
    """[ws] section.  Describes where the WebSocket-RPC endpoint is served."""

    model_config = {"frozen": True}

    server: str = "ws://localhost:8080"
    path: str = "/ws"


class OutputConfig(BaseModel):
    """[output] section."""

    model_config = {"frozen": True}

    directory: Path | None = None
    templates: Path | None = None


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    disabled: list[str] = Field(default_factory=list)
