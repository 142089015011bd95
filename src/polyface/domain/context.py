"""Request context handed to operations that ask for one.

A parameter annotated ``polyface.Context`` (or a bare ``Context`` when no
operation in the service uses the qualified spelling) is filled by the
transport instead of the caller.  It never appears in an external schema.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

REQUEST_ID_HEADER = "x-request-id"
ENV_PREFIX = "env:"


@dataclass
class Context:
    """Transport metadata for one call.

    HTTP transports store headers in :attr:`metadata`; the CLI stores
    environment variables under ``env:NAME`` keys.
    """

    metadata: dict[str, str] = field(default_factory=dict)
    user_id: str | None = None
    request_id: str | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Context:
        ctx = cls(metadata=dict(headers))
        ctx.request_id = ctx.header(REQUEST_ID_HEADER)
        return ctx

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> Context:
        return cls(metadata={f"{ENV_PREFIX}{k}": v for k, v in environ.items()})

    def get(self, key: str) -> str | None:
        return self.metadata.get(key)

    def set(self, key: str, value: str) -> None:
        self.metadata[key] = value

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.metadata.items():
            if key.lower() == wanted:
                return value
        return None

    def authorization(self) -> str | None:
        return self.header("authorization")

    def content_type(self) -> str | None:
        return self.header("content-type")

    def env(self, name: str) -> str | None:
        return self.get(f"{ENV_PREFIX}{name}")
