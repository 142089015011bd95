"""EmitService — the operations behind the ``polyface`` CLI and MCP adapter.

Loads a service (from a ``module:attr`` target or a service file), renders
artifacts through the plugin-registered emitters, runs the build-time
checks, composes OpenAPI documents and dispatches single calls.

INVARIANT: every public method returns a :class:`ServiceResult`.  Contract
errors become ``ok=False`` results carrying the error's ``code``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jinja2 import TemplateError

from polyface.domain.exceptions import (
    ContractError,
    DescriptorLoadError,
    DuplicateOperationError,
    PolyfaceError,
    StreamingUnsupportedError,
)
from polyface.domain.naming import to_camel, to_snake
from polyface.domain.shapes import describe_return
from polyface.domain.types import Surface
from polyface.infrastructure.output import write_artifact
from polyface.services.analysis import describe_service, load_service_file, resolve_target
from polyface.services.composer import ContractBuilder
from polyface.services.conventions import http_facts
from polyface.services.dispatch import (
    AsyncHandling,
    DispatchTable,
    StreamPolicy,
    external_names,
)
from polyface.services.result import ServiceError, ServiceResult
from polyface.services.telemetry import trace_span, traced
from polyface.services.validation import diff_schema

if TYPE_CHECKING:
    from polyface.config.settings import PolyfaceSettings
    from polyface.domain.descriptors import ServiceDescriptor
    from polyface.plugins.hookspecs import Emitter
    from polyface.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

CAT_ROUTES = "http_routes"
CAT_STREAMS = "stream_support"
CAT_NAMES = "external_names"
CAT_DISPATCH = "dispatch"
CAT_DRIFT = "schema_drift"

# Default file name suffix per format when writing into ``[output] directory``.
FILE_SUFFIXES: dict[str, str] = {
    "openapi": "openapi.json",
    "graphql": "graphql",
    "openrpc": "openrpc.json",
    "jsonschema": "schema.json",
    "markdown": "md",
    "proto": "proto",
    "smithy": "smithy",
    "thrift": "thrift",
    "capnp": "capnp",
    "mcp-tools": "tools.json",
    "cli-shape": "cli.json",
    "asyncapi": "asyncapi.json",
    "connect": "connect.proto",
}

# Checked-in artifact extension -> format, for ``check --against``.
FORMAT_BY_SUFFIX: dict[str, str] = {
    ".proto": "proto",
    ".smithy": "smithy",
    ".thrift": "thrift",
    ".capnp": "capnp",
    ".graphql": "graphql",
    ".gql": "graphql",
    ".md": "markdown",
}

# Surfaces that refuse streams unless told to materialise them.
STREAMLESS_SURFACES: tuple[Surface, ...] = (
    Surface.GRAPHQL,
    Surface.JSONRPC,
    Surface.WS,
    Surface.MCP,
    Surface.OPENRPC,
    Surface.JSONSCHEMA,
    Surface.PROTO,
    Surface.SMITHY,
    Surface.THRIFT,
    Surface.CAPNP,
)


class UnknownFormatError(ContractError):
    code = "UNKNOWN_FORMAT"

    def __init__(self, name: str, known: Sequence[str]) -> None:
        self.name = name
        super().__init__(f"Unknown format '{name}' (known: {', '.join(sorted(known))})")


class TemplateRenderError(ContractError):
    code = "TEMPLATE_ERROR"


@dataclass(frozen=True)
class EmitOptions:
    """Everything an emitter may need beyond the descriptor."""

    title: str | None = None
    version: str | None = None
    description: str | None = None
    prefix: str = ""
    namespace: str | None = None
    materialize_streams: bool = False
    package: str | None = None
    idl_namespace: str | None = None
    capnp_id: str | None = None
    ws_server: str = "ws://localhost:8080"
    ws_path: str = "/ws"
    project_root: Path | None = None
    template_dir: Path | None = None

    @classmethod
    def from_settings(cls, settings: PolyfaceSettings) -> EmitOptions:
        templates = settings.output.templates
        return cls(
            title=settings.service.title,
            version=settings.service.version,
            description=settings.service.description,
            prefix=settings.http.prefix,
            namespace=settings.mcp.namespace,
            materialize_streams=settings.mcp.materialize_streams,
            package=settings.idl.package,
            idl_namespace=settings.idl.namespace,
            capnp_id=settings.idl.capnp_id,
            ws_server=settings.ws.server,
            ws_path=settings.ws.path,
            project_root=settings.project_root,
            template_dir=settings.resolve(templates) if templates else None,
        )


@dataclass(frozen=True)
class LoadedService:
    descriptor: ServiceDescriptor
    instance: Any | None = None


def _issue(
    category: str,
    severity: str,
    code: str,
    message: str,
    operation: str | None = None,
) -> dict[str, Any]:
    issue: dict[str, Any] = {
        "category": category,
        "severity": severity,
        "code": code,
        "message": message,
    }
    if operation is not None:
        issue["operation"] = operation
    return issue


def _failure(op: str, exc: Exception) -> ServiceResult:
    code = getattr(exc, "code", "ERROR")
    logger.debug("%s failed with %s: %s", op, code, exc)
    return ServiceResult(ok=False, op=op, error=ServiceError(code=code, message=str(exc)))


class EmitService:
    """Usage::

    svc = EmitService(settings)
    result = svc.emit("openapi", target="app.services:Users")
    print(result.data["artifact"])
    """

    def __init__(self, settings: PolyfaceSettings, *, plugins: PluginManager | None = None) -> None:
        self._settings = settings
        self._plugins = plugins

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager, loaded on first use."""
        if self._plugins is None:
            from polyface.plugins.manager import PluginManager

            self._plugins = PluginManager()
        if not self._plugins.is_loaded:
            self._plugins.discover_and_load(disabled=self._settings.plugins.disabled)
        return self._plugins

    def formats(self) -> list[str]:
        return sorted(self.plugins.emitters())

    def options(self) -> EmitOptions:
        return EmitOptions.from_settings(self._settings)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, *, target: str | None = None, file: str | Path | None = None) -> LoadedService:
        """Resolve the service: CLI target, CLI file, then ``[service]`` config.

        Raises :class:`DescriptorLoadError` when nothing is configured.
        """
        cfg = self._settings.service
        if target is None and file is None:
            target = cfg.target
            file = self._settings.resolve(cfg.file) if cfg.file else None
        if target:
            instance = resolve_target(target)
            return LoadedService(describe_service(instance), instance)
        if file:
            return LoadedService(load_service_file(Path(file)))
        raise DescriptorLoadError(
            "No service given: pass --target/--file or set [service] target in polyface.toml"
        )

    def _emitter(self, fmt: str) -> Emitter:
        emitters = self.plugins.emitters()
        if fmt not in emitters:
            raise UnknownFormatError(fmt, list(emitters))
        return emitters[fmt]

    def render(self, fmt: str, service: ServiceDescriptor) -> str:
        """Render *fmt* for *service*.  Raises on contract errors."""
        emitter = self._emitter(fmt)
        with trace_span(f"render.{fmt}") as span:
            try:
                artifact = emitter(service, self.options())
            except TemplateError as exc:
                raise TemplateRenderError(f"Template error in {fmt}: {exc}") from exc
            if span is not None:
                span.annotate("bytes", len(artifact))
        return artifact

    def _default_output(self, fmt: str, service: ServiceDescriptor) -> Path | None:
        directory = self._settings.output.directory
        if directory is None:
            return None
        suffix = FILE_SUFFIXES.get(fmt, fmt)
        return self._settings.resolve(directory) / f"{to_snake(service.name)}.{suffix}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @traced
    def emit(
        self,
        fmt: str,
        *,
        target: str | None = None,
        file: str | Path | None = None,
        output: Path | None = None,
    ) -> ServiceResult:
        """Render one artifact; write it when *output* or ``[output] directory`` is set."""
        op = "emit"
        try:
            with trace_span("load"):
                loaded = self.load(target=target, file=file)
            artifact = self.render(fmt, loaded.descriptor)
        except PolyfaceError as exc:
            return _failure(op, exc)

        service = loaded.descriptor
        data: dict[str, Any] = {"format": fmt, "service": service.name, "artifact": artifact}
        destination = output or self._default_output(fmt, service)
        if destination is not None:
            try:
                data["path"] = str(write_artifact(destination, artifact))
            except OSError as exc:
                return ServiceResult(
                    ok=False,
                    op=op,
                    error=ServiceError(
                        code="WRITE_FAILED", message=f"Cannot write {destination}: {exc}"
                    ),
                )

        warnings = self.plugins.notify_emit(fmt, service, artifact)
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    @traced
    def inspect(
        self, *, target: str | None = None, file: str | Path | None = None
    ) -> ServiceResult:
        """Convention facts for every operation, one row each."""
        op = "inspect"
        try:
            service = self.load(target=target, file=file).descriptor
        except PolyfaceError as exc:
            return _failure(op, exc)

        prefix = self._settings.http.prefix
        rows: list[dict[str, Any]] = []
        for operation in service:
            facts = http_facts(operation, prefix=prefix)
            on_http = not operation.skipped_on(Surface.HTTP)
            rows.append(
                {
                    "name": operation.name,
                    "method": str(facts.method) if on_http else None,
                    "path": facts.path if on_http else None,
                    "placements": [f"{key}:{loc}" for key, loc in facts.placements],
                    "graphql": str(facts.graphql),
                    "returns": describe_return(operation.return_shape),
                    "async": operation.is_async,
                    "hidden": operation.hidden,
                    "skip": sorted(operation.skip),
                }
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"service": service.name, "operations": rows, "count": len(rows)},
        )

    @traced
    def check(
        self,
        *,
        target: str | None = None,
        file: str | Path | None = None,
        against: Path | None = None,
        fmt: str | None = None,
    ) -> ServiceResult:
        """Run every build-time check; with *against*, also diff a checked-in artifact."""
        op = "check"
        try:
            loaded = self.load(target=target, file=file)
        except PolyfaceError as exc:
            return _failure(op, exc)

        service = loaded.descriptor
        issues: list[dict[str, Any]] = []
        with trace_span("http_routes"):
            issues.extend(self._check_routes(service))
        with trace_span("stream_support"):
            issues.extend(self._check_streams(service))
        with trace_span("external_names"):
            issues.extend(self._check_names(service))
        if loaded.instance is not None:
            with trace_span("dispatch"):
                issues.extend(self._check_dispatch(service, loaded.instance))
        if against is not None:
            with trace_span("schema_drift"):
                try:
                    issues.extend(self._check_drift(service, against, fmt))
                except PolyfaceError as exc:
                    return _failure(op, exc)

        data = {"service": service.name, "issues": issues, "count": len(issues)}
        errors = [i for i in issues if i["severity"] == SEVERITY_ERROR]
        if not errors:
            return ServiceResult(ok=True, op=op, data=data)
        return ServiceResult(
            ok=False,
            op=op,
            data=data,
            error=ServiceError(
                code=errors[0]["code"],
                message=f"{len(errors)} error(s) found",
                detail={"errors": len(errors), "warnings": len(issues) - len(errors)},
            ),
        )

    def _check_routes(self, service: ServiceDescriptor) -> list[dict[str, Any]]:
        from polyface.surfaces.http import build_routes

        try:
            build_routes(service, prefix=self._settings.http.prefix)
        except ContractError as exc:
            operation = getattr(exc, "operation", None)
            return [_issue(CAT_ROUTES, SEVERITY_ERROR, exc.code, str(exc), operation)]
        return []

    def _check_streams(self, service: ServiceDescriptor) -> list[dict[str, Any]]:
        from polyface.surfaces._shared import ensure_no_streams

        materialize = self._settings.mcp.materialize_streams
        issues: list[dict[str, Any]] = []
        for surface in STREAMLESS_SURFACES:
            try:
                ensure_no_streams(service, surface, materialize=materialize)
            except StreamingUnsupportedError as exc:
                issues.append(
                    _issue(CAT_STREAMS, SEVERITY_WARNING, exc.code, str(exc), exc.operation)
                )
        return issues

    def _check_names(self, service: ServiceDescriptor) -> list[dict[str, Any]]:
        """camelCase surfaces must not fold two operations into one name."""
        issues: list[dict[str, Any]] = []
        for surface in (Surface.GRAPHQL, Surface.OPENRPC):
            try:
                external_names(service.for_surface(surface), to_camel)
            except DuplicateOperationError as exc:
                message = f"{surface}: {exc}"
                issues.append(_issue(CAT_NAMES, SEVERITY_ERROR, exc.code, message, exc.operation))
        return issues

    def _check_dispatch(self, service: ServiceDescriptor, instance: Any) -> list[dict[str, Any]]:
        try:
            DispatchTable.build(
                service, instance, surface=Surface.JSONRPC, streams=StreamPolicy.MATERIALIZE
            )
        except ContractError as exc:
            return [_issue(CAT_DISPATCH, SEVERITY_ERROR, exc.code, str(exc))]
        return []

    def _check_drift(
        self, service: ServiceDescriptor, against: Path, fmt: str | None
    ) -> list[dict[str, Any]]:
        fmt = fmt or FORMAT_BY_SUFFIX.get(against.suffix)
        if fmt is None:
            known = list(FORMAT_BY_SUFFIX.values())
            raise UnknownFormatError(against.suffix or against.name, known)
        try:
            expected = against.read_text(encoding="utf-8")
        except OSError as exc:
            raise DescriptorLoadError(f"Cannot read {against}: {exc}") from exc
        diff = diff_schema(fmt, expected, self.render(fmt, service))
        if not diff.has_differences:
            return []
        return [_issue(CAT_DRIFT, SEVERITY_ERROR, "SCHEMA_DRIFT", str(diff))]

    @traced
    def compose(
        self,
        documents: Sequence[Path],
        *,
        title: str | None = None,
        version: str | None = None,
        output: Path | None = None,
    ) -> ServiceResult:
        """Merge OpenAPI JSON documents; conflicting schemas fail the merge."""
        op = "compose"
        builder = ContractBuilder()
        builder.title(title or self._settings.service.title or "API")
        builder.version(version or self._settings.service.version)
        if self._settings.service.description:
            builder.description(self._settings.service.description)
        try:
            for path in documents:
                with trace_span(f"merge.{path.name}"):
                    builder.merge(self._read_document(path))
            contract = builder.contract()
        except PolyfaceError as exc:
            return _failure(op, exc)

        artifact = json.dumps(contract.to_document(), indent=2) + "\n"
        data: dict[str, Any] = {
            "format": "openapi",
            "artifact": artifact,
            "paths": len(contract.paths),
            "schemas": len(contract.schemas),
        }
        if output is not None:
            try:
                data["path"] = str(write_artifact(output, artifact))
            except OSError as exc:
                return ServiceResult(
                    ok=False,
                    op=op,
                    error=ServiceError(
                        code="WRITE_FAILED", message=f"Cannot write {output}: {exc}"
                    ),
                )
        return ServiceResult(ok=True, op=op, data=data)

    @staticmethod
    def _read_document(path: Path) -> dict[str, Any]:
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise DescriptorLoadError(f"Cannot read OpenAPI document {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise DescriptorLoadError(f"{path} is not a JSON object")
        return document

    @traced
    def call(
        self,
        operation: str,
        params: str | None = None,
        *,
        target: str | None = None,
    ) -> ServiceResult:
        """Dispatch one operation through the JSON-RPC surface.

        *params* is JSON text: an object of named arguments or an array of
        positional ones.
        """
        from polyface.surfaces.jsonrpc import JsonRpcSurface

        op = "call"
        try:
            decoded: Any = json.loads(params) if params else {}
        except json.JSONDecodeError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code="INVALID_PARAMS", message=f"--params is not JSON: {exc}"),
            )
        try:
            loaded = self.load(target=target)
            if loaded.instance is None:
                raise DescriptorLoadError("call needs a Python target (--target module:attr)")
            rpc = JsonRpcSurface(
                loaded.descriptor,
                loaded.instance,
                materialize_streams=True,
                handling=AsyncHandling.BLOCK_ON,
            )
        except PolyfaceError as exc:
            return _failure(op, exc)

        with trace_span(f"dispatch.{operation}"):
            reply = rpc.handle({"jsonrpc": "2.0", "method": operation, "params": decoded, "id": 1})
        if not isinstance(reply, dict):
            raise TypeError(f"Expected one JSON-RPC reply, got {type(reply).__name__}")
        if "error" in reply:
            return ServiceResult(
                ok=False,
                op=op,
                data={"operation": operation},
                error=ServiceError(
                    code="OPERATION_FAILED",
                    message=reply["error"]["message"],
                    detail={"jsonrpc_code": reply["error"]["code"]},
                ),
            )
        return ServiceResult(
            ok=True, op=op, data={"operation": operation, "result": reply["result"]}
        )
