"""Pluggy hook specifications for polyface artifact emission."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from polyface.domain.descriptors import ServiceDescriptor
    from polyface.services.emit import EmitOptions

hookspec = pluggy.HookspecMarker("polyface")

type Emitter = Callable[[ServiceDescriptor, EmitOptions], str]


class PolyfaceHookSpec:
    """Hook specifications for the polyface plugin system."""

    @hookspec
    def register_emitters(self) -> dict[str, Emitter] | None:
        """Return format name -> emitter mappings.

        An emitter receives the service descriptor and the resolved
        :class:`~polyface.services.emit.EmitOptions` and returns the
        artifact text.  Plugins registered later win on name clashes, so a
        plugin can replace a built-in format.
        """

    @hookspec
    def post_emit(self, format: str, service: ServiceDescriptor, artifact: str) -> None:
        """Called after an artifact has been rendered (and written, with ``-o``)."""
