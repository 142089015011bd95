"""AppContext — shared Click context for all commands.

Created once by the root group and handed to subcommands through
``@click.pass_obj``.  Owns logging setup, the lazily built EmitService and
result emission (stdout/stderr routing and exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from polyface.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from polyface.config.settings import PolyfaceSettings
    from polyface.services.emit import EmitService
    from polyface.services.result import ServiceResult


class AppContext:
    """Subcommands reach settings and services through this object.

    The EmitService (and with it plugin discovery) is built on first use,
    so ``--help`` and ``--version`` never load entry points.
    """

    def __init__(self, settings: PolyfaceSettings) -> None:
        self.settings = settings
        self._service: EmitService | None = None

        from polyface.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from polyface.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def service(self) -> EmitService:
        if self._service is None:
            from polyface.services.emit import EmitService

            self._service = EmitService(self.settings)
        return self._service

    def emit(self, result: ServiceResult) -> None:
        """Print *result* and set the exit status.

        * Success: stdout, returns normally.  Warnings go to stderr so piped
          artifacts stay clean.
        * Failure: stderr, exit code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
