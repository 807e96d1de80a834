"""
apgcheck CLI
Validate an APG package archive before it is handed to the installer.
"""

from __future__ import annotations

__author__ = "TheMomer, AnmiTaliDev"
__copyright__ = "2026 TheMomer, AnmiTaliDev"
__license__ = "GPL-3.0"

import logging
import sys

import click

from apgcheck import __version__
from apgcheck._models import CheckReport
from apgcheck._quarantine import check_archive
from apgcheck._validator import SCHEMAS


class Reporter:
    """Prints check results.

    *color* is passed straight to ``click.echo``: ``False`` strips styling,
    ``None`` leaves the decision to click.
    """

    def __init__(self, color: bool | None) -> None:
        self.color = color

    def _echo(self, message: str, fg: str | None = None, err: bool = False) -> None:
        text = click.style(message, fg=fg) if fg else message
        click.echo(text, err=err, color=self.color)

    def error(self, message: str) -> None:
        self._echo(message, fg="red")

    def warning(self, message: str) -> None:
        self._echo(message, fg="yellow", err=True)

    def success(self, message: str) -> None:
        self._echo(message, fg="green")

    def report(self, report: CheckReport) -> int:
        """Print *report* and return the process exit code."""
        for skipped in report.extraction.skipped:
            self.warning(str(skipped))

        if not report.extraction.ok:
            self.error(str(report.extraction.reason))
        elif report.validation is not None:
            validation = report.validation
            if validation.structural_error is not None:
                self.error(f"File error: {validation.structural_error}")
            elif validation.schema_error is not None:
                self.error(f"JSON error: {validation.schema_error}")
            else:
                self.success("The file specified is the correct apg")

        if report.cleanup_error:
            self.warning(report.cleanup_error)

        return 0 if report.ok else 1


@click.command()
@click.option(
    "-a",
    "--apgfile",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to apg file.",
)
@click.option(
    "-f",
    "--format-version",
    type=click.Choice([str(v) for v in sorted(SCHEMAS)]),
    default="1",
    show_default=True,
    help="Metadata format version to validate against.",
)
@click.option("--no-color", is_flag=True, help="Disable coloured output.")
@click.option("-v", "--verbose", is_flag=True, help="Log extraction details to stderr.")
@click.version_option(version=__version__, prog_name="apgcheck")
def cli(apgfile: str, format_version: str, no_color: bool, verbose: bool) -> None:
    """apgcheck - APG file validator."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    # None lets click strip ANSI codes when stdout is not a terminal.
    reporter = Reporter(color=False if no_color else None)
    report = check_archive(apgfile, int(format_version))
    sys.exit(reporter.report(report))


def main():
    """Main entry point for the apgcheck CLI."""
    cli()


if __name__ == "__main__":
    main()
