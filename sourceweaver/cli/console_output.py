# sourceweaver/cli/console_output.py
"""
Prints the run summary and the collected warnings to the console (stderr),
keeping stdout free for the bundle itself.
"""
from collections import Counter

import click
import structlog

from sourceweaver.core.discovery.models import Diagnostics
from sourceweaver.core.markdown import BundleStats

log = structlog.get_logger(__name__)

# warnings listed one by one before the rest are only counted.
MAX_LISTED_WARNINGS = 20


def print_run_summary(stats: BundleStats, destination: str):
    log.debug("console_summary_output_requested")
    click.secho("--- Bundle Summary ---", fg="cyan", err=True)
    click.echo(
        f"Files bundled: {stats.total} "
        f"({stats.text_files} text, {stats.binary_files} binary, {stats.failed_files} unreadable)",
        err=True,
    )
    click.echo(f"Destination: {destination}", err=True)


def print_warnings(diagnostics: Diagnostics):
    """Lists collected warnings on stderr, grouped by count per kind."""
    if not diagnostics.has_warnings:
        return
    counts = Counter(d.kind.value for d in diagnostics)
    breakdown = ", ".join(f"{count} {kind}" for kind, count in sorted(counts.items()))
    click.secho(f"\n{len(diagnostics.entries)} warning(s) during discovery ({breakdown}):", fg="yellow", err=True)
    for diagnostic in diagnostics.entries[:MAX_LISTED_WARNINGS]:
        click.echo(f"  {diagnostic}", err=True)
    hidden = len(diagnostics.entries) - MAX_LISTED_WARNINGS
    if hidden > 0:
        click.echo(f"  ... and {hidden} more (run with -v for details)", err=True)
