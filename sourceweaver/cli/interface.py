# sourceweaver/cli/interface.py
import io
import logging as stdlib_logging
import sys
from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator

import click
from click_option_group import optgroup
from rich.console import Console as RichConsole
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
import structlog

from sourceweaver import __version__ as app_version
from sourceweaver.cli.console_output import print_run_summary, print_warnings
from sourceweaver.config.loader import load_and_merge_configs, resolve_file_settings
from sourceweaver.config.settings import BundleConfig
from sourceweaver.core.discovery import discover
from sourceweaver.core.discovery.models import ClassifiedFile, Diagnostics
from sourceweaver.core.markdown import BundleStats, render_bundle
from sourceweaver.core.output import copy_to_clipboard, open_output_file, write_to_stdout
from sourceweaver.exceptions import ConfigError, SourceWeaverError
from sourceweaver.logging_setup import APP_LOGGER_NAME, configure_logging, level_for_verbosity

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_WARNINGS = 1
EXIT_FATAL = 2

# options whose command-line values are appended to the configured ones.
_ACCUMULATING_OPTIONS = ("exclude_patterns", "ignore_files")


def _build_config(ctx: click.Context, cli_params: Dict[str, Any]) -> BundleConfig:
    # layers dataclass defaults, config files, the selected profile and explicit cli flags.
    root = (cli_params.get("root") or Path.cwd()).expanduser()
    raw_configs_from_toml_files = load_and_merge_configs(root)
    effective_options = resolve_file_settings(raw_configs_from_toml_files, cli_params.get("profile"))

    for fd in dataclass_fields(BundleConfig):
        if fd.name not in cli_params:
            continue
        if ctx.get_parameter_source(fd.name) != click.core.ParameterSource.COMMANDLINE:
            continue
        value = cli_params[fd.name]
        if fd.name in _ACCUMULATING_OPTIONS:
            effective_options[fd.name] = list(effective_options.get(fd.name, [])) + list(value)
        else:
            effective_options[fd.name] = value

    output_on_cli = ctx.get_parameter_source("output_file") == click.core.ParameterSource.COMMANDLINE
    clipboard_on_cli = ctx.get_parameter_source("clipboard") == click.core.ParameterSource.COMMANDLINE
    if output_on_cli and clipboard_on_cli and cli_params.get("clipboard"):
        raise click.UsageError("-o/--output and -c/--clipboard cannot be used together.", ctx=ctx)
    # an explicit destination on the command line replaces a configured one.
    if output_on_cli:
        effective_options["clipboard"] = False
    elif clipboard_on_cli:
        effective_options["output_file"] = None
    if effective_options.get("output_file") and effective_options.get("clipboard"):
        raise ConfigError("'output_file' and 'clipboard' cannot both be configured.")

    effective_options["root"] = root
    return BundleConfig(**effective_options)


def _progress_disabled() -> bool:
    app_log_level = stdlib_logging.getLogger(APP_LOGGER_NAME).getEffectiveLevel()
    return app_log_level < stdlib_logging.INFO or not sys.stderr.isatty()


def _tracked(files: Iterable[ClassifiedFile], progress: Progress, task_id) -> Iterator[ClassifiedFile]:
    for classified in files:
        progress.update(task_id, advance=1, description=f"bundling {classified.relative_path}")
        yield classified


def _run_bundle_flow(config: BundleConfig) -> int:
    log.info("bundle_run_started", root=str(config.root))
    click.echo(f"Scanning directory: {config.root}", err=True)

    diagnostics = Diagnostics()
    files = discover(config.root, config.discovery_options(), diagnostics)
    stderr_console = RichConsole(file=sys.stderr)

    with Progress(
        SpinnerColumn(), TextColumn("[bold blue]{task.description}"), BarColumn(),
        transient=True, disable=_progress_disabled(), console=stderr_console,
    ) as progress:
        task_id = progress.add_task("discovering files...", total=None)
        tracked_files = _tracked(files, progress, task_id)

        if config.output_file is not None:
            with open_output_file(config.output_file) as out:
                stats = render_bundle(tracked_files, out, diagnostics)
            destination = str(config.output_file)
        elif config.clipboard:
            buffer = io.StringIO()
            stats = render_bundle(tracked_files, buffer, diagnostics)
            destination = "clipboard"
        else:
            stats = render_bundle(tracked_files, sys.stdout, diagnostics)
            sys.stdout.flush()
            destination = "stdout"

    if config.clipboard:
        if copy_to_clipboard(buffer.getvalue()):
            click.echo("Info: Output copied to clipboard.", err=True)
        else:
            click.echo("Info: Clipboard copy failed. Outputting to stdout instead.", err=True)
            write_to_stdout(buffer.getvalue())
            destination = "stdout (clipboard unavailable)"
    elif config.output_file is not None:
        click.echo(f"Info: Output written to: {config.output_file}", err=True)

    _report(config, stats, diagnostics, destination)
    return EXIT_WARNINGS if diagnostics.has_warnings else EXIT_OK


def _report(config: BundleConfig, stats: BundleStats, diagnostics: Diagnostics, destination: str):
    if config.console_show_summary:
        print_run_summary(stats, destination)
    print_warnings(diagnostics)


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@optgroup.group("Input Options", help="Choose the tree to bundle.")
@optgroup.option("-r", "--root", "root", type=click.Path(file_okay=True, path_type=Path), default=None, help="Directory to scan. Default: current directory.")
@optgroup.group("Filtering Options", help="Control which files are bundled.")
@optgroup.option("--hidden", "hidden", is_flag=True, default=False, help="Include hidden files and directories (those starting with '.').")
@optgroup.option("--no-ignore", "no_ignore", is_flag=True, default=False, help="Do not read .gitignore, .ignore, global or repository exclude files.")
@optgroup.option("--no-global-ignore", "no_global_ignore", is_flag=True, default=False, help="Do not read the user-global git ignore file.")
@optgroup.option("--no-repo-exclude", "no_repo_exclude", is_flag=True, default=False, help="Do not read the repository's .git/info/exclude.")
@optgroup.option("--ignore-file", "ignore_files", multiple=True, type=click.Path(dir_okay=False, path_type=Path), help="Extra gitignore-style file(s), applied like the global ignore file.")
@optgroup.option("-e", "--exclude", "exclude_patterns", multiple=True, metavar="PATTERN", help="Gitignore-style pattern(s) to exclude; highest precedence.")
@optgroup.option("--include-lock-files", "include_lock_files", is_flag=True, default=False, help="Bundle lock files (Cargo.lock, package-lock.json, ...).")
@optgroup.option("--follow-symlinks/--no-follow-symlinks", "follow_symlinks", default=True, help="Descend into symlinked directories. Default: on.")
@optgroup.option("-j", "--jobs", "jobs", type=click.IntRange(min=1), default=1, help="Worker threads for file classification. Default: 1.")
@optgroup.group("Output Destination", help="Where to write the bundle (one of). Default: stdout.")
@optgroup.option("-o", "--output", "output_file", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Path of the Markdown file to write.")
@optgroup.option("-c", "--clipboard", "clipboard", is_flag=True, default=False, help="Copy the bundle to the system clipboard.")
@optgroup.group("Application Behavior", help="Configuration profiles, console feedback and logging.")
@optgroup.option("--summary/--no-summary", "console_show_summary", default=True, help="Print a file count summary on stderr. Default: on.")
@optgroup.option("--profile", "profile", default=None, help="Load a profile from config file(s).")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--force-json-logs", "force_json_logs_cli", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(version=app_version, prog_name="sourceweaver", help="Show version and exit.")
@click.pass_context
def main_cli(ctx: click.Context, **cli_params: Any):
    """sourceweaver: bundle the source files of a directory tree into one
    Markdown document, honoring .gitignore and friends."""

    log_level = level_for_verbosity(cli_params.get("verbosity_level", 0))
    configure_logging(log_level_str=log_level, force_json_logs=cli_params.get("force_json_logs_cli", False))

    log.debug("cli_command_invoked", params=cli_params)

    try:
        config = _build_config(ctx, cli_params)
        exit_code = _run_bundle_flow(config)
    except click.exceptions.Exit as e: raise e
    except (ConfigError, SourceWeaverError) as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(EXIT_FATAL)
    except click.ClickException as e:
        log.error("click_exception_in_cli", error_type=type(e).__name__, message=str(e))
        e.show(); sys.exit(e.exit_code)
    except Exception as e:
        log.critical("unexpected_critical_error_in_cli", message=str(e), exc_info=True)
        click.secho(f"Unexpected critical error: {e}. Please report this.", fg="red", err=True)
        sys.exit(EXIT_FATAL)

    sys.exit(exit_code)
