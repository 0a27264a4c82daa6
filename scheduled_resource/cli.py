"""
CLI interface for scheduled resources.

Usage:
    schedres init resource_schedule.toml
    schedres resources resource_schedule.toml
    schedres query resource_schedule.toml --t1 2026-10-19T09:00Z --blocks programs.json
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from .config import default_config_path, default_manifest, load_config, save_manifest
from .errors import ScheduleError, log_exception
from .helper import get_data_for_time_span, parse_time_param
from .logging_config import configure_quiet_mode, enable_debug_mode
from .providers import MemoryBlockProvider, ProviderRegistry, get_registry


# Configure quiet mode by default
# Set SCHEDRES_VERBOSE=1 to enable debug mode via environment
if os.environ.get("SCHEDRES_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from . import __version__
        print(f"schedres {__version__}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


app = typer.Typer(
    name="schedres",
    help="Timetable queries over scheduled resources.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
):
    """Timetable queries over scheduled resources."""


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

ManifestArgument = Annotated[
    Optional[Path],
    typer.Argument(
        envvar="SCHEDRES_CONFIG",
        help="Path to the TOML manifest (default: ./resource_schedule.toml)",
    )
]


def _fail(e: Exception, context: str):
    """Report an error to the user and exit with status 1."""
    log_exception(e, context=context)
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(1)


def _load_blocks_file(path: Path, registry: ProviderRegistry) -> None:
    """
    Register in-memory providers from a JSON file of the form
    ``{provider_id: {sub_id: [{"start_time": ..., "end_time": ..., ...}]}}``.
    """
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected an object of provider ids")
    for provider_id, table in data.items():
        if not isinstance(table, dict):
            raise ValueError(f"{path}: blocks for '{provider_id}' must be an object of sub-ids")
        provider = MemoryBlockProvider()
        for sub_id, items in table.items():
            records = []
            for item in items:
                item = dict(item)
                item["start_time"] = parse_time_param(item.get("start_time"), "start_time")
                item["end_time"] = parse_time_param(item.get("end_time"), "end_time")
                records.append(item)
            provider.add_blocks(sub_id, records)
        registry.register_provider_instance(provider_id, provider)


@app.command()
def init(
    manifest: ManifestArgument = None,
    force: Annotated[bool, typer.Option(
        "--force", "-f",
        help="Overwrite an existing manifest",
    )] = False,
):
    """Write a starter manifest with the day and hour ruler rows."""
    path = manifest or default_config_path()
    if path.exists() and not force:
        typer.echo(f"Error: {path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)
    save_manifest(default_manifest(), path)
    typer.echo(f"Wrote {path}")


@app.command()
def resources(
    manifest: ManifestArgument = None,
):
    """List configured resources by kind, in display order."""
    try:
        config = load_config(manifest)
    except ScheduleError as e:
        _fail(e, "schedres resources")

    by_kind = config.resources_by_kind()
    if _get_json_output():
        typer.echo(json.dumps({
            kind: [r.to_dict() for r in rsrcs] for kind, rsrcs in by_kind.items()
        }, indent=2))
        return

    for kind, rsrcs in by_kind.items():
        typer.echo(f"{kind} -> {config.provider_for_kind[kind]}")
        for rsrc in rsrcs:
            line = f"  {rsrc.tag}"
            if rsrc.label != rsrc.tag:
                line += f"  {rsrc.label}"
            typer.echo(line)


@app.command()
def query(
    manifest: ManifestArgument = None,
    t1: Annotated[Optional[str], typer.Option(
        "--t1",
        help="Interval start: epoch seconds, ISO datetime or 'now - 1 hour' (default: now, quarter hour)",
    )] = None,
    t2: Annotated[Optional[str], typer.Option(
        "--t2",
        help="Interval end (default: t1 + visibleTime)",
    )] = None,
    inc: Annotated[Optional[str], typer.Option(
        "--inc",
        help="Incremental update side: lo or hi",
    )] = None,
    blocks: Annotated[Optional[Path], typer.Option(
        "--blocks", "-b",
        help="JSON file of in-memory blocks keyed by provider id, then sub-id",
    )] = None,
    sequential: Annotated[bool, typer.Option(
        "--sequential",
        help="Query providers one at a time",
    )] = False,
):
    """Query all configured resources for blocks in a time interval; prints JSON."""
    registry = get_registry().copy()
    params: dict[str, Any] = {"t1": t1, "t2": t2, "inc": inc}
    try:
        if blocks is not None:
            _load_blocks_file(blocks, registry)
        config = load_config(manifest, registry)
        data = get_data_for_time_span(config, params, max_workers=1 if sequential else None)
    except (ScheduleError, ValueError, OSError) as e:
        _fail(e, "schedres query")

    typer.echo(json.dumps(data, indent=2))


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        log_path = log_exception(e, context="schedres CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
