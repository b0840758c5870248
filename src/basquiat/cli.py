"""Basquiat Command Line Interface.

Entry point for the basquiat CLI tool: load runs through the write
pipeline, settings validation, and member CRUD.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from basquiat import __version__
from basquiat.contracts import ConfigurationError, DrainResult, PersistenceFailure, WriteTarget
from basquiat.core.config import BasquiatSettings, DatabaseSettings, PipelineConfig, load_settings

if TYPE_CHECKING:
    from basquiat.persistence import MemberRepository, MemberService

# Exit codes
EXIT_DRAINED = 0
EXIT_DEADLINE_EXCEEDED = 1
EXIT_CONFIGURATION_ERROR = 2

app = typer.Typer(
    name="basquiat",
    help="Basquiat: member service with a bounded-concurrency write pipeline.",
    no_args_is_help=True,
)
members_app = typer.Typer(help="Create, read, update and delete members.", no_args_is_help=True)
app.add_typer(members_app, name="members")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"basquiat version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from a .env file.

    Raises:
        typer.Exit: If an explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(f"Error: .env file not found: {env_file}", fg=typer.colors.RED, err=True)
            raise typer.Exit(EXIT_CONFIGURATION_ERROR)
        return load_dotenv(env_file, override=False)
    return load_dotenv(override=False)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs.",
    ),
) -> None:
    """Basquiat: member service with a bounded-concurrency write pipeline."""
    from basquiat.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")
    ctx.obj = {"verbose": verbose, "json_logs": json_logs}

    if not no_dotenv:
        _load_dotenv(env_file=env_file)


def _format_validation_error(
    title: str,
    message: str,
    hint: str | None = None,
    details: list[str] | None = None,
) -> None:
    """Display a formatted validation error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    console = Console(stderr=True)
    content = Text()
    content.append(message, style="white")
    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")
    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")
    console.print(Panel(content, title=f"[red bold]{title}[/]", border_style="red"))


def _load_or_exit(settings: str) -> BasquiatSettings:
    settings_path = Path(settings).expanduser()
    try:
        return load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_validation_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if hasattr(e, "problem") else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None
    except FileNotFoundError:
        _format_validation_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None
    except ValidationError as e:
        details = [f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()]
        _format_validation_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and bounds (concurrency_bound and prefetch_window must be >= 1).",
        )
        raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None


def _open_member_repository(database: DatabaseSettings) -> MemberRepository:
    """Build the engine and ensure the member table exists, or exit with code 2."""
    from sqlalchemy.exc import SQLAlchemyError

    from basquiat.persistence import MemberRepository, create_member_engine

    try:
        repository = MemberRepository(create_member_engine(database))
        repository.create_schema()
    except SQLAlchemyError as e:
        _format_validation_error(
            title="Database Unavailable",
            message=f"Cannot open member database {database.url}",
            details=[str(e).splitlines()[0]],
            hint="Check database.url and that its directory exists and is writable.",
        )
        raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None
    return repository


def _apply_logging_settings(ctx: typer.Context, config: BasquiatSettings) -> None:
    """Let the settings file pick the log format unless CLI flags already did."""
    from basquiat.core.logging import configure_logging

    flags = ctx.obj or {}
    level = "DEBUG" if flags.get("verbose") else config.logging.level
    configure_logging(json_output=flags.get("json_logs") or config.logging.json_output, level=level)


def _print_result(result: DrainResult, stats: dict[str, Any], output_format: Literal["console", "json"]) -> None:
    if output_format == "json":
        typer.echo(json.dumps({**result.to_dict(), "stats": stats["pipeline_stats"]}, default=str))
        return
    status = "timed out" if result.timed_out else "drained"
    typer.echo(f"Pipeline {status} in {result.elapsed_seconds:.3f}s")
    typer.echo(f"  Submitted: {result.submitted}")
    typer.echo(f"  Succeeded: {result.succeeded}")
    typer.echo(f"  Failed:    {result.failed}")
    if result.timed_out:
        typer.echo(f"  In flight: {result.in_flight}")
    typer.echo(f"  Peak in flight: {stats['pipeline_stats']['peak_in_flight']}")


@app.command()
def load(
    ctx: typer.Context,
    settings: str = typer.Option(..., "--settings", "-s", help="Path to settings YAML file."),
    total: int | None = typer.Option(None, "--total", "-n", help="Number of create-requests (overrides source.total)."),
    target: WriteTarget | None = typer.Option(None, "--target", "-t", help="Write into the simulated store or the database."),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c", help="Override pipeline.concurrency_bound."),
    prefetch: int | None = typer.Option(None, "--prefetch", "-p", help="Override pipeline.prefetch_window."),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Override pipeline.worker_pool_size."),
    timeout: float | None = typer.Option(None, "--timeout", help="Override pipeline.drain_timeout_seconds."),
    delay_ms: float | None = typer.Option(None, "--delay-ms", help="Simulated store latency per create."),
    fail_every: int | None = typer.Option(None, "--fail-every", help="Simulated store fails every N-th request."),
    output_format: Literal["console", "json"] = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json'.",
    ),
) -> None:
    """Stream create-requests through the write pipeline and report the drain."""
    from basquiat.core.logging import get_logger
    from basquiat.pipeline import RequestSource, submit

    config = _load_or_exit(settings)
    _apply_logging_settings(ctx, config)
    logger = get_logger(__name__)

    overrides = {
        "concurrency_bound": concurrency,
        "prefetch_window": prefetch,
        "worker_pool_size": workers,
        "drain_timeout_seconds": timeout,
    }
    try:
        pipeline_config = PipelineConfig.from_dict(
            {**config.pipeline.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )
        source = RequestSource(
            config.source.total if total is None else total,
            prefix=config.source.prefix,
            start=config.source.start,
        )
    except ConfigurationError as e:
        _format_validation_error(title="Configuration Error", message=str(e))
        raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None

    write_target = target or config.target
    if write_target == WriteTarget.DATABASE:
        from basquiat.persistence import MemberService, check_worker_pool

        try:
            check_worker_pool(config.database, pipeline_config.worker_pool_size)
        except ConfigurationError as e:
            _format_validation_error(title="Configuration Error", message=str(e))
            raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None
        if pipeline_config.worker_pool_size is None:
            logger.warning("Database target without a worker pool; inserts will block the dispatcher")
        elif pipeline_config.worker_pool_size > config.database.pool_size:
            logger.warning(
                "Worker pool larger than the connection pool",
                worker_pool_size=pipeline_config.worker_pool_size,
                connection_pool_size=config.database.pool_size,
            )
        repository = _open_member_repository(config.database)
        engine = repository.engine
        handle = submit(source, pipeline_config, MemberService(repository))
        try:
            result = handle.join()
        finally:
            handle.close()
            if not handle.counters.in_flight:
                engine.dispose()
    else:
        from basquiat.testing import LatencyMemberStore

        store = LatencyMemberStore(
            delay_ms=config.simulation.delay_ms if delay_ms is None else delay_ms,
            fail_every=config.simulation.fail_every if fail_every is None else fail_every,
        )
        handle = submit(source, pipeline_config, store)
        try:
            result = handle.join()
        finally:
            handle.close()
            store.close(timeout=0 if handle.counters.in_flight else None)

    _print_result(result, handle.get_stats(), output_format)
    if result.timed_out:
        raise typer.Exit(EXIT_DEADLINE_EXCEEDED)


@app.command()
def validate(
    settings: str = typer.Option(..., "--settings", "-s", help="Path to settings YAML file."),
) -> None:
    """Validate settings without running anything."""
    from basquiat.persistence import check_worker_pool

    config = _load_or_exit(settings)
    pipeline = config.pipeline
    if config.target == WriteTarget.DATABASE:
        try:
            check_worker_pool(config.database, pipeline.worker_pool_size)
        except ConfigurationError as e:
            _format_validation_error(title="Configuration Error", message=str(e))
            raise typer.Exit(EXIT_CONFIGURATION_ERROR) from None
    typer.echo("✅ Settings valid!")
    typer.echo(f"  Target: {config.target}")
    typer.echo(f"  Requests: {config.source.total}")
    typer.echo(f"  Concurrency bound: {pipeline.concurrency_bound}")
    typer.echo(f"  Prefetch window: {pipeline.prefetch_window}")
    typer.echo(f"  Worker pool: {pipeline.worker_pool_size if pipeline.worker_pool_size is not None else 'none'}")
    typer.echo(f"  Drain timeout: {pipeline.drain_timeout_seconds}s")


def _member_service(settings: str) -> MemberService:
    from basquiat.persistence import MemberService

    config = _load_or_exit(settings)
    return MemberService(_open_member_repository(config.database))


_SETTINGS_OPTION = typer.Option(..., "--settings", "-s", help="Path to settings YAML file.")


@members_app.command("create")
def create_member(uid: str = typer.Argument(..., help="Member uid."), settings: str = _SETTINGS_OPTION) -> None:
    """Create one member."""
    service = _member_service(settings)
    try:
        member = service.create_member(uid)
    except PersistenceFailure as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(f"Created {member.uid}")


@members_app.command("get")
def get_member(uid: str = typer.Argument(..., help="Member uid."), settings: str = _SETTINGS_OPTION) -> None:
    """Show one member."""
    member = _member_service(settings).get_member(uid)
    if member is None:
        typer.echo(f"Member not found: {uid}", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps({"uid": member.uid}))


@members_app.command("list")
def list_members(settings: str = _SETTINGS_OPTION) -> None:
    """List all members."""
    for member in _member_service(settings).get_all_members():
        typer.echo(member.uid)


@members_app.command("update")
def update_member(uid: str = typer.Argument(..., help="Member uid."), settings: str = _SETTINGS_OPTION) -> None:
    """Touch a member's updated timestamp."""
    if _member_service(settings).update_member(uid) is None:
        typer.echo(f"Member not found: {uid}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Updated {uid}")


@members_app.command("delete")
def delete_member(uid: str = typer.Argument(..., help="Member uid."), settings: str = _SETTINGS_OPTION) -> None:
    """Delete a member."""
    if not _member_service(settings).delete_member(uid):
        typer.echo(f"Member not found: {uid}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Deleted {uid}")


if __name__ == "__main__":
    app()
