from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from types import TracebackType
from typing import Any

import orjson
import typer

from matbook.config import Settings
from matbook.schema import SchemaError, load_form_schema
from matbook.validator import validate_submission

logger = logging.getLogger("matbook")

cli = typer.Typer(add_completion=False, help="MatBook dynamic form service")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _fatal_hook(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.critical("UNCAUGHT EXCEPTION! Shutting down...", exc_info=(exc_type, exc, tb))
    sys.exit(1)


def _loop_fatal_handler(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Exceptions nothing awaited (background tasks, callbacks) end the process."""
    exc = context.get("exception")
    exc_info = (type(exc), exc, exc.__traceback__) if exc is not None else None
    logger.critical(
        "UNHANDLED ASYNC ERROR! Shutting down... %s",
        context.get("message", ""),
        exc_info=exc_info,
    )
    os._exit(1)


async def _serve(server: Any) -> None:
    asyncio.get_running_loop().set_exception_handler(_loop_fatal_handler)
    await server.serve()


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    from matbook.app import create_app

    settings = Settings()
    configure_logging(settings.log_level)
    sys.excepthook = _fatal_hook
    app = create_app(settings)
    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    logger.info("MatBook running on http://%s:%s", resolved_host, resolved_port)
    config = uvicorn.Config(
        app, host=resolved_host, port=resolved_port, log_level=settings.log_level
    )
    asyncio.run(_serve(uvicorn.Server(config)))


@cli.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    ctx.obj = {"host": host, "port": port}
    if ctx.invoked_subcommand is None:
        run_server(host, port)


@cli.command()
def run(
    ctx: typer.Context,
    host: str | None = typer.Option(None, help="Address to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
) -> None:
    """Serve the form, the admin pages and the REST API."""
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


def _load_schema(path: Path | None) -> dict:
    try:
        return load_form_schema(path or Settings().form_schema_path)
    except SchemaError as exc:
        for message in exc.errors:
            typer.echo(message, err=True)
        raise typer.Exit(code=1) from None


@cli.command()
def schema(
    path: Path | None = typer.Option(None, "--path", help="Form schema JSON file"),
) -> None:
    """Print the form schema after checking it."""
    form_schema = _load_schema(path)
    typer.echo(orjson.dumps(form_schema, option=orjson.OPT_INDENT_2).decode("utf-8"))


@cli.command()
def check(
    record_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON record"),
    path: Path | None = typer.Option(None, "--path", help="Form schema JSON file"),
) -> None:
    """Validate a JSON record against the form schema."""
    form_schema = _load_schema(path)
    try:
        record = orjson.loads(record_file.read_bytes())
    except orjson.JSONDecodeError as exc:
        typer.echo(f"{record_file}: invalid JSON ({exc})", err=True)
        raise typer.Exit(code=1) from None
    if not isinstance(record, dict):
        typer.echo(f"{record_file}: expected a JSON object", err=True)
        raise typer.Exit(code=1)

    errors = validate_submission(form_schema, record)
    if errors:
        typer.echo(orjson.dumps(errors, option=orjson.OPT_INDENT_2).decode("utf-8"))
        raise typer.Exit(code=1)
    typer.echo("OK")
