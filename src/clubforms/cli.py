from __future__ import annotations

import logging

import typer

from clubforms.config import Settings
from clubforms.storage import init_storage

cli = typer.Typer(add_completion=False, help="Club Forms server")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(host: str | None, port: int | None) -> None:
    import uvicorn

    from clubforms.app import create_app

    settings = Settings()
    configure_logging(settings.log_level)
    resolved_host = host or settings.host
    resolved_port = port if port is not None else settings.port
    logging.getLogger(__name__).info(
        "Starting Club Forms on %s:%s (%s storage)",
        resolved_host,
        resolved_port,
        settings.storage_backend,
    )
    uvicorn.run(create_app(settings), host=resolved_host, port=resolved_port)


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
    base = ctx.obj or {}
    resolved_host = host or base.get("host")
    resolved_port = port if port is not None else base.get("port")
    run_server(resolved_host, resolved_port)


@cli.command("init-db")
def init_db() -> None:
    """Create the configured store and its tables."""
    settings = Settings()
    configure_logging(settings.log_level)
    storage = init_storage(settings)
    storage.close()
    location = settings.json_path if settings.storage_backend == "json" else settings.sqlite_path
    typer.echo(f"Initialized {settings.storage_backend} storage at {location}")
