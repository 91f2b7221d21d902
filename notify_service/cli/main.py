"""Main CLI entry point for notify-service management commands."""

import click

from notify_service.cli.commands import db, templates
from notify_service.infra.logging.config import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="notify-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Notification rendering service management commands.

    \b
    Command Groups:
      db         Database checks and category seeding
      templates  Validate, publish and roll back templates

    \b
    Quick Start:
      notify-service db seed-categories
      notify-service templates validate invoice.j2 --context sample.json
      notify-service serve --port 8000
    """
    ctx.ensure_object(dict)


cli.add_command(db.db)
cli.add_command(templates.templates)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind")
@click.option("--port", default=8000, type=int, help="Port to bind")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "notify_service.app.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


def main() -> None:
    """Entry point for the notify-service script."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
