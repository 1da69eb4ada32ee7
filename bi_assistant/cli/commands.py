"""Project management CLI."""

import asyncio
import json

import click
from tabulate import tabulate

from bi_assistant import __version__


@click.group()
@click.version_option(version=__version__, prog_name="bi_assistant")
def cli():
    """bi_assistant management CLI."""


# === Server Commands ===
@cli.group("server")
def server_cli():
    """Server commands."""


@server_cli.command("run")
@click.option("--host", default="0.0.0.0", help="Host to bind to")
@click.option("--port", default=8000, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def server_run(host: str, port: int, reload: bool):
    """Run the development server."""
    import uvicorn

    uvicorn.run(
        "bi_assistant.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@server_cli.command("routes")
def server_routes():
    """Show all registered routes.

    Routes are read from the generated OpenAPI schema, which flattens
    included routers.
    """
    from bi_assistant.main import app

    routes = []
    for path, operations in app.openapi()["paths"].items():
        for method, operation in operations.items():
            routes.append([method.upper(), path, operation.get("summary", "-")])

    click.echo(tabulate(routes, headers=["Method", "Path", "Name"]))


# === Agent Commands ===
@cli.group("agent")
def agent_cli():
    """Agent commands."""


@agent_cli.command("ask")
@click.argument("query")
@click.option(
    "--semantic-models",
    type=click.Path(exists=True, dir_okay=False),
    help='JSON file of explores keyed by "model:view"',
)
@click.option("--max-turns", type=int, default=None, help="Turn budget for the run")
def agent_ask(query: str, semantic_models: str | None, max_turns: int | None):
    """Ask the assistant a single question."""
    from bi_assistant.core.logging_config import setup_logging
    from bi_assistant.schemas.assistant import FunctionCallMessage
    from bi_assistant.services.assistant import AssistantService

    setup_logging(enable_file_logging=False)

    models = None
    if semantic_models:
        with open(semantic_models, encoding="utf-8") as f:
            models = json.load(f)

    service = AssistantService(max_turns=max_turns)
    reply = asyncio.run(service.run(query, semantic_models=models))

    calls = [
        [message.name, json.dumps(message.args)]
        for message in reply.messages
        if isinstance(message, FunctionCallMessage)
    ]
    if calls:
        click.echo(tabulate(calls, headers=["Tool", "Arguments"]))
        click.echo()

    if reply.error:
        click.secho(reply.messages[-1].message, fg="red")
        raise SystemExit(1)
    click.echo(reply.final_output)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
