"""Run the retail inventory as ``python -m retailinv``.

``--mode cli`` (default) exposes the store and stock commands; ``--mode api``
serves the same operations over HTTP with uvicorn.
"""

from enum import Enum

import typer

from retailinv.cli import app as cli_app
from retailinv.config import configure_logging, get_config


class RunMode(str, Enum):
    cli = "cli"
    api = "api"


app = typer.Typer(
    help="Retail inventory - shell commands or HTTP API.",
    no_args_is_help=False,
)
app.add_typer(cli_app, name="", help="Store, stock and purchase commands.")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    mode: RunMode = typer.Option(
        RunMode.cli,
        "--mode",
        case_sensitive=False,
        help="cli: run one inventory command; api: serve HTTP",
    ),
) -> None:
    """Retail inventory - shell commands or HTTP API."""
    if mode is RunMode.api:
        import uvicorn

        config = get_config()
        configure_logging(config)
        uvicorn.run(
            "retailinv.api:app",
            host=config.api_host,
            port=config.api_port,
            reload=False,
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


if __name__ == "__main__":
    app()
