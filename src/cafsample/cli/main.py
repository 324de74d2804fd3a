"""Main CLI application for cafsample.

This module provides the unified entry point for all cafsample CLI operations:
running the web server, managing the CBPII member and inspecting configuration.
"""

import logging
from typing import Annotated

import typer

from ..logging import setup_logging
from .commands import config, member, serve

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="cafsample",
    help="Confirmation of Funds (CBPII) sample application",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for the cafsample CLI.

    Settings are read from CAFSAMPLE_* environment variables and the .env file,
    e.g. CAFSAMPLE_SERVER__PORT=3000 or CAFSAMPLE_TOKEN__KEYS_DIR=./keys.
    """
    setup_logging(cli_mode=True, verbose=verbose)


app.command("serve", help="Run the web server")(serve.serve)
app.add_typer(member.app, name="member", help="CBPII member management")
app.add_typer(config.app, name="config", help="Configuration inspection")


def main() -> None:
    """Entry point for the cafsample CLI application."""
    app()


if __name__ == "__main__":
    main()
