"""Configuration inspection commands for cafsample."""

import logging

import typer

from cafsample.config import get_settings

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="config",
    help="Configuration inspection",
    no_args_is_help=True,
)


@app.command("show")
def show_config() -> None:
    """Show the effective configuration.

    Values come from CAFSAMPLE_* environment variables, the .env file and
    built-in defaults, in that order of precedence.

    Example:
        cafsample config show
    """
    try:
        settings = get_settings()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    print(settings.model_dump_json(indent=2))
