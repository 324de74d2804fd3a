"""Command running the Confirmation of Funds web server."""

import dataclasses
import logging
from typing import Annotated

import typer
import uvicorn

from cafsample.bootstrap import MemberLoginError, build_application
from cafsample.config import get_settings
from cafsample.logging import LoggingConfig, setup_logging
from cafsample.sdk.errors import TokenSdkError

logger = logging.getLogger(__name__)


def serve(
    host: Annotated[
        str | None,
        typer.Option("--host", help="Interface to bind (default from settings)"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option(
            "--port", "-p", min=1, max=65535, help="Port to listen on (default 3000)"
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """Start the web server.

    Initializes the token client and the CBPII member (creating one on first
    run, which stores its keys in the keys directory), then serves the demo
    page and the funds confirmation endpoints.

    Example:
        cafsample serve --port 3000
    """
    try:
        settings = get_settings()
        setup_logging(
            dataclasses.replace(
                LoggingConfig.from_settings(settings.logging), force_reconfigure=True
            ),
            verbose=verbose,
        )
        web_app = build_application(settings)
    except (ValueError, OSError, MemberLoginError, TokenSdkError) as e:
        logger.error(f"❌ Failed to start server: {e}")
        raise typer.Exit(1) from e

    bind_host = host if host is not None else settings.server.host
    bind_port = port if port is not None else settings.server.port
    logger.info(f"🚀 Serving on http://{bind_host}:{bind_port}")

    uvicorn.run(web_app, host=bind_host, port=bind_port, log_config=None)
