"""FastAPI application exposing the Confirmation of Funds endpoints.

Routes:
- GET  /request-funds-confirmation        redirect flow: 302 to the consent page
- POST /request-funds-confirmation-popup  popup flow: consent URL as text
- GET  /confirm-funds                     redirect flow callback
- GET  /confirm-funds-popup               popup flow callback (``data`` JSON)
- GET  /, /script.js, /style.css          the demo page

Run with ``cafsample serve`` or ``uvicorn cafsample.web.app:create_default_app --factory``.
"""

import json
import logging
from importlib import resources
from typing import Annotated, Any

from fastapi import Cookie, FastAPI, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response

from .. import __version__
from ..flows import FundsConfirmationFlow
from ..sdk.errors import (
    CallbackValidationError,
    InvalidTokenError,
    TokenNotFoundError,
    TokenRequestNotFoundError,
    TokenSdkError,
)
from ..sdk.local import LocalTokenService
from .sandbox import create_sandbox_router

logger = logging.getLogger(__name__)

CSRF_TOKEN_KEY = "csrf_token"


def load_static(name: str) -> str:
    """Read a bundled static file."""
    return (resources.files("cafsample.web") / "static" / name).read_text(encoding="utf-8")


def callback_url(request: Request, path: str) -> str:
    """Absolute URL on the host the browser used to reach us."""
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}{path}"


def set_csrf_cookie(response: Response, csrf_token: str) -> None:
    """Remember the CSRF token in the browser for the callback."""
    response.set_cookie(CSRF_TOKEN_KEY, csrf_token, path="/", httponly=True, samesite="lax")


def parse_popup_data(data: str) -> dict[str, str]:
    """Parse the JSON object the web SDK hands to the popup success callback.

    Raises:
        CallbackValidationError: If ``data`` is not a JSON object
    """
    try:
        parsed: Any = json.loads(data)
    except ValueError as e:
        raise CallbackValidationError("Callback data is not valid JSON") from e
    if not isinstance(parsed, dict):
        raise CallbackValidationError("Callback data must be a JSON object")
    return parsed


def _error_response(status_code: int):
    async def handler(request: Request, exc: Exception) -> PlainTextResponse:
        log = logger.warning if status_code < 500 else logger.error
        log(f"{request.method} {request.url.path} failed: {exc}")
        return PlainTextResponse(str(exc), status_code=status_code)

    return handler


def create_app(
    flow: FundsConfirmationFlow,
    alias: str,
    sandbox: LocalTokenService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        flow: Funds confirmation flow of the CBPII member
        alias: Member alias substituted into the page script
        sandbox: Local sandbox backend whose consent pages should be mounted

    Returns:
        FastAPI: Configured application
    """
    app = FastAPI(
        title="cafsample",
        description="Confirmation of Funds (CBPII) sample",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.flow = flow

    script = load_static("script.js").replace("{alias}", alias)
    style = load_static("style.css")
    page = load_static("index.html")

    # Most specific exception class wins
    app.add_exception_handler(CallbackValidationError, _error_response(400))
    app.add_exception_handler(InvalidTokenError, _error_response(400))
    app.add_exception_handler(TokenRequestNotFoundError, _error_response(404))
    app.add_exception_handler(TokenNotFoundError, _error_response(404))
    app.add_exception_handler(TokenSdkError, _error_response(502))

    @app.get("/request-funds-confirmation")
    def request_funds_confirmation(request: Request) -> RedirectResponse:
        link = flow.create_token_request_url(callback_url(request, "/confirm-funds"))
        response = RedirectResponse(link.url, status_code=302)
        set_csrf_cookie(response, link.csrf_token)
        return response

    @app.post("/request-funds-confirmation-popup")
    def request_funds_confirmation_popup(request: Request) -> PlainTextResponse:
        link = flow.create_token_request_url(
            callback_url(request, "/confirm-funds-popup")
        )
        response = PlainTextResponse(link.url, status_code=200)
        set_csrf_cookie(response, link.csrf_token)
        return response

    @app.get("/confirm-funds", response_class=PlainTextResponse)
    def confirm_funds(
        request: Request,
        csrf_token: Annotated[str | None, Cookie()] = None,
    ) -> str:
        result = flow.confirm_from_callback_url(str(request.url), csrf_token)
        return result.message

    @app.get("/confirm-funds-popup", response_class=PlainTextResponse)
    def confirm_funds_popup(
        request: Request,
        data: Annotated[str | None, Query()] = None,
        csrf_token: Annotated[str | None, Cookie()] = None,
    ) -> str:
        # Without a web SDK the popup lands here with plain callback parameters
        params = parse_popup_data(data) if data is not None else dict(request.query_params)
        result = flow.confirm_from_callback_params(params, csrf_token)
        return result.message

    @app.get("/script.js")
    def script_js() -> Response:
        return Response(script, media_type="application/javascript")

    @app.get("/style.css")
    def style_css() -> Response:
        return Response(style, media_type="text/css")

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return page

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    if sandbox is not None:
        app.include_router(create_sandbox_router(sandbox), tags=["sandbox"])

    logger.info("Application configured")
    return app


def create_default_app() -> FastAPI:
    """Application factory reading settings from the environment."""
    from ..bootstrap import build_application
    from ..config import get_settings
    from ..logging import LoggingConfig, setup_logging

    settings = get_settings()
    setup_logging(LoggingConfig.from_settings(settings.logging))
    return build_application(settings)
