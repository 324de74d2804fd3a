"""Consent pages served for the local sandbox backend.

The vendor sandbox shows users a bank selection and consent UI. Locally, a
single page lets the developer approve or decline the stored token request,
after which the browser is sent to the request's redirect URL.
"""

import html
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, RedirectResponse

from ..sdk.local import LocalTokenService

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Sandbox consent</title>
  <link rel="stylesheet" href="/style.css">
</head>
<body>
  <main class="consent">
    <h1>Confirmation of funds</h1>
    <p><strong>{alias}</strong> asks to confirm that funds are available on your account.</p>
    <dl>
      <dt>Bank</dt><dd>{bank_id}</dd>
      <dt>Account</dt><dd>{bank_code} / ****{account_tail}</dd>
      <dt>Reference</dt><dd>{ref_id}</dd>
    </dl>
    <form method="post" action="/sandbox/authorize/{request_id}/approve">
      <button type="submit">Allow</button>
    </form>
    <form method="post" action="/sandbox/authorize/{request_id}/decline">
      <button type="submit" class="secondary">Deny</button>
    </form>
  </main>
</body>
</html>
"""


def create_sandbox_router(service: LocalTokenService) -> APIRouter:
    """Create the router with the sandbox consent endpoints."""
    router = APIRouter(prefix="/sandbox")

    @router.get("/authorize/{request_id}", response_class=HTMLResponse)
    def authorize(request_id: str) -> str:
        request = service.get_token_request(request_id)
        return _PAGE.format(
            alias=html.escape(request.to_alias.value),
            bank_id=html.escape(request.bank_id),
            bank_code=html.escape(request.account.bank_code),
            account_tail=html.escape(request.account.account_number[-4:]),
            ref_id=html.escape(request.ref_id),
            request_id=quote(request_id, safe=":"),
        )

    @router.post("/authorize/{request_id}/approve")
    def approve(request_id: str) -> RedirectResponse:
        return RedirectResponse(service.approve(request_id), status_code=303)

    @router.post("/authorize/{request_id}/decline")
    def decline(request_id: str) -> RedirectResponse:
        return RedirectResponse(service.decline(request_id), status_code=303)

    return router
