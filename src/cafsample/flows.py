"""Confirmation of Funds flow.

Creates funds-confirmation token requests for the CBPII member and, once the
user has granted access, redeems the access token to confirm that the account
holds the configured amount.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from .config import FundsConfig
from .sdk.client import Member, TokenClient
from .sdk.errors import CallbackValidationError
from .sdk.types import BankAccount, TokenRequest, TokenRequestCallback
from .utils.nonce import generate_nonce

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenRequestLink:
    """A stored token request and the URL sending the user to consent."""

    url: str
    request_id: str
    ref_id: str
    csrf_token: str


@dataclass(frozen=True)
class FundsConfirmationResult:
    """Outcome of a funds confirmation made on behalf of an access token."""

    token_id: str
    account_id: str
    amount: Decimal
    currency: str
    confirmed: bool

    @property
    def message(self) -> str:
        return f"funds confirmed: {str(self.confirmed).lower()}"


class FundsConfirmationFlow:
    """Drives the funds confirmation flow for one CBPII member."""

    def __init__(self, client: TokenClient, member: Member, funds: FundsConfig):
        self.client = client
        self.member = member
        self.funds = funds

    @property
    def account(self) -> BankAccount:
        return BankAccount(
            account_number=self.funds.account_number,
            bank_code=self.funds.bank_code,
            country=self.funds.country,
        )

    def create_token_request_url(self, redirect_url: str) -> TokenRequestLink:
        """Store a funds-confirmation token request and build its consent URL.

        A fresh CSRF token is bound to the request; the caller must hand it to
        the browser (cookie) so the callback can be validated.

        Args:
            redirect_url: Where the token service sends the user afterwards

        Returns:
            TokenRequestLink: Consent URL, request id, reference id and CSRF token
        """
        csrf_token = generate_nonce()
        ref_id = generate_nonce()

        request = TokenRequest.funds_confirmation(
            self.funds.bank_id,
            self.account,
            to_member_id=self.member.member_id,
            to_alias=self.member.first_alias(),
            ref_id=ref_id,
            redirect_url=redirect_url,
            csrf_token=csrf_token,
        )
        request_id = self.member.store_token_request(request)
        url = self.client.generate_token_request_url(request_id)

        logger.info(f"Created token request {request_id} (ref {ref_id})")
        return TokenRequestLink(
            url=url, request_id=request_id, ref_id=ref_id, csrf_token=csrf_token
        )

    def confirm_from_callback_url(
        self, callback_url: str, csrf_token: str | None
    ) -> FundsConfirmationResult:
        """Validate a redirect callback and confirm funds for the granted token."""
        self._require_csrf(csrf_token)
        callback = self.client.parse_token_request_callback_url(
            callback_url, csrf_token or ""
        )
        return self._confirm(callback)

    def confirm_from_callback_params(
        self, params: Mapping[str, str], csrf_token: str | None
    ) -> FundsConfirmationResult:
        """Validate popup callback parameters and confirm funds for the granted token."""
        self._require_csrf(csrf_token)
        callback = self.client.parse_token_request_callback_params(
            params, csrf_token or ""
        )
        return self._confirm(callback)

    @staticmethod
    def _require_csrf(csrf_token: str | None) -> None:
        if not csrf_token:
            raise CallbackValidationError("Missing CSRF token cookie")

    def _confirm(self, callback: TokenRequestCallback) -> FundsConfirmationResult:
        token = self.member.get_token(callback.token_id)
        account_id = token.funds_confirmation_account_id()

        # Not customer initiated: the user is not present at the bank
        representable = self.member.for_access_token(
            callback.token_id, customer_initiated=False
        )
        confirmed = representable.confirm_funds(
            account_id, self.funds.amount, self.funds.currency
        )

        logger.info(
            f"Funds confirmation for token {callback.token_id}: "
            f"{self.funds.amount} {self.funds.currency} -> {confirmed}"
        )
        return FundsConfirmationResult(
            token_id=callback.token_id,
            account_id=account_id,
            amount=self.funds.amount,
            currency=self.funds.currency,
            confirmed=confirmed,
        )
