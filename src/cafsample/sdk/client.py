"""Protocols describing the blocking token service SDK surface.

Any backend passed to the application (the bundled local sandbox or an adapter
around a vendor SDK) provides these methods. Failures are reported with the
exceptions in ``cafsample.sdk.errors``.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Protocol

from .types import AccessToken, Alias, Profile, TokenRequest, TokenRequestCallback


class Representable(Protocol):
    """Acts on behalf of the grantor of an access token."""

    def confirm_funds(self, account_id: str, amount: Decimal, currency: str) -> bool:
        """Check that the account holds at least ``amount`` in ``currency``."""
        ...


class Member(Protocol):
    """A logged-in member of the token service."""

    @property
    def member_id(self) -> str: ...

    def first_alias(self) -> Alias: ...

    def set_profile(self, profile: Profile) -> Profile: ...

    def set_profile_picture(self, content_type: str, data: bytes) -> None: ...

    def store_token_request(self, request: TokenRequest) -> str:
        """Store a token request and return its request id."""
        ...

    def get_token(self, token_id: str) -> AccessToken: ...

    def for_access_token(
        self, token_id: str, customer_initiated: bool = False
    ) -> Representable: ...


class TokenClient(Protocol):
    """Entry point into the token service."""

    def create_member(self, alias: Alias) -> Member:
        """Create a member; its keys are written to the key store."""
        ...

    def get_member(self, member_id: str) -> Member:
        """Log in a previously created member whose keys are stored locally."""
        ...

    def generate_token_request_url(self, request_id: str) -> str: ...

    def parse_token_request_callback_url(
        self, callback_url: str, csrf_token: str
    ) -> TokenRequestCallback:
        """Validate a redirect callback URL and extract the token id."""
        ...

    def parse_token_request_callback_params(
        self, params: Mapping[str, str], csrf_token: str
    ) -> TokenRequestCallback:
        """Validate callback parameters delivered by the web SDK popup."""
        ...
