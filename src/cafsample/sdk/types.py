"""Value types exchanged with the token service.

These mirror the objects the vendor SDK builds and returns: aliases, member
profiles, domestic bank accounts, token requests, callbacks and access tokens.
"""

from dataclasses import dataclass, field
from enum import Enum

from .errors import InvalidTokenError


class AliasType(Enum):
    """Kinds of human-readable member identifiers."""

    EMAIL = "EMAIL"
    DOMAIN = "DOMAIN"
    USERNAME = "USERNAME"


@dataclass(frozen=True)
class Alias:
    """Human-readable way to identify a member, e.g. an email address."""

    type: AliasType
    value: str


@dataclass(frozen=True)
class Profile:
    """Member profile shown to users on the consent page."""

    display_name_first: str
    display_name_last: str = ""


@dataclass(frozen=True)
class BankAccount:
    """Domestic bank account identification."""

    account_number: str
    bank_code: str
    country: str


@dataclass(frozen=True)
class TokenRequest:
    """A stored request for an access token, redeemed through the consent UI."""

    bank_id: str
    account: BankAccount
    to_member_id: str
    to_alias: Alias
    ref_id: str
    redirect_url: str
    csrf_token: str
    resource_type: str = "FUNDS_CONFIRMATION"

    @classmethod
    def funds_confirmation(
        cls,
        bank_id: str,
        account: BankAccount,
        *,
        to_member_id: str,
        to_alias: Alias,
        ref_id: str,
        redirect_url: str,
        csrf_token: str,
    ) -> "TokenRequest":
        """Build a token request asking for funds-confirmation access to an account."""
        for name, value in (
            ("to_member_id", to_member_id),
            ("ref_id", ref_id),
            ("redirect_url", redirect_url),
            ("csrf_token", csrf_token),
        ):
            if not value:
                raise ValueError(f"{name} is required for a token request")
        return cls(
            bank_id=bank_id,
            account=account,
            to_member_id=to_member_id,
            to_alias=to_alias,
            ref_id=ref_id,
            redirect_url=redirect_url,
            csrf_token=csrf_token,
        )


@dataclass(frozen=True)
class TokenRequestCallback:
    """Validated result of a token request callback."""

    token_id: str
    state: str = ""


@dataclass(frozen=True)
class FundsConfirmationResource:
    """Access resource allowing funds confirmation on one account."""

    account_id: str
    bank_id: str = ""


@dataclass(frozen=True)
class AccessToken:
    """Access token issued by the token service after user consent."""

    id: str
    from_member_id: str
    to_member_id: str
    resources: tuple[FundsConfirmationResource, ...] = field(default_factory=tuple)

    def funds_confirmation_account_id(self) -> str:
        """Account id granted by the token's first funds-confirmation resource.

        Raises:
            InvalidTokenError: If the token carries no resources
        """
        if not self.resources:
            raise InvalidTokenError(
                f"Token {self.id} does not grant funds confirmation access"
            )
        return self.resources[0].account_id
