"""Token service SDK boundary.

The web application talks to the token service only through the protocols in
``client``: the bundled local sandbox implements them for development, and an
adapter around the vendor SDK implements them for the hosted sandbox or
production.
"""

from .client import Member, Representable, TokenClient
from .errors import (
    CallbackValidationError,
    CsrfMismatchError,
    InvalidTokenError,
    MemberNotFoundError,
    TokenNotFoundError,
    TokenRequestDeclinedError,
    TokenRequestNotFoundError,
    TokenSdkError,
)
from .loader import load_backend
from .local import LocalTokenService
from .types import (
    AccessToken,
    Alias,
    AliasType,
    BankAccount,
    FundsConfirmationResource,
    Profile,
    TokenRequest,
    TokenRequestCallback,
)

__all__ = [
    "AccessToken",
    "Alias",
    "AliasType",
    "BankAccount",
    "CallbackValidationError",
    "CsrfMismatchError",
    "FundsConfirmationResource",
    "InvalidTokenError",
    "LocalTokenService",
    "Member",
    "MemberNotFoundError",
    "Profile",
    "Representable",
    "TokenClient",
    "TokenNotFoundError",
    "TokenRequest",
    "TokenRequestCallback",
    "TokenRequestDeclinedError",
    "TokenRequestNotFoundError",
    "TokenSdkError",
    "load_backend",
]
