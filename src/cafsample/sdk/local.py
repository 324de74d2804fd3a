"""Local sandbox backend for the token service.

This backend runs the token service side of the Confirmation of Funds flow in
process, so the demo works end to end without vendor credentials:
- Members are registered in ``sandbox-members.json`` next to their keys
- Token requests and access tokens live in memory
- Callbacks carry a state bound to the CSRF token and an Ed25519 signature
  produced with a per-process service key
- Funds confirmation answers from a configured available balance

It deliberately keeps the same surface as the vendor SDK (see
``cafsample.sdk.client``) so the web layer cannot tell the two apart.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import threading
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..keystore import FileSystemKeyStore
from ..utils.nonce import generate_nonce
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

logger = logging.getLogger(__name__)

REGISTRY_FILE = "sandbox-members.json"
MEMBER_ID_SUFFIX = "5zKtXEAq"
SANDBOX_USER_ID = "m:sandbox-user:" + MEMBER_ID_SUFFIX


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def _signing_payload(token_id: str, state: str) -> bytes:
    return json.dumps(
        {"state": state, "tokenId": token_id}, sort_keys=True, separators=(",", ":")
    ).encode("utf-8")


def csrf_token_hash(csrf_token: str) -> str:
    """Hash of the CSRF token embedded in the callback state."""
    return hashlib.sha256(csrf_token.encode("utf-8")).hexdigest()


def encode_state(csrf_token: str, inner_state: str = "") -> str:
    """Encode the callback state binding a token request to a CSRF token."""
    payload = {"csrfTokenHash": csrf_token_hash(csrf_token), "innerState": inner_state}
    return _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))


def decode_state(state: str) -> dict[str, str]:
    """Decode a callback state produced by :func:`encode_state`.

    Raises:
        CallbackValidationError: If the state is not valid base64url JSON
    """
    try:
        decoded: Any = json.loads(_b64decode(state))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise CallbackValidationError("Malformed callback state") from e

    if not isinstance(decoded, dict) or "csrfTokenHash" not in decoded:
        raise CallbackValidationError("Malformed callback state")
    return {str(k): str(v) for k, v in decoded.items()}


def account_id_for(account: BankAccount) -> str:
    """Stable sandbox account id for a domestic bank account."""
    digest = hashlib.sha256(
        f"{account.country}:{account.bank_code}:{account.account_number}".encode()
    ).hexdigest()
    return f"a:{digest[:24]}"


def _with_query(url: str, params: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True) + list(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


class LocalRepresentable:
    """Acts on behalf of an access token's grantor in the local sandbox."""

    def __init__(
        self,
        service: "LocalTokenService",
        member_id: str,
        token_id: str,
        customer_initiated: bool,
    ):
        self._service = service
        self.member_id = member_id
        self.token_id = token_id
        self.customer_initiated = customer_initiated

    def confirm_funds(self, account_id: str, amount: Decimal, currency: str) -> bool:
        return self._service.confirm_funds(
            self.member_id, self.token_id, account_id, Decimal(amount), currency
        )


class LocalMember:
    """A member registered with the local sandbox."""

    def __init__(self, service: "LocalTokenService", member_id: str):
        self._service = service
        self._member_id = member_id

    @property
    def member_id(self) -> str:
        return self._member_id

    def first_alias(self) -> Alias:
        aliases = self._service.member_record(self._member_id)["aliases"]
        if not aliases:
            raise TokenSdkError(f"Member {self._member_id} has no aliases")
        first = aliases[0]
        return Alias(type=AliasType(first["type"]), value=first["value"])

    def set_profile(self, profile: Profile) -> Profile:
        self._service.update_member(
            self._member_id,
            profile={
                "displayNameFirst": profile.display_name_first,
                "displayNameLast": profile.display_name_last,
            },
        )
        return profile

    def profile(self) -> Profile | None:
        stored = self._service.member_record(self._member_id).get("profile")
        if not stored:
            return None
        return Profile(
            display_name_first=stored["displayNameFirst"],
            display_name_last=stored.get("displayNameLast", ""),
        )

    def set_profile_picture(self, content_type: str, data: bytes) -> None:
        if not content_type.startswith("image/"):
            raise TokenSdkError(f"Unsupported profile picture type: {content_type}")
        if not data:
            raise TokenSdkError("Profile picture is empty")
        self._service.update_member(
            self._member_id,
            picture={"contentType": content_type, "size": len(data)},
        )

    def store_token_request(self, request: TokenRequest) -> str:
        if request.to_member_id != self._member_id:
            raise TokenSdkError("Token request must be addressed to the storing member")
        return self._service.store_token_request(request)

    def get_token(self, token_id: str) -> AccessToken:
        return self._service.get_token(self._member_id, token_id)

    def for_access_token(
        self, token_id: str, customer_initiated: bool = False
    ) -> LocalRepresentable:
        # Fail fast on tokens this member cannot use
        self._service.get_token(self._member_id, token_id)
        return LocalRepresentable(self._service, self._member_id, token_id, customer_initiated)


class LocalTokenService:
    """In-process stand-in for the token service sandbox."""

    def __init__(
        self,
        keystore: FileSystemKeyStore,
        authorize_path: str = "/sandbox/authorize/{request_id}",
        available_balance: Decimal = Decimal("100.00"),
        balance_currency: str = "GBP",
    ):
        self.keystore = keystore
        self.authorize_path = authorize_path
        self.available_balance = available_balance
        self.balance_currency = balance_currency

        self._signing_key = Ed25519PrivateKey.generate()
        self._requests: dict[str, TokenRequest] = {}
        self._tokens: dict[str, AccessToken] = {}
        # Route handlers run on a thread pool
        self._lock = threading.RLock()

    @property
    def registry_path(self) -> Path:
        return self.keystore.root / REGISTRY_FILE

    # ------------------------------------------------------------------
    # Member registry
    # ------------------------------------------------------------------

    def _load_registry(self) -> dict[str, dict[str, Any]]:
        if not self.registry_path.exists():
            return {}
        data = json.loads(self.registry_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise TokenSdkError(f"Corrupt sandbox registry: {self.registry_path}")
        return data

    def _save_registry(self, registry: dict[str, dict[str, Any]]) -> None:
        self.keystore.ensure()
        self.registry_path.write_text(
            json.dumps(registry, indent=2, sort_keys=True), encoding="utf-8"
        )

    def member_record(self, member_id: str) -> dict[str, Any]:
        with self._lock:
            record = self._load_registry().get(member_id)
        if record is None:
            raise MemberNotFoundError(member_id)
        return record

    def update_member(self, member_id: str, **fields: Any) -> None:
        with self._lock:
            registry = self._load_registry()
            if member_id not in registry:
                raise MemberNotFoundError(member_id)
            registry[member_id].update(fields)
            self._save_registry(registry)

    def create_member(self, alias: Alias) -> LocalMember:
        if not alias.value:
            raise TokenSdkError("Alias value cannot be empty")

        with self._lock:
            registry = self._load_registry()
            for record in registry.values():
                if any(a["value"] == alias.value for a in record["aliases"]):
                    raise TokenSdkError(f"Alias already in use: {alias.value}")

            member_id = f"m:{generate_nonce(28)}:{MEMBER_ID_SUFFIX}"
            self.keystore.ensure()
            self.keystore.generate_key(member_id)
            registry[member_id] = {
                "aliases": [{"type": alias.type.value, "value": alias.value}],
                "profile": None,
                "picture": None,
            }
            self._save_registry(registry)

        logger.info(f"Created sandbox member {member_id}")
        return LocalMember(self, member_id)

    def get_member(self, member_id: str) -> LocalMember:
        with self._lock:
            known = member_id in self._load_registry()
        if not known or not self.keystore.has_keys(member_id):
            raise MemberNotFoundError(member_id)
        return LocalMember(self, member_id)

    # ------------------------------------------------------------------
    # Token requests
    # ------------------------------------------------------------------

    def store_token_request(self, request: TokenRequest) -> str:
        request_id = f"rq:{generate_nonce()}"
        with self._lock:
            self._requests[request_id] = request
        logger.debug(f"Stored token request {request_id} (ref {request.ref_id})")
        return request_id

    def get_token_request(self, request_id: str) -> TokenRequest:
        with self._lock:
            request = self._requests.get(request_id)
        if request is None:
            raise TokenRequestNotFoundError(request_id)
        return request

    def generate_token_request_url(self, request_id: str) -> str:
        self.get_token_request(request_id)
        return self.authorize_path.format(request_id=quote(request_id, safe=":"))

    def approve(self, request_id: str) -> str:
        """Grant the token request as the sandbox user.

        Returns:
            str: The request's redirect URL carrying tokenId, state and signature
        """
        with self._lock:
            request = self._requests.pop(request_id, None)
            if request is None:
                raise TokenRequestNotFoundError(request_id)

            token = AccessToken(
                id=f"ta:{generate_nonce()}",
                from_member_id=SANDBOX_USER_ID,
                to_member_id=request.to_member_id,
                resources=(
                    FundsConfirmationResource(
                        account_id=account_id_for(request.account),
                        bank_id=request.bank_id,
                    ),
                ),
            )
            self._tokens[token.id] = token

        state = encode_state(request.csrf_token)
        signature = _b64encode(self._signing_key.sign(_signing_payload(token.id, state)))
        logger.info(f"Approved token request {request_id}, issued token {token.id}")
        return _with_query(
            request.redirect_url,
            {"tokenId": token.id, "state": state, "signature": signature},
        )

    def decline(self, request_id: str) -> str:
        """Reject the token request as the sandbox user.

        Returns:
            str: The request's redirect URL carrying the error
        """
        with self._lock:
            request = self._requests.pop(request_id, None)
        if request is None:
            raise TokenRequestNotFoundError(request_id)

        logger.info(f"Declined token request {request_id}")
        return _with_query(
            request.redirect_url,
            {
                "error": "access_denied",
                "message": "The user declined the request",
                "state": encode_state(request.csrf_token),
            },
        )

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def parse_token_request_callback_url(
        self, callback_url: str, csrf_token: str
    ) -> TokenRequestCallback:
        params = dict(parse_qsl(urlsplit(callback_url).query, keep_blank_values=True))
        return self.parse_token_request_callback_params(params, csrf_token)

    def parse_token_request_callback_params(
        self, params: Mapping[str, str], csrf_token: str
    ) -> TokenRequestCallback:
        if not csrf_token:
            raise CallbackValidationError("Missing CSRF token")
        if params.get("error"):
            raise TokenRequestDeclinedError(params["error"], params.get("message"))

        missing = [k for k in ("tokenId", "state", "signature") if not params.get(k)]
        if missing:
            raise CallbackValidationError(
                f"Missing callback parameters: {', '.join(missing)}"
            )

        token_id = str(params["tokenId"])
        state = str(params["state"])
        try:
            self._signing_key.public_key().verify(
                _b64decode(str(params["signature"])), _signing_payload(token_id, state)
            )
        except (InvalidSignature, binascii.Error, ValueError) as e:
            raise CallbackValidationError("Invalid callback signature") from e

        decoded = decode_state(state)
        if not hmac.compare_digest(decoded["csrfTokenHash"], csrf_token_hash(csrf_token)):
            raise CsrfMismatchError("CSRF token does not match the callback state")

        return TokenRequestCallback(token_id=token_id, state=decoded.get("innerState", ""))

    # ------------------------------------------------------------------
    # Tokens and funds
    # ------------------------------------------------------------------

    def get_token(self, member_id: str, token_id: str) -> AccessToken:
        with self._lock:
            token = self._tokens.get(token_id)
        if token is None or token.to_member_id != member_id:
            raise TokenNotFoundError(token_id)
        return token

    def confirm_funds(
        self,
        member_id: str,
        token_id: str,
        account_id: str,
        amount: Decimal,
        currency: str,
    ) -> bool:
        token = self.get_token(member_id, token_id)
        if account_id not in {r.account_id for r in token.resources}:
            raise InvalidTokenError(
                f"Token {token_id} does not grant access to account {account_id}"
            )

        confirmed = currency == self.balance_currency and self.available_balance >= amount
        logger.debug(
            f"Funds confirmation for {account_id}: {amount} {currency} -> {confirmed}"
        )
        return confirmed
