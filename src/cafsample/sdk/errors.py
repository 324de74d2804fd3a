"""Exceptions raised across the token service SDK boundary."""


class TokenSdkError(Exception):
    """Base class for failures reported by the token service."""


class MemberNotFoundError(TokenSdkError):
    """The member id is unknown to the token service."""

    def __init__(self, member_id: str):
        super().__init__(f"Member not found: {member_id}")
        self.member_id = member_id


class TokenRequestNotFoundError(TokenSdkError):
    """No stored token request has the given id."""

    def __init__(self, request_id: str):
        super().__init__(f"Token request not found: {request_id}")
        self.request_id = request_id


class TokenNotFoundError(TokenSdkError):
    """No access token has the given id."""

    def __init__(self, token_id: str):
        super().__init__(f"Token not found: {token_id}")
        self.token_id = token_id


class InvalidTokenError(TokenSdkError):
    """The access token does not grant what the caller needs."""


class CallbackValidationError(TokenSdkError):
    """The token request callback could not be validated."""


class CsrfMismatchError(CallbackValidationError):
    """The callback state was not bound to the caller's CSRF token."""


class TokenRequestDeclinedError(CallbackValidationError):
    """The user declined or the token service rejected the token request."""

    def __init__(self, error: str, description: str | None = None):
        message = f"Token request was not approved: {error}"
        if description:
            message = f"{message} ({description})"
        super().__init__(message)
        self.error = error
        self.description = description
