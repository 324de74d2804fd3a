"""cafsample: Confirmation of Funds (CBPII) sample web application.

This package demonstrates how a third-party provider integrates with a
Confirmation of Available Funds flow:
- Storing funds-confirmation token requests and redirecting users to consent
- Validating the authorization callback against a CSRF cookie
- Confirming funds on behalf of the issued access token
- A local sandbox backend so the whole flow runs without vendor credentials

The token service itself is reached through the SDK boundary in ``cafsample.sdk``.
"""

__version__ = "0.1.0"
