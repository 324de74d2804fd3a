"""Resolve the configured token service backend."""

import importlib
import logging
from typing import TYPE_CHECKING, cast

from ..keystore import FileSystemKeyStore
from .client import TokenClient
from .local import LocalTokenService

if TYPE_CHECKING:
    from ..config import CafSampleSettings

logger = logging.getLogger(__name__)


def load_backend(settings: "CafSampleSettings", keystore: FileSystemKeyStore) -> TokenClient:
    """Build the token client named by ``settings.token.backend``.

    ``local`` selects the bundled sandbox. Any other value is an import path
    ``package.module:factory``; the factory is called with the token settings
    and the key store and must return an object implementing TokenClient.

    Args:
        settings: Application settings
        keystore: Key store holding member private keys

    Returns:
        TokenClient: The configured backend

    Raises:
        ValueError: If the factory cannot be imported or is not callable
    """
    spec = settings.token.backend

    if settings.uses_local_backend:
        logger.info("Using local sandbox token service")
        return LocalTokenService(
            keystore,
            authorize_path=settings.token.authorize_path,
            available_balance=settings.sandbox.available_balance,
            balance_currency=settings.sandbox.balance_currency,
        )

    module_name, _, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Cannot load token backend '{spec}': {e}") from e

    if not callable(factory):
        raise ValueError(f"Token backend '{spec}' is not callable")

    logger.info(
        f"Using token backend {spec} ({settings.token.environment} environment)"
    )
    return cast(TokenClient, factory(settings=settings.token, keystore=keystore))
