"""Application bootstrap: token client, CBPII member and web application.

Startup sequence:
1. Create the keys directory and the key store
2. Build the configured token client (local sandbox or vendor SDK adapter)
3. Log in the member whose keys are stored locally, or create a new one
4. Wire the funds confirmation flow into the FastAPI application
"""

import logging
from importlib import resources
from typing import TYPE_CHECKING

from .config import CafSampleSettings, MemberConfig
from .flows import FundsConfirmationFlow
from .keystore import FileSystemKeyStore
from .sdk.client import Member, TokenClient
from .sdk.errors import MemberNotFoundError
from .sdk.loader import load_backend
from .sdk.local import LocalTokenService
from .sdk.types import Alias, AliasType, Profile
from .utils.nonce import generate_nonce

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class MemberLoginError(RuntimeError):
    """A saved member could not be logged in."""


def initialize_sdk(settings: CafSampleSettings) -> tuple[TokenClient, FileSystemKeyStore]:
    """Initialize the SDK, pointing it at the configured environment and key directory.

    Returns:
        tuple: The token client and the key store it writes member keys to
    """
    keystore = FileSystemKeyStore(settings.token.keys_dir)
    keystore.ensure()
    return load_backend(settings, keystore), keystore


def initialize_member(
    client: TokenClient, keystore: FileSystemKeyStore, member_config: MemberConfig
) -> Member:
    """Log in the existing member or create a new one.

    The key store names each member's directory after its member id, so the
    first such directory identifies the member to log in.
    """
    member_ids = keystore.member_ids()
    if member_ids:
        if len(member_ids) > 1:
            logger.warning(
                f"Found {len(member_ids)} saved members, using {member_ids[0]}"
            )
        return load_member(client, member_ids[0])
    return create_member(client, member_config)


def load_member(client: TokenClient, member_id: str) -> Member:
    """Log in a previously created member whose private keys are stored locally.

    Raises:
        MemberLoginError: If the token service no longer knows the member
    """
    try:
        member = client.get_member(member_id)
    except MemberNotFoundError as e:
        # Sandbox members are erased from time to time
        raise MemberLoginError(
            "Couldn't log in saved member, not found. Remove keys dir and try again."
        ) from e

    logger.info(f"Logged in member {member_id}")
    return member


def create_member(client: TokenClient, member_config: MemberConfig) -> Member:
    """Create a new member with a random email alias, profile and picture.

    Creating the member stores its private keys in the key directory. Aliases
    must be unique, hence the random part.
    """
    email = (
        f"{member_config.alias_prefix}{generate_nonce().lower()}"
        f"+noverify@{member_config.alias_domain}"
    )
    member = client.create_member(Alias(type=AliasType.EMAIL, value=email))

    # Shown with the alias on the consent page
    member.set_profile(Profile(display_name_first=member_config.display_name))
    member.set_profile_picture("image/png", load_profile_picture(member_config))

    logger.info(f"Created member {member.member_id} with alias {email}")
    return member


def load_profile_picture(member_config: MemberConfig) -> bytes:
    """Configured profile picture, or the bundled one."""
    if member_config.profile_picture is not None:
        return member_config.profile_picture.read_bytes()
    return (resources.files("cafsample.web") / "static" / "southside.png").read_bytes()


def build_application(settings: CafSampleSettings) -> "FastAPI":
    """Create the fully wired web application.

    Args:
        settings: Application settings

    Returns:
        FastAPI: Application serving the funds confirmation endpoints
    """
    from .web.app import create_app

    client, keystore = initialize_sdk(settings)
    member = initialize_member(client, keystore, settings.member)
    flow = FundsConfirmationFlow(client, member, settings.funds)

    sandbox = client if isinstance(client, LocalTokenService) else None
    return create_app(flow, alias=member.first_alias().value, sandbox=sandbox)
