"""CBPII member management commands.

The member is the token service identity of this application. Its private
keys live in the keys directory; deleting them forces a new member to be
created on the next start.
"""

import logging
from typing import Annotated

import typer

from cafsample.bootstrap import MemberLoginError, initialize_member, initialize_sdk
from cafsample.config import get_settings
from cafsample.keystore import FileSystemKeyStore
from cafsample.sdk.errors import TokenSdkError

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="member",
    help="CBPII member management",
    no_args_is_help=True,
)


@app.command("show")
def show_member() -> None:
    """Show the member id and alias, creating the member if none exists yet.

    Example:
        cafsample member show
    """
    try:
        settings = get_settings()
        client, keystore = initialize_sdk(settings)
        member = initialize_member(client, keystore, settings.member)
        alias = member.first_alias()
    except (ValueError, OSError, MemberLoginError, TokenSdkError) as e:
        logger.error(f"❌ Failed to initialize member: {e}")
        raise typer.Exit(1) from e

    print(f"Member ID: {member.member_id}")
    print(f"Alias:     {alias.value} ({alias.type.value})")
    print(f"Keys:      {keystore.member_dir(member.member_id)}")


@app.command("reset")
def reset_member(
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")
    ] = False,
) -> None:
    """Delete the saved member keys.

    Use this when the token service no longer knows the saved member
    (sandbox members are erased from time to time).

    Example:
        cafsample member reset --yes
    """
    try:
        settings = get_settings()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    keystore = FileSystemKeyStore(settings.token.keys_dir)
    member_ids = keystore.member_ids()
    if not member_ids:
        print("ℹ️  No saved member keys to remove.")
        return

    if not yes:
        confirm = typer.confirm(
            f"Delete keys of {', '.join(member_ids)} in {keystore.root}?",
            default=False,
        )
        if not confirm:
            print("❌ Cancelled")
            raise typer.Exit(0)

    try:
        keystore.clear()
    except OSError as e:
        logger.error(f"Failed to remove keys: {e}")
        raise typer.Exit(1) from e

    print(f"✅ Removed keys in {keystore.root}")
