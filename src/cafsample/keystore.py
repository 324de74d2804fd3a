"""Unsecured file-system key store for member private keys.

Keys are stored unencrypted as PEM files, one directory per member. The
directory is named after the member id with ":" replaced by "_", which lets the
application discover previously created members on startup.

This is suitable for sandbox development only; production deployments should
keep member keys in an HSM or a secrets manager.
"""

import hashlib
import logging
import shutil
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

logger = logging.getLogger(__name__)


def key_id(public_key: Ed25519PublicKey) -> str:
    """Derive a short, stable identifier from a public key.

    Args:
        public_key: Public key to identify

    Returns:
        str: First 16 hex characters of the SHA-256 of the raw key bytes
    """
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return hashlib.sha256(raw).hexdigest()[:16]


class FileSystemKeyStore:
    """Reads and writes member private keys under a root directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def ensure(self) -> Path:
        """Create the root directory if needed and return it."""
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    def member_dir(self, member_id: str) -> Path:
        """Directory holding the keys of ``member_id``."""
        if not member_id:
            raise ValueError("Member id cannot be empty")
        return self.root / member_id.replace(":", "_")

    def member_ids(self) -> list[str]:
        """Member ids that have a key directory, in sorted order."""
        if not self.root.exists():
            return []
        return sorted(
            path.name.replace("_", ":")
            for path in self.root.iterdir()
            if path.is_dir() and "_" in path.name
        )

    def generate_key(self, member_id: str) -> Ed25519PrivateKey:
        """Generate and store a new signing key for ``member_id``."""
        private_key = Ed25519PrivateKey.generate()
        self.save_key(member_id, private_key)
        return private_key

    def save_key(self, member_id: str, private_key: Ed25519PrivateKey) -> str:
        """Write ``private_key`` as an unencrypted PEM file.

        Returns:
            str: The key id, which is also the file stem
        """
        directory = self.member_dir(member_id)
        directory.mkdir(parents=True, exist_ok=True)

        kid = key_id(private_key.public_key())
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        path = directory / f"{kid}.pem"
        path.write_bytes(pem)
        path.chmod(0o600)

        logger.debug(f"Stored key {kid} for member {member_id}")
        return kid

    def load_keys(self, member_id: str) -> dict[str, Ed25519PrivateKey]:
        """Load every stored key of ``member_id``, keyed by key id.

        Raises:
            TypeError: If a stored key is not an Ed25519 key
        """
        directory = self.member_dir(member_id)
        if not directory.is_dir():
            return {}

        keys: dict[str, Ed25519PrivateKey] = {}
        for path in sorted(directory.glob("*.pem")):
            loaded = serialization.load_pem_private_key(path.read_bytes(), password=None)
            if not isinstance(loaded, Ed25519PrivateKey):
                raise TypeError(f"Unsupported key type in {path}")
            keys[path.stem] = loaded
        return keys

    def has_keys(self, member_id: str) -> bool:
        """Whether at least one key is stored for ``member_id``."""
        directory = self.member_dir(member_id)
        return directory.is_dir() and any(directory.glob("*.pem"))

    def clear(self) -> int:
        """Remove every member key directory and file under the root.

        Returns:
            int: Number of entries removed
        """
        if not self.root.exists():
            return 0

        removed = 0
        for path in self.root.iterdir():
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()
            removed += 1

        logger.info(f"Removed {removed} entries from {self.root}")
        return removed
