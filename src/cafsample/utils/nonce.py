"""Random identifiers used for CSRF tokens, reference ids and aliases."""

import secrets

# Base58: no 0/O/I/l, safe in URLs, cookies and email local parts
_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def generate_nonce(length: int = 20) -> str:
    """Generate a cryptographically random base58 string.

    Args:
        length: Number of characters to generate

    Returns:
        str: Random nonce of the requested length

    Raises:
        ValueError: If length is not positive
    """
    if length < 1:
        raise ValueError("Nonce length must be positive")
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))
