"""Cancellation token issuance."""

import secrets

# URL-safe, without look-alikes (0/O, 1/l/I)
TOKEN_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
TOKEN_LENGTH = 24


def issue_token() -> str:
    """Return a fresh random cancellation token (about 140 bits of entropy)."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def tokens_match(expected: str | None, presented: str | None) -> bool:
    """Constant-time comparison; a missing token never matches."""
    if not expected or not presented:
        return False
    return secrets.compare_digest(expected.encode(), presented.encode())
