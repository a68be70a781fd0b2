"""Human-typeable invite codes."""

import secrets

from classroom_invites.config import settings

# A-Z and 2-9 without I, L and O, so 0/O and 1/I/l can't be confused.
UNAMBIGUOUS_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
AMBIGUOUS_CHARACTERS = frozenset("01ILO")


def generate_code(length: int | None = None, alphabet: str = UNAMBIGUOUS_ALPHABET) -> str:
    """Draw a fresh random code.

    Uniqueness is not checked here; the invite store retries on collision.
    """
    length = length or settings.invite_code_length
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_code(raw: str) -> str:
    """Canonical form of a user-entered code: trimmed, no dashes, upper case."""
    return "".join(raw.split()).replace("-", "").upper()
