"""Generation of join codes for private groups."""

from __future__ import annotations

import secrets

from stepladder.core.constants import JOIN_CODE_ALPHABET, JOIN_CODE_LENGTH


def generate_join_code() -> str:
    """Return a fresh 8-character join code.

    Every symbol is drawn from a 32-character alphabet without the
    look-alike characters 0/O and 1/I, using the ``secrets`` byte source.
    Since 256 is a multiple of 32, ``byte % 32`` keeps the draw uniform.
    """
    random_bytes = secrets.token_bytes(JOIN_CODE_LENGTH)
    return "".join(
        JOIN_CODE_ALPHABET[byte % len(JOIN_CODE_ALPHABET)] for byte in random_bytes
    )


def normalize_join_code(code: str | None) -> str:
    """Trim and upper-case a user-supplied code."""
    return str(code or "").strip().upper()


def is_valid_join_code(code: str) -> bool:
    """Whether a normalized code could have been issued by ``generate_join_code``."""
    return len(code) == JOIN_CODE_LENGTH and all(
        char in JOIN_CODE_ALPHABET for char in code
    )
