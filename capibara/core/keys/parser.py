"""
authorized_keys line parsing.

A key line looks like ``<type> <base64-material> [comment]``. Only the first
two tokens identify a key; the comment is a free-text label.
"""
import re
from enum import Enum
from typing import Optional

# Runs of spaces/tabs separate tokens
_TOKEN_SEPARATOR = re.compile(r"[ \t]+")

# Everything str.splitlines() splits on; stored lines are re-read with it
LINE_BREAKS = frozenset("\n\r\v\f\x1c\x1d\x1e\x85\u2028\u2029")


class KeyType(str, Enum):
    """Key algorithms accepted for registration."""
    ED25519 = "ssh-ed25519"
    RSA = "ssh-rsa"
    ECDSA_P256 = "ecdsa-sha2-nistp256"
    ECDSA_P384 = "ecdsa-sha2-nistp384"
    ECDSA_P521 = "ecdsa-sha2-nistp521"

    @classmethod
    def is_recognized(cls, token: Optional[str]) -> bool:
        """Check whether a token names an allowed key type (case-sensitive)."""
        return any(token == member.value for member in cls)


def _tokens(line: str) -> list:
    return [t for t in _TOKEN_SEPARATOR.split(line.strip()) if t]


def first_token(line: str) -> Optional[str]:
    """Return the first whitespace-delimited token, or None for blank input."""
    tokens = _tokens(line)
    return tokens[0] if tokens else None


def identity_of(line: str) -> Optional[str]:
    """
    Derive the identity of a key line: ``"<type> <material>"``.

    Returns None for blank lines and lines with fewer than two tokens.
    The material is not decoded or validated.
    """
    if not line or not line.strip():
        return None
    tokens = _tokens(line)
    if len(tokens) < 2:
        return None
    return f"{tokens[0]} {tokens[1]}"


def is_multiline(text: str) -> bool:
    """True if text contains any character str.splitlines() treats as a line boundary."""
    return any(ch in LINE_BREAKS for ch in text)
