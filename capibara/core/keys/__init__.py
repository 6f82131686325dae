"""
SSH Authorized Keys Module

Parsing of authorized_keys lines and the append-only registrar that owns
the authorized_keys file.
"""

from capibara.core.keys.parser import (
    KeyType,
    identity_of,
    first_token,
    is_multiline,
)
from capibara.core.keys.registrar import (
    AuthorizedKeysRegistrar,
    RegistrationResult,
    RegistrationStatus,
    InvalidReason,
    KeyStoreError,
    get_registrar,
    reset_registrar,
)

__all__ = [
    # Parsing
    "KeyType",
    "identity_of",
    "first_token",
    "is_multiline",
    # Registrar
    "AuthorizedKeysRegistrar",
    "RegistrationResult",
    "RegistrationStatus",
    "InvalidReason",
    "KeyStoreError",
    "get_registrar",
    "reset_registrar",
]
