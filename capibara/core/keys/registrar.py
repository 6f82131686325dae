"""
Authorized Keys Registrar

Append-only registration of SSH public keys into an authorized_keys file.

Guarantees:
- One record per physical line, UTF-8 without BOM
- No two lines with the same text (exact duplicate)
- No two lines with the same identity "<type> <material>" (content duplicate),
  regardless of the trailing comment
- Records are never rewritten or removed

All registrations in a process are serialized by a single lock held across
the read, the duplicate scans and the append. The lock is process-local:
several processes writing the same file are not coordinated.
"""

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from capibara.core.keys.parser import KeyType, first_token, identity_of, is_multiline

logger = logging.getLogger(__name__)


class RegistrationStatus(str, Enum):
    """Terminal outcome of a registration attempt."""
    CREATED = "created"
    DUPLICATE_EXACT = "duplicate_exact"
    DUPLICATE_CONTENT = "duplicate_content"
    INVALID = "invalid"


class InvalidReason(str, Enum):
    """Why a candidate line was rejected before touching the file."""
    EMPTY = "empty"
    MULTILINE = "multiline"
    UNRECOGNIZED_TYPE = "unrecognized-type"
    MALFORMED = "malformed"


_MESSAGES = {
    RegistrationStatus.CREATED: "Key registered.",
    RegistrationStatus.DUPLICATE_EXACT: "The key already exists (exact match).",
    RegistrationStatus.DUPLICATE_CONTENT: "An identical key already exists under a different comment.",
    InvalidReason.EMPTY: "The public key must not be empty.",
    InvalidReason.MULTILINE: "The key must be a single line.",
    InvalidReason.UNRECOGNIZED_TYPE: "Unrecognized SSH key format.",
    InvalidReason.MALFORMED: "Invalid SSH key format.",
}


class KeyStoreError(Exception):
    """The authorized_keys file could not be read or appended to."""


@dataclass(frozen=True)
class RegistrationResult:
    """
    Result of AuthorizedKeysRegistrar.register().

    Attributes:
        status: Terminal outcome
        line: Normalized candidate line (whitespace-trimmed)
        reason: Set only when status is INVALID
    """
    status: RegistrationStatus
    line: str
    reason: Optional[InvalidReason] = None

    @property
    def message(self) -> str:
        return _MESSAGES[self.reason if self.reason else self.status]

    @property
    def created(self) -> bool:
        return self.status == RegistrationStatus.CREATED

    @property
    def is_duplicate(self) -> bool:
        return self.status in (RegistrationStatus.DUPLICATE_EXACT, RegistrationStatus.DUPLICATE_CONTENT)


def validate_candidate(line: str) -> Optional[InvalidReason]:
    """
    Validate a trimmed candidate line. Checks run in order and stop at the
    first failure: empty, multiline, unrecognized type, malformed identity.
    """
    if not line or not line.strip():
        return InvalidReason.EMPTY
    if is_multiline(line):
        return InvalidReason.MULTILINE
    if not KeyType.is_recognized(first_token(line)):
        return InvalidReason.UNRECOGNIZED_TYPE
    if identity_of(line) is None:
        return InvalidReason.MALFORMED
    return None


class AuthorizedKeysRegistrar:
    """
    Owner of one authorized_keys file.

    register() is the only mutating entry point. It is safe to call from
    many threads at once.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def register(self, candidate: str) -> RegistrationResult:
        """
        Register a single key line.

        Invalid and duplicate candidates are reported through the returned
        status; only I/O failures raise.

        Raises:
            KeyStoreError: If the file cannot be read, its directory cannot
                be created, or the append fails
        """
        line = (candidate or "").strip()

        with self._lock:
            reason = validate_candidate(line)
            if reason is not None:
                logger.info(f"Rejected key registration: {reason.value}")
                return RegistrationResult(RegistrationStatus.INVALID, line, reason)

            identity = identity_of(line)
            existing = self._read_lines()

            # Exact match is checked first so it wins over the broader identity match
            if any(existing_line.strip() == line for existing_line in existing):
                logger.info(f"Duplicate key (exact): {_describe(identity)}")
                return RegistrationResult(RegistrationStatus.DUPLICATE_EXACT, line)

            if any(identity_of(existing_line) == identity for existing_line in existing):
                logger.info(f"Duplicate key (content): {_describe(identity)}")
                return RegistrationResult(RegistrationStatus.DUPLICATE_CONTENT, line)

            self._append(line)
            logger.info(f"Registered key {_describe(identity)} in {self.path}")
            return RegistrationResult(RegistrationStatus.CREATED, line)

    def list_lines(self) -> List[str]:
        """Current records in file order, blank lines dropped."""
        with self._lock:
            return [l.strip() for l in self._read_lines() if l.strip()]

    def contains(self, line: str) -> bool:
        """Exact-match lookup, same comparison register() uses."""
        line = line.strip()
        with self._lock:
            return any(existing.strip() == line for existing in self._read_lines())

    # ------------------------------------------------------------------
    # File access (caller holds self._lock)
    # ------------------------------------------------------------------

    def _read_lines(self) -> List[str]:
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise KeyStoreError(f"Failed to read {self.path}: {e}") from e

        # utf-8-sig drops a BOM written by some other tool; we never write one
        return data.decode("utf-8-sig", errors="replace").splitlines()

    def _needs_leading_newline(self) -> bool:
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            return False
        if size == 0:
            return False
        with open(self.path, "rb") as f:
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"

    def _append(self, line: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            payload = line.encode("utf-8") + b"\n"
            if self._needs_leading_newline():
                payload = b"\n" + payload

            # One write of the complete record
            with open(self.path, "ab") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise KeyStoreError(f"Failed to append to {self.path}: {e}") from e


def _describe(identity: Optional[str]) -> str:
    """Short, log-safe form of an identity: type plus material prefix."""
    if not identity:
        return "<none>"
    key_type, material = identity.split(" ", 1)
    return f"{key_type} {material[:12]}..."


# Process-wide registrar (one lock per process)
_registrar: Optional[AuthorizedKeysRegistrar] = None
_registrar_lock = threading.Lock()


def get_registrar() -> AuthorizedKeysRegistrar:
    """
    Get the process-wide registrar bound to the configured file.

    Returns:
        AuthorizedKeysRegistrar singleton
    """
    global _registrar
    with _registrar_lock:
        if _registrar is None:
            from capibara.core.config import get_settings
            _registrar = AuthorizedKeysRegistrar(get_settings().authorized_keys_file)
        return _registrar


def reset_registrar() -> None:
    """Drop the singleton so the next get_registrar() re-reads settings (testing)."""
    global _registrar
    with _registrar_lock:
        _registrar = None
