"""
Argon2id Password Hashing
=========================

Implements password hashing using Argon2id via argon2-cffi.

Security Properties:
- Memory-hard (resistant to GPU/ASIC attacks)
- Random salt per call, embedded in the encoded digest
- Constant-time verification
- No fallback: if Argon2 fails, hashing fails

Parameters (OWASP Password Storage Cheat Sheet minimum):
- memory_cost: 19456 KiB (19 MiB)
- time_cost: 2 iterations
- parallelism: 1 thread

References:
- RFC 9106: Argon2 Memory-Hard Function
- OWASP Password Storage Cheat Sheet
"""

from __future__ import annotations

import logging
from typing import Final

from argon2 import PasswordHasher, Type
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
)

from keygate.core.errors import HasherUnavailableError


ARGON2_MEMORY_COST: Final[int] = 19456  # KiB
ARGON2_TIME_COST: Final[int] = 2  # iterations
ARGON2_PARALLELISM: Final[int] = 1  # threads
ARGON2_HASH_LENGTH: Final[int] = 32  # 256 bits
ARGON2_SALT_LENGTH: Final[int] = 16  # 128 bits

# Verified against when the user does not exist, so the unknown-user path
# costs the same as the wrong-password path.
_DUMMY_PASSWORD: Final[str] = "keygate-timing-equalizer"


class Argon2Hasher:
    """
    Argon2id password hasher with secure defaults.

    Usage:
        hasher = Argon2Hasher()

        digest = hasher.hash("user_password")
        store(digest)

        is_valid = hasher.verify("user_password", digest)

    Security Notes:
        - Two hashes of the same password never match (fresh salt)
        - verify() never raises for a bad password or a corrupt digest
        - hash() raises HasherUnavailableError instead of degrading
    """

    __slots__ = (
        "_memory_cost", "_time_cost", "_parallelism",
        "_hash_length", "_salt_length", "_hasher", "_dummy_digest", "_log",
    )

    def __init__(
        self,
        memory_cost: int = ARGON2_MEMORY_COST,
        time_cost: int = ARGON2_TIME_COST,
        parallelism: int = ARGON2_PARALLELISM,
        hash_length: int = ARGON2_HASH_LENGTH,
        salt_length: int = ARGON2_SALT_LENGTH,
    ) -> None:
        """
        Initialize the Argon2id hasher.

        Args:
            memory_cost: Memory usage in KiB
            time_cost: Number of iterations
            parallelism: Degree of parallelism
            hash_length: Output hash length in bytes
            salt_length: Salt length in bytes
        """
        if parallelism < 1:
            raise ValueError("parallelism must be at least 1")
        if memory_cost < 8 * parallelism:
            raise ValueError("memory_cost must be at least 8 KiB per lane")
        if time_cost < 1:
            raise ValueError("time_cost must be at least 1")
        if hash_length < 16:
            raise ValueError("hash_length must be at least 16 bytes")
        if salt_length < 16:
            raise ValueError("salt_length must be at least 16 bytes")

        self._memory_cost = memory_cost
        self._time_cost = time_cost
        self._parallelism = parallelism
        self._hash_length = hash_length
        self._salt_length = salt_length
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=hash_length,
            salt_len=salt_length,
            type=Type.ID,
        )
        self._log = logging.getLogger("keygate.auth.hasher")
        # Computed up front so the first unknown-user login costs no extra hash.
        self._dummy_digest = self.hash(_DUMMY_PASSWORD)

    @property
    def parameters(self) -> dict[str, int]:
        """Get current hashing parameters."""
        return {
            "memory_cost": self._memory_cost,
            "time_cost": self._time_cost,
            "parallelism": self._parallelism,
            "hash_length": self._hash_length,
            "salt_length": self._salt_length,
        }

    def hash(self, password: str) -> str:
        """
        Hash a password using Argon2id.

        Returns:
            Encoded digest ($argon2id$v=19$m=...,t=...,p=...$SALT$HASH)

        Raises:
            ValueError: If password is empty
            HasherUnavailableError: If Argon2 fails to produce a digest
        """
        if not password:
            raise ValueError("Password cannot be empty")

        try:
            return self._hasher.hash(password)
        except HashingError as e:
            self._log.error("Argon2 hashing failed: %s", e)
            raise HasherUnavailableError("Password hashing is unavailable") from e

    def verify(self, password: str, encoded: str) -> bool:
        """
        Verify a password against an encoded digest in constant time.

        Returns:
            True if password matches, False otherwise (including when the
            stored digest is malformed)
        """
        if not password or not encoded:
            return False

        try:
            return self._hasher.verify(encoded, password)
        except (VerificationError, InvalidHashError):
            return False

    def verify_dummy(self, password: str) -> bool:
        """Spend one verification on a fixed digest. Always returns False."""
        self.verify(password or _DUMMY_PASSWORD[::-1], self._dummy_digest)
        return False

    def needs_rehash(self, encoded: str) -> bool:
        """
        Check if a digest was produced with different parameters.

        Returns True for digests this hasher would not produce today.
        """
        try:
            return self._hasher.check_needs_rehash(encoded)
        except InvalidHashError:
            return True
