"""
auth/passwords.py -- bcrypt password hashing.

Security design decisions:
  bcrypt directly (no passlib wrapper). passlib's wrap-bug detection builds a
  password longer than 72 bytes, which bcrypt 4.x+ rejects outright.

  Output is self-describing: "$2b$<cost>$<22-char salt><31-char digest>".
  verify() reads cost and salt back out of the stored string, so raising the
  cost factor later never invalidates existing hashes. needs_rehash() tells
  callers when a stored hash was made with a different cost.

  bcrypt only looks at the first 72 bytes of input. hash() refuses longer
  passwords instead of truncating them; verify() simply returns False.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted one-way hash and verify, with a tunable bcrypt cost factor."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of plain with a fresh random salt."""
        if not plain:
            raise ValueError("Password must not be empty.")
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. False for any malformed input."""
        if not plain or not hashed:
            return False
        encoded = plain.encode("utf-8")
        # Older bcrypt releases truncate instead of raising; never match a truncated prefix.
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> None:
        """Spend the same bcrypt work as verify() against a throwaway hash.

        Used when the username does not exist and timing equalization is on.
        The dummy hash is built lazily so it always carries this hasher's cost.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("locallogin_timing_dummy")
        self.verify(plain or "x", self._dummy_hash)

    def needs_rehash(self, hashed: str) -> bool:
        """Return True if hashed was produced with a cost other than self.rounds."""
        parts = hashed.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds
