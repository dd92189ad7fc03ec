"""Password hashing helpers built on the scrypt KDF."""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

SALT_SIZE = 16
HASH_SIZE = 32
DIGEST_SCHEME = "scrypt"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text.encode("ascii"))


@dataclass(frozen=True)
class PasswordHasher:
    """Hashes and verifies passwords as self-describing scrypt digests.

    Digest layout: ``scrypt$n$r$p$salt$hash`` with urlsafe base64 salt/hash,
    so cost parameters can change without invalidating stored digests.
    """

    n: int = 2**14
    r: int = 8
    p: int = 1

    def hash(self, secret: str) -> str:
        """Return a new salted digest for secret."""
        salt = os.urandom(SALT_SIZE)
        kdf = Scrypt(salt=salt, length=HASH_SIZE, n=self.n, r=self.r, p=self.p)
        derived = kdf.derive(secret.encode("utf-8"))
        return "$".join(
            [DIGEST_SCHEME, str(self.n), str(self.r), str(self.p), _b64encode(salt), _b64encode(derived)]
        )

    def verify(self, secret: str, digest: str) -> bool:
        """Return True when secret matches digest. Malformed digests never verify."""
        parts = digest.split("$") if digest else []
        if len(parts) != 6 or parts[0] != DIGEST_SCHEME:
            return False
        try:
            n, r, p = int(parts[1]), int(parts[2]), int(parts[3])
            salt = _b64decode(parts[4])
            expected = _b64decode(parts[5])
            kdf = Scrypt(salt=salt, length=len(expected), n=n, r=r, p=p)
        except ValueError:
            return False

        try:
            kdf.verify(secret.encode("utf-8"), expected)
        except InvalidKey:
            return False
        return True
