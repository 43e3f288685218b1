"""
bcrypt password hasher - Implements PasswordHasher protocol.

Timing Oracle Prevention:
-------------------------
verify() always runs a bcrypt comparison. When there is no stored hash
(unknown email, or an OAuth account without a local password) it compares
against a pre-computed dummy hash and returns False, so response time does
not reveal whether the account exists.
"""

import bcrypt

# bcrypt only looks at the first 72 bytes; newer releases raise on longer input
_MAX_PASSWORD_BYTES = 72

# Hash of a throwaway password, compared against when no real hash exists
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))


def _pwd_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, rounds: int = 10) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_pwd_bytes(password), bcrypt.gensalt(rounds=self._rounds)).decode()

    def verify(self, password: str, hashed: str | None) -> bool:
        if hashed is None:
            bcrypt.checkpw(_pwd_bytes(password), _DUMMY_BCRYPT_HASH)
            return False
        try:
            return bcrypt.checkpw(_pwd_bytes(password), hashed.encode())
        except ValueError:
            # Stored value is not a bcrypt hash
            return False
