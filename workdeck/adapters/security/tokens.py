"""PyJWT bearer tokens - Implements TokenIssuer protocol."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt


class JwtTokenIssuer:
    """
    Issues and decodes signed JWTs carrying the account id in "sub".

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_minutes: int = 60) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expires = timedelta(minutes=expires_minutes)

    def issue(self, account_id: UUID) -> str:
        now = datetime.now(timezone.utc)
        # PyJWT expects "sub" to be a string
        payload = {"sub": str(account_id), "iat": now, "exp": now + self._expires}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> UUID | None:
        if not token:
            return None
        try:
            payload = jwt.decode(token.strip(), self._secret_key, algorithms=[self._algorithm])
        except jwt.PyJWTError:
            return None
        try:
            return UUID(payload["sub"])
        except (KeyError, TypeError, ValueError):
            return None
