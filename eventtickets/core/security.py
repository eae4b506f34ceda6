from datetime import datetime, timedelta, timezone
from typing import Any, Optional
import jwt

from eventtickets.core.config import settings

# Tokens are minted by the external identity provider; we only need the
# subject (user id). create_access_token exists for tests and local tooling.

def create_access_token(subject: str | Any, expires_delta: Optional[timedelta] = None, secret_key: str | None = None) -> str:
    expire = datetime.now(tz=timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode: dict[str, Any] = {"sub": str(subject), "exp": expire}
    return jwt.encode(to_encode, secret_key or settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, secret_key: str | None = None) -> dict[str, Any]:
    """Decode an access token.
    Raises jwt.PyJWTError if invalid and returns the payload as a dict.
    """
    payload = jwt.decode(token, secret_key or settings.secret_key, algorithms=[settings.algorithm])
    return payload
