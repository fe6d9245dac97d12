# app/rollcall/api/utilities/limiter.py

from fastapi import Request
import jwt

from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config.config import settings


def get_limiter_key(request: Request) -> str:
    """
    Rate limit key: the token subject when the request carries a decodable
    bearer token, the client address otherwise.
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1]
        try:
            # Only the identity matters here, expiry is checked by the auth dependency.
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                options={"verify_exp": False}
            )
            subject = payload.get("sub")
            if subject:
                return str(subject)
        except jwt.PyJWTError:
            pass

    return get_remote_address(request)

# RATE_LIMITER_REDIS_URL e.g. "redis://localhost:6379/1"; "memory://" for a single process.
limiter = Limiter(
    key_func=get_limiter_key,
    storage_uri=settings.RATE_LIMITER_REDIS_URL,
    enabled=settings.RATE_LIMIT_ENABLED,
)
