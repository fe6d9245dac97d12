import logging
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID, uuid4
import jwt
import redis.exceptions
from pydantic import ValidationError

from .schemas.user import PrincipalResponse, TokenData
from ..models.db_models import Principal, ROLE_DOCTOR, ROLE_STUDENT
from ..db.redis_client import RedisClient
from ..config.config import settings
from .dependencies import get_redis_client
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)
bearer_scheme = HTTPBearer(auto_error=False)

KNOWN_ROLES = (ROLE_DOCTOR, ROLE_STUDENT)
DEFAULT_REVOCATION_TTL_SECONDS = 24 * 3600


# --- Helpers ---
def create_access_token(principal_id: UUID, role: str, expires_delta: timedelta) -> str:
    """
    Mints a token in the identity provider's format. The API never issues
    tokens itself; this serves local tooling and tests.
    """
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(principal_id), "role": role, "jti": str(uuid4()), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# --- Identity gateway dependencies ---
async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    redis_client: RedisClient = Depends(get_redis_client)
) -> TokenData:
    """
    Verifies the bearer token's signature and expiry, validates its claims
    with pydantic and rejects tokens revoked through /auth/logout.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise credentials_exception
    try:
        payload = jwt.decode(credentials.credentials, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData.model_validate(payload)
    except (jwt.PyJWTError, ValidationError) as e:
        logger.warning(f"Token validation error: {e}")
        raise credentials_exception

    if token_data.role not in KNOWN_ROLES:
        logger.warning(f"Token for '{token_data.sub}' carries unknown role '{token_data.role}'.")
        raise credentials_exception

    try:
        revoked = await redis_client.is_token_revoked(token_data.jti)
    except redis.exceptions.RedisError:
        logger.error("Redis error while checking token revocation.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Authentication service is unavailable.")
    if revoked:
        logger.warning(f"Revoked token presented by '{token_data.sub}'.")
        raise credentials_exception
    return token_data


async def get_current_principal(token_data: TokenData = Depends(get_token_data)) -> Principal:
    return Principal(id=token_data.sub, role=token_data.role)


def require_doctor(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_doctor:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This operation is only valid for instructors.")
    return principal


def require_student(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_student:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This operation is only valid for students.")
    return principal


# --- Endpoints ---

@router.get("/me", response_model=PrincipalResponse)
@limiter.limit("60/minute")
async def read_current_principal(request: Request, principal: Principal = Depends(get_current_principal)):
    return principal


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def logout(
    request: Request,
    token_data: TokenData = Depends(get_token_data),
    redis_client: RedisClient = Depends(get_redis_client)
):
    """Revokes the presented token until it expires."""
    if not token_data.jti:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This token cannot be revoked.")
    now = int(datetime.now(timezone.utc).timestamp())
    ttl = (token_data.exp - now) if token_data.exp else DEFAULT_REVOCATION_TTL_SECONDS
    try:
        await redis_client.revoke_token(token_data.jti, ttl)
    except redis.exceptions.RedisError:
        logger.error(f"Error during logout for '{token_data.sub}'.", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="An error occurred during logout.")
    logger.info(f"Token of '{token_data.sub}' revoked.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
