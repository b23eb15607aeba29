"""
FastAPI dependencies for request identity and database sessions.

The bearer token is decoded into the acting user and organization. Callers
are trusted once the token verifies; no permission checks happen here.
"""

from dataclasses import dataclass
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from tripflow.core.config import get_settings
from tripflow.core.logging import get_logger, set_identity
from tripflow.database.connection import get_db

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)

ORGANIZATION_CLAIMS = ("org_id", "organization_id")


@dataclass(frozen=True)
class Identity:
    """Caller identity decoded from the bearer token."""

    user_id: UUID
    organization_id: UUID
    jwt: str


def _parse_uuid(value: Optional[str]) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


async def get_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Identity:
    """
    Decode the bearer token into an ``Identity``.

    Raises:
        HTTPException: 401 if the token is missing, invalid or lacks the
            user or organization claim
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        logger.warning("Authentication failed: No credentials provided")
        raise credentials_exception

    settings = get_settings()
    token = credentials.credentials

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning(
            "Authentication failed: JWT validation error",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise credentials_exception

    user_id = _parse_uuid(payload.get("sub"))
    organization_id = next(
        (
            parsed
            for parsed in (_parse_uuid(payload.get(claim)) for claim in ORGANIZATION_CLAIMS)
            if parsed is not None
        ),
        None,
    )
    if user_id is None or organization_id is None:
        logger.warning(
            "Authentication failed: Token missing identity claims",
            has_user=user_id is not None,
            has_organization=organization_id is not None,
        )
        raise credentials_exception

    set_identity(str(user_id), str(organization_id))
    return Identity(user_id=user_id, organization_id=organization_id, jwt=token)


CurrentIdentity = Annotated[Identity, Depends(get_identity)]
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
