from dataclasses import dataclass, field
from typing import Annotated, Any
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from erp.database import get_db
from erp.core.security import verify_access_token


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; missing credentials are reported as 401 below
security = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """Authenticated caller as described by the access token."""
    user_id: uuid.UUID
    organization_id: uuid.UUID
    claims: dict[str, Any] = field(default_factory=dict)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal:
    """
    Dependency to get the current authenticated principal.
    Validates the JWT token and extracts the user and organization ids.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    claims = verify_access_token(credentials.credentials)
    if claims is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    try:
        user_id = uuid.UUID(claims["sub"])
        organization_id = uuid.UUID(claims["organization_id"])
    except (ValueError, TypeError, AttributeError):
        # Non-string claims raise TypeError or AttributeError rather than ValueError
        logger.warning(f"Invalid ids in token: sub={claims.get('sub')}")
        raise credentials_exception

    return Principal(user_id=user_id, organization_id=organization_id, claims=claims)


async def get_organization_id(
    user: Annotated[Principal, Depends(get_current_user)],
) -> uuid.UUID:
    """Organization every query of the request is scoped to."""
    return user.organization_id


# Type aliases for cleaner endpoint signatures
CurrentUser = Annotated[Principal, Depends(get_current_user)]
OrgId = Annotated[uuid.UUID, Depends(get_organization_id)]
DB = Annotated[AsyncSession, Depends(get_db)]
