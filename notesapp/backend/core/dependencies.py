"""
FastAPI Dependencies.

Shared dependencies for request handling.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from notesapp.backend.core.database import get_db_session
from notesapp.backend.core.exceptions import AuthenticationError
from notesapp.backend.core.logging import get_logger
from notesapp.backend.core.security import (
    SessionUser,
    decode_identity_token,
    session_from_claims,
)
from notesapp.backend.storage import ObjectStorage, get_object_storage

logger = get_logger(__name__)

# Type alias for database session dependency
DbSession = Annotated[AsyncSession, Depends(get_db_session)]

# Type alias for object storage dependency
Storage = Annotated[ObjectStorage, Depends(get_object_storage)]


async def get_request_id(x_request_id: str | None = Header(None)) -> str:
    """
    Extract or generate request ID from headers.

    Used for request tracing and correlation.
    """
    return x_request_id or str(uuid.uuid4())


RequestId = Annotated[str, Depends(get_request_id)]


async def get_session(
    authorization: str | None = Header(None),
) -> SessionUser | None:
    """
    Resolve the identity provider session from the Authorization header.

    Returns None when no bearer token is presented. A presented but
    invalid token raises AuthenticationError.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must use the Bearer scheme")

    claims = await decode_identity_token(token.strip())
    return session_from_claims(claims)


async def get_current_user(
    session: SessionUser | None = Depends(get_session),
) -> SessionUser:
    """
    Get the acting user, failing when there is no session.

    Raises:
        AuthenticationError: If the request carries no session
    """
    if session is None:
        raise AuthenticationError("Log in to continue")
    return session


CurrentUser = Annotated[SessionUser, Depends(get_current_user)]
