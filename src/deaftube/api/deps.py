"""FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from deaftube.db.session import get_session
from deaftube.logging import bind_caller
from deaftube.services.errors import UnauthorizedError
from deaftube.services.identity import TokenClaims, decode_token
from deaftube.services.storage import StorageService

# Database session dependency
SessionDep = Annotated[Session, Depends(get_session)]

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenClaims:
    """Resolve the caller from the ``Authorization: Bearer`` header.

    Async so the caller is bound in the request task, where the threadpool
    worker that runs the route copies its log context from.
    """
    if credentials is None:
        raise UnauthorizedError("No token")
    claims = decode_token(credentials.credentials)
    bind_caller(claims.user_id)
    return claims


CurrentUserDep = Annotated[TokenClaims, Depends(get_current_user)]


@lru_cache
def get_storage() -> StorageService:
    """Get the upload store instance."""
    return StorageService()


StorageDep = Annotated[StorageService, Depends(get_storage)]
