"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Path, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from threadhub.core.settings import settings
from threadhub.db.session import get_db
from threadhub.models import User
from threadhub.schemas.common import OperationResult, PageParams, ResultReason
from threadhub.services.cache import ViewCache, get_view_cache
from threadhub.services.identifiers import CommunityRef
from threadhub.services.identity import IdentityProvider, get_identity_provider
from threadhub.services.retry import RetryPolicy
from threadhub.services.user_service import get_user

# HTTP Bearer scheme for Clerk session tokens
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

_REASON_STATUS = {
    ResultReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ResultReason.CONFLICT: status.HTTP_409_CONFLICT,
    ResultReason.INVALID: status.HTTP_400_BAD_REQUEST,
    ResultReason.EXTERNAL: status.HTTP_502_BAD_GATEWAY,
    ResultReason.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the Clerk user ID from a verified session token.

    Raises:
        HTTPException: If the token is invalid or carries no subject
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.clerk_jwt_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return str(subject)


CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]


def get_current_user(user_id: CurrentUserIdDep, db: SessionDep) -> User:
    """Get the local profile of the authenticated user.

    Raises:
        HTTPException: If the user has not been onboarded yet
    """
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_provider() -> IdentityProvider:
    return get_identity_provider()


def get_cache() -> ViewCache:
    return get_view_cache()


def get_retry_policy() -> RetryPolicy:
    return RetryPolicy.from_settings()


ProviderDep = Annotated[IdentityProvider, Depends(get_provider)]
CacheDep = Annotated[ViewCache, Depends(get_cache)]
RetryPolicyDep = Annotated[RetryPolicy, Depends(get_retry_policy)]


def get_community_ref(
    community_ref: Annotated[str, Path(description="Storage pk, public id or organization id")],
) -> CommunityRef:
    """Parse the path identifier once, at the boundary."""
    try:
        return CommunityRef.parse(community_ref)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err


CommunityRefDep = Annotated[CommunityRef, Depends(get_community_ref)]


def get_page_params(
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1)] = None,
) -> PageParams:
    size = min(page_size or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, page_size=size)


PageDep = Annotated[PageParams, Depends(get_page_params)]


def raise_for_result(result: OperationResult) -> OperationResult:
    """Return a successful result unchanged, otherwise raise the matching HTTP error."""
    if result.success:
        return result
    status_code = _REASON_STATUS.get(
        result.reason or ResultReason.INTERNAL,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    raise HTTPException(status_code=status_code, detail=result.error)
