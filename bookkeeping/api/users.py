"""Identity profile routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..domain.auth import AuthService
from ..domain.owner import OwnerKey
from ..domain.users import UserService
from ..security.rate_limiter import RateLimiter
from .dependencies import (
    enforce_rate_limit,
    get_auth_service,
    get_rate_limiter,
    get_user_service,
    resolve_owner,
)
from .schemas import DeletedResponse, RegisterRequest, UpdateUserRequest, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> UserResponse:
    enforce_rate_limit(limiter, f"register:{payload.email.lower()}")
    return UserResponse.from_domain(service.register(payload.to_domain()))


@router.get("", response_model=list[UserResponse])
def list_users(
    owner: OwnerKey = Depends(resolve_owner),
    service: UserService = Depends(get_user_service),
) -> list[UserResponse]:
    """List the identities visible to the caller (only its own)."""
    return [UserResponse.from_domain(user) for user in service.list_visible(owner)]


@router.get("/me", response_model=UserResponse)
def get_current_user(
    owner: OwnerKey = Depends(resolve_owner),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_domain(service.current(owner))


@router.patch("/me", response_model=UserResponse)
def update_current_user(
    payload: UpdateUserRequest,
    owner: OwnerKey = Depends(resolve_owner),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    current = service.current(owner)
    patch, password = payload.split()
    return UserResponse.from_domain(service.update(owner, current.user_id, patch, password))


@router.get("/namespace", response_model=UserResponse)
def find_by_namespace(
    user_ns: str = Query(..., min_length=1),
    token_talkbi: str = Query(..., min_length=1),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    """Look up the identity carrying a namespace/token pair (namespace tenancy mode)."""
    return UserResponse.from_domain(service.find_by_namespace(user_ns, token_talkbi))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    owner: OwnerKey = Depends(resolve_owner),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_domain(service.get(owner, user_id))


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UpdateUserRequest,
    owner: OwnerKey = Depends(resolve_owner),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    patch, password = payload.split()
    return UserResponse.from_domain(service.update(owner, user_id, patch, password))


@router.delete("/{user_id}", response_model=DeletedResponse)
def delete_user(
    user_id: str,
    owner: OwnerKey = Depends(resolve_owner),
    service: UserService = Depends(get_user_service),
) -> DeletedResponse:
    """Delete the caller's account together with its payables and receivables."""
    service.remove(owner, user_id)
    return DeletedResponse(id=user_id)
