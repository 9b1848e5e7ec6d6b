"""Registration and login routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..domain.auth import AuthService
from ..security.rate_limiter import RateLimiter
from .dependencies import enforce_rate_limit, get_auth_service, get_rate_limiter
from .schemas import LoginRequest, LoginResponse, RegisterRequest, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> UserResponse:
    """Register a new identity."""
    enforce_rate_limit(limiter, f"register:{payload.email.lower()}")
    return UserResponse.from_domain(service.register(payload.to_domain()))


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> LoginResponse:
    """Exchange email and password for a bearer session token."""
    enforce_rate_limit(limiter, f"login:{payload.email.lower()}")
    session = service.login(payload.email, payload.password)
    return LoginResponse(
        access_token=session.access_token,
        expires_in=session.expires_in,
        user=UserResponse.from_domain(session.user),
    )
