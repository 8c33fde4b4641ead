"""
Authentication endpoints.
"""
from fastapi import APIRouter, status

from beatstore.core.deps import CurrentUser, DbSession
from beatstore.core.security import issue_token
from beatstore.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from beatstore.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: DbSession) -> AuthResponse:
    """Exchange e-mail and password for a bearer token."""
    user = await UserService(db).login(request.email, request.password)
    return AuthResponse(access_token=issue_token(user), user=UserResponse.model_validate(user))


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, db: DbSession) -> AuthResponse:
    """Register a customer account."""
    user = await UserService(db).register(request.email, request.password, request.name)
    return AuthResponse(access_token=issue_token(user), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)
