"""
Authentication endpoints: register, login and current user.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.user import UserCreate, UserResponse, UserLogin, AuthResponse
from app.services.auth_service import register_user, authenticate_user, get_user, issue_token
from app.core.security import CurrentUser, get_current_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user account and receive a JWT access token."""
    user = await register_user(db, user_data)
    return AuthResponse(access_token=issue_token(user), user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(login_data: UserLogin, request: Request, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    client_ip = request.client.host if request.client else None
    user = await authenticate_user(db, login_data, client_ip)
    return AuthResponse(access_token=issue_token(user), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, current_user.id)
