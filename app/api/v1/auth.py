"""
Authentication endpoints.

Endpoints:
- POST /auth/registro - Register a donor account
- POST /auth/login - Login with e-mail and password
- POST /auth/refresh - Exchange a refresh token for new tokens
- POST /auth/solicitar-reset - Request a password reset e-mail
- POST /auth/reset-password - Set a new password with a reset token
- GET /auth/me - Current user
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user
from app.models.user import Usuario
from app.schemas.common import MessageResponse
from app.schemas.user import (
    UserCreate, UserLogin, UserResponse, TokenResponse,
    RefreshRequest, PasswordResetRequest, PasswordReset
)
from app.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def token_response(user: Usuario) -> TokenResponse:
    return TokenResponse(
        **auth_service.issue_tokens(user),
        usuario=UserResponse.model_validate(user),
    )


@router.post("/registro", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new donor and log them in."""
    user = await auth_service.register(db, **user_data.model_dump())
    return token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    user = await auth_service.authenticate(db, credentials.correo, credentials.password)
    return token_response(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db)
):
    user = await auth_service.refresh(db, data.refresh_token)
    return token_response(user)


@router.post("/solicitar-reset", response_model=MessageResponse)
async def request_password_reset(
    data: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
):
    """Always answers with the same message, registered or not."""
    message = await auth_service.request_password_reset(db, data.correo)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: PasswordReset,
    db: AsyncSession = Depends(get_db)
):
    await auth_service.reset_password(db, data.token, data.password_nuevo)
    return MessageResponse(message="Contraseña actualizada correctamente")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: Usuario = Depends(get_current_user)):
    return current_user
