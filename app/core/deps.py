"""
FastAPI dependencies: database-backed authentication and shared services.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.security import verify_token
from app.core.exceptions import UnauthorizedError
from app.core.permissions import require_admin
from app.models.user import Usuario
from app.services.configuration import ConfigCache

bearer_scheme = HTTPBearer(auto_error=False)


async def _load_active_user(db: AsyncSession, user_id: Optional[str]) -> Usuario:
    if user_id is None:
        raise UnauthorizedError("Token inválido o expirado")

    result = await db.execute(select(Usuario).where(Usuario.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.activo:
        raise UnauthorizedError("Usuario no encontrado o inactivo")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Usuario:
    """Resolve the bearer token to an active user, or 401."""
    if credentials is None:
        raise UnauthorizedError()
    return await _load_active_user(db, verify_token(credentials.credentials))


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[Usuario]:
    """Like get_current_user, but anonymous requests resolve to None."""
    if credentials is None:
        return None
    return await _load_active_user(db, verify_token(credentials.credentials))


async def get_current_admin(
    current_user: Usuario = Depends(get_current_user)
) -> Usuario:
    return require_admin(current_user)


def get_config_cache(request: Request) -> ConfigCache:
    """The application-owned configuration cache."""
    return request.app.state.config_cache
