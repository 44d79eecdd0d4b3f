"""
Account registration, login and password recovery.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, UnauthorizedError
from app.core.security import (
    RESET_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    create_reset_token,
    decode_token,
    get_password_hash,
    verify_password,
    verify_token,
)
from app.models.user import Usuario, RolUsuario, NivelDonante
from app.services.email import email_service
from app.services.users import find_by_email

logger = logging.getLogger(__name__)

RESET_REQUEST_MESSAGE = (
    "Si el correo está registrado, recibirás un enlace para restablecer tu contraseña"
)


def issue_tokens(user: Usuario) -> dict:
    return {
        "access_token": create_access_token(subject=user.id, additional_claims={"rol": user.rol.value}),
        "refresh_token": create_refresh_token(subject=user.id),
        "token_type": "bearer",
    }


def _reset_nonce(user: Usuario) -> str:
    # Bound to the current hash, so a token dies once the password changes.
    return user.password_hash[-16:]


async def register(db: AsyncSession, *, correo: str, password: str, **profile) -> Usuario:
    if await find_by_email(db, correo) is not None:
        raise BadRequestError({"correo": {"message": "El correo ya está registrado"}})

    user = Usuario(
        **profile,
        correo=correo.lower(),
        password_hash=get_password_hash(password),
        rol=RolUsuario.DONANTE,
        activo=True,
        puntos_acumulados=0,
        nivel_donante=NivelDonante.BRONCE,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info("User %s registered", user.id)

    await email_service.send_welcome_email(user.correo, user.nombres)
    return user


async def authenticate(db: AsyncSession, correo: str, password: str) -> Usuario:
    user = await find_by_email(db, correo)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Correo o contraseña incorrectos")
    if not user.activo:
        raise UnauthorizedError("La cuenta está desactivada")

    user.ultimo_login = datetime.now(timezone.utc)
    await db.flush()
    return user


async def refresh(db: AsyncSession, refresh_token: str) -> Usuario:
    user_id = verify_token(refresh_token, REFRESH_TOKEN_TYPE)
    user = await db.get(Usuario, user_id) if user_id else None
    if user is None or not user.activo:
        raise UnauthorizedError("Token de actualización inválido o expirado")
    return user


async def request_password_reset(db: AsyncSession, correo: str) -> str:
    """
    Mail a reset link when the account exists.

    The returned message is the same either way so callers cannot tell
    which e-mails are registered.
    """
    user = await find_by_email(db, correo)
    if user is not None and user.activo:
        token = create_reset_token(user.id, _reset_nonce(user))
        await email_service.send_password_reset(user.correo, user.nombres, token)
        logger.info("Password reset requested for user %s", user.id)
    return RESET_REQUEST_MESSAGE


async def reset_password(db: AsyncSession, token: str, password_nuevo: str) -> Usuario:
    payload: Optional[dict] = decode_token(token)
    if payload is None or payload.get("type") != RESET_TOKEN_TYPE:
        raise BadRequestError("Token inválido o expirado")

    user = await db.get(Usuario, payload.get("sub"))
    if user is None or not user.activo or payload.get("jti") != _reset_nonce(user):
        raise BadRequestError("Token inválido o expirado")

    user.password_hash = get_password_hash(password_nuevo)
    await db.flush()
    logger.info("Password reset completed for user %s", user.id)
    return user
