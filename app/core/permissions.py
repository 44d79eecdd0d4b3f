"""Role & ownership helpers for user-scoped resources."""
from typing import Optional

from app.core.exceptions import ForbiddenError
from app.models.user import Usuario, RolUsuario


def is_admin(user: Optional[Usuario]) -> bool:
    return user is not None and user.rol == RolUsuario.ADMIN


def require_admin(user: Usuario) -> Usuario:
    """Ensure the user has the admin role. Raises 403 otherwise."""
    if not is_admin(user):
        raise ForbiddenError("Se requiere rol de administrador")
    return user


def ensure_owner_or_admin(
    user: Usuario,
    owner_id: Optional[str],
    detail: str = "No tienes permiso para acceder a este recurso",
) -> None:
    """Allow the resource owner or any admin; everyone else gets 403.

    Resources without an owner (anonymous donations) are admin-only.
    """
    if is_admin(user):
        return
    if owner_id is None or owner_id != user.id:
        raise ForbiddenError(detail)
