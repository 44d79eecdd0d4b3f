"""
User account endpoints: profile, password, notifications, history.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin
from app.models.user import Usuario
from app.schemas.common import PaginatedResponse, MessageResponse
from app.schemas.donation import DonationResponse
from app.schemas.reward import AssignmentResponse
from app.schemas.subscription import SubscriptionResponse
from app.schemas.user import (
    UserResponse, UserUpdate, PasswordChange,
    NotificationCreate, NotificationResponse,
    HistoryResponse, PersonalStatistics
)
from app.services import users
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/usuarios", tags=["usuarios"])


# ============================================================================
# ADMIN LISTING
# ============================================================================

@router.get("", response_model=PaginatedResponse[UserResponse])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    activo: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    rows, total = await paginate(db, users.user_query(activo), page, limit)
    return PaginatedResponse.build(
        [UserResponse.model_validate(u) for u in rows], total, page, limit
    )


@router.get("/buscar", response_model=PaginatedResponse[UserResponse])
async def search_users(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    """Search by name, e-mail or cedula."""
    rows, total = await paginate(db, users.search_query(q), page, limit)
    return PaginatedResponse.build(
        [UserResponse.model_validate(u) for u in rows], total, page, limit
    )


# ============================================================================
# OWN PROFILE
# ============================================================================

@router.get("/perfil", response_model=UserResponse)
async def get_profile(current_user: Usuario = Depends(get_current_user)):
    return current_user


@router.put("/perfil", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await users.update_profile(db, current_user, **data.model_dump(exclude_unset=True))


@router.post("/cambiar-password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    await users.change_password(db, current_user, data.password_actual, data.password_nuevo)
    return MessageResponse(message="Contraseña actualizada correctamente")


@router.delete("/perfil", response_model=MessageResponse)
async def deactivate_own_account(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    await users.deactivate(db, current_user)
    return MessageResponse(message="Cuenta desactivada")


@router.get("/historial", response_model=HistoryResponse)
async def get_history(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    history = await users.get_history(db, current_user)
    return HistoryResponse(
        donaciones=[DonationResponse.model_validate(d) for d in history["donaciones"]],
        suscripciones=[SubscriptionResponse.model_validate(s) for s in history["suscripciones"]],
        recompensas=[AssignmentResponse.model_validate(r) for r in history["recompensas"]],
    )


@router.get("/estadisticas", response_model=PersonalStatistics)
async def get_personal_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await users.get_personal_statistics(db, current_user)


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@router.get("/notificaciones", response_model=PaginatedResponse[NotificationResponse])
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    leida: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    rows, total = await paginate(db, users.notification_query(current_user.id, leida), page, limit)
    return PaginatedResponse.build(
        [NotificationResponse.model_validate(n) for n in rows], total, page, limit
    )


@router.post("/notificaciones", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    data: NotificationCreate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await users.create_notification(db, data.id_usuario, data.tipo, data.titulo, data.mensaje)


@router.patch("/notificaciones/leer-todas", response_model=MessageResponse)
async def mark_all_notifications_read(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    count = await users.mark_all_read(db, current_user)
    return MessageResponse(message=f"{count} notificaciones marcadas como leídas")


@router.patch("/notificaciones/{notification_id}/leer", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await users.mark_read(db, current_user, notification_id)


# ============================================================================
# ADMIN BY ID
# ============================================================================

@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await users.get_user(db, user_id)


@router.delete("/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    user = await users.get_user(db, user_id)
    return await users.deactivate(db, user)


@router.post("/{user_id}/resumen-mensual", response_model=MessageResponse)
async def send_monthly_summary(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    sent = await users.send_monthly_summary(db, user_id)
    return MessageResponse(
        message="Resumen enviado" if sent else "No hay donaciones el mes anterior o el envío falló"
    )
