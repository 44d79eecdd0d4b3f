"""
Donor account registry: profile, notifications, history and personal figures.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.core.security import get_password_hash, verify_password
from app.models.campaign import Campana
from app.models.donation import Donacion, EstadoDonacion
from app.models.notification import Notificacion, TipoNotificacion
from app.models.reward import UsuarioRecompensa
from app.models.subscription import Suscripcion
from app.models.user import Usuario
from app.services.email import email_service, DonationLine

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: str) -> Usuario:
    user = await db.get(Usuario, user_id)
    if user is None:
        raise NotFoundError(f"Usuario {user_id} no encontrado")
    return user


async def find_by_email(db: AsyncSession, correo: str) -> Optional[Usuario]:
    result = await db.execute(select(Usuario).where(func.lower(Usuario.correo) == correo.lower()))
    return result.scalar_one_or_none()


def user_query(activo: Optional[bool] = None):
    query = select(Usuario)
    if activo is not None:
        query = query.where(Usuario.activo == activo)
    return query.order_by(Usuario.fecha_registro.desc())


def search_query(term: str):
    pattern = f"%{term}%"
    return (
        select(Usuario)
        .where(or_(
            Usuario.nombres.ilike(pattern),
            Usuario.apellidos.ilike(pattern),
            Usuario.correo.ilike(pattern),
            Usuario.cedula.ilike(pattern),
        ))
        .order_by(Usuario.apellidos.asc(), Usuario.nombres.asc())
    )


async def update_profile(db: AsyncSession, user: Usuario, **fields) -> Usuario:
    """Apply profile changes. E-mail changes must stay unique."""
    correo = fields.get("correo")
    if correo and correo.lower() != user.correo.lower():
        if await find_by_email(db, correo) is not None:
            raise BadRequestError({"correo": {"message": "El correo ya está registrado"}})

    for name, value in fields.items():
        setattr(user, name, value)
    await db.flush()
    await db.refresh(user)
    return user


async def change_password(
    db: AsyncSession,
    user: Usuario,
    password_actual: str,
    password_nuevo: str
) -> None:
    if not verify_password(password_actual, user.password_hash):
        raise BadRequestError({"password_actual": {"message": "La contraseña actual es incorrecta"}})
    if password_actual == password_nuevo:
        raise BadRequestError({"password_nuevo": {"message": "La nueva contraseña debe ser diferente"}})

    user.password_hash = get_password_hash(password_nuevo)
    await db.flush()
    logger.info("Password changed for user %s", user.id)


async def deactivate(db: AsyncSession, user: Usuario) -> Usuario:
    user.activo = False
    await db.flush()
    await db.refresh(user)
    logger.info("User %s deactivated", user.id)
    return user


# ============================================================================
# NOTIFICATIONS
# ============================================================================

def notification_query(user_id: str, leida: Optional[bool] = None):
    query = select(Notificacion).where(Notificacion.id_usuario == user_id)
    if leida is not None:
        query = query.where(Notificacion.leida == leida)
    return query.order_by(Notificacion.created.desc())


async def create_notification(
    db: AsyncSession,
    user_id: str,
    tipo: TipoNotificacion,
    titulo: str,
    mensaje: str
) -> Notificacion:
    await get_user(db, user_id)
    notification = Notificacion(id_usuario=user_id, tipo=tipo, titulo=titulo, mensaje=mensaje)
    db.add(notification)
    await db.flush()
    await db.refresh(notification)
    return notification


async def mark_read(db: AsyncSession, user: Usuario, notification_id: str) -> Notificacion:
    notification = await db.get(Notificacion, notification_id)
    if notification is None or notification.id_usuario != user.id:
        raise NotFoundError(f"Notificación {notification_id} no encontrada")

    if not notification.leida:
        notification.leida = True
        notification.fecha_lectura = datetime.now(timezone.utc)
        await db.flush()
        await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, user: Usuario) -> int:
    result = await db.execute(
        update(Notificacion)
        .where(Notificacion.id_usuario == user.id, Notificacion.leida == False)  # noqa: E712
        .values(leida=True, fecha_lectura=datetime.now(timezone.utc))
    )
    return result.rowcount


# ============================================================================
# HISTORY & PERSONAL FIGURES
# ============================================================================

async def get_history(db: AsyncSession, user: Usuario) -> dict:
    """Everything the donor has done: donations, subscriptions, rewards."""
    donaciones = await db.execute(
        select(Donacion)
        .where(Donacion.id_usuario == user.id)
        .order_by(Donacion.fecha_donacion.desc())
    )
    suscripciones = await db.execute(
        select(Suscripcion)
        .where(Suscripcion.id_usuario == user.id)
        .order_by(Suscripcion.created.desc())
    )
    recompensas = await db.execute(
        select(UsuarioRecompensa)
        .where(UsuarioRecompensa.id_usuario == user.id)
        .order_by(UsuarioRecompensa.fecha_obtencion.desc())
    )
    return {
        "donaciones": list(donaciones.scalars().all()),
        "suscripciones": list(suscripciones.scalars().all()),
        "recompensas": list(recompensas.scalars().all()),
    }


async def get_personal_statistics(db: AsyncSession, user: Usuario) -> dict:
    totals = (await db.execute(
        select(
            func.coalesce(func.sum(Donacion.monto), 0).label("total"),
            func.count(Donacion.id).label("count"),
            func.count(func.distinct(Donacion.id_campana)).label("campaigns"),
            func.max(Donacion.fecha_donacion).label("last"),
        ).where(
            Donacion.id_usuario == user.id,
            Donacion.estado == EstadoDonacion.COMPLETADA,
        )
    )).one()

    rewards = await db.execute(
        select(func.count(UsuarioRecompensa.id)).where(UsuarioRecompensa.id_usuario == user.id)
    )

    return {
        "total_donado": Decimal(str(totals.total)),
        "total_donaciones": totals.count,
        "campanas_apoyadas": totals.campaigns,
        "ultima_donacion": totals.last,
        "puntos_acumulados": user.puntos_acumulados,
        "nivel_donante": user.nivel_donante.value,
        "recompensas_obtenidas": rewards.scalar() or 0,
    }


async def send_monthly_summary(
    db: AsyncSession,
    user_id: str,
    now: Optional[datetime] = None
) -> bool:
    """E-mail the user a summary of last calendar month's completed donations."""
    user = await get_user(db, user_id)
    now = now or datetime.now(timezone.utc)
    end = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    start = end - relativedelta(months=1)

    result = await db.execute(
        select(Donacion, Campana)
        .outerjoin(Campana, Campana.id == Donacion.id_campana)
        .where(
            Donacion.id_usuario == user.id,
            Donacion.estado == EstadoDonacion.COMPLETADA,
            Donacion.fecha_donacion >= start,
            Donacion.fecha_donacion < end,
        )
        .order_by(Donacion.fecha_donacion.asc())
    )
    rows = result.all()
    if not rows:
        logger.info("User %s had no donations last month; summary skipped", user.id)
        return False

    lines = [
        DonationLine(fecha=donation.fecha_donacion, campana=campaign.nombre if campaign else None, monto=donation.monto)
        for donation, campaign in rows
    ]
    impacto = sorted({campaign.impacto_descripcion for _, campaign in rows if campaign and campaign.impacto_descripcion})

    return await email_service.send_monthly_summary(
        user.correo,
        user.nombres,
        lines,
        sum((line.monto for line in lines), Decimal("0")),
        "; ".join(impacto) or "Gracias a tu apoyo seguimos avanzando",
    )
