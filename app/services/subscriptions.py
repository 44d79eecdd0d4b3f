"""
Recurring donation (subscription) engine.

Schedules are date based. Intervals use calendar arithmetic from
dateutil.relativedelta, which clamps to the last valid day of the target
month (Jan 31 + 1 month -> Feb 28/29).

The daily billing job measures the next charge from the day it runs, not
from the missed date: a job outage longer than one cycle loses those cycles
instead of catching up.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.core.permissions import ensure_owner_or_admin
from app.models.payment_method import MetodoPago
from app.models.subscription import Suscripcion, FrecuenciaSuscripcion, EstadoSuscripcion
from app.models.user import Usuario
from app.services import donations
from app.services.configuration import ConfigCache
from app.services.email import email_service

logger = logging.getLogger(__name__)

INTERVALS = {
    FrecuenciaSuscripcion.MENSUAL: relativedelta(months=1),
    FrecuenciaSuscripcion.TRIMESTRAL: relativedelta(months=3),
    FrecuenciaSuscripcion.ANUAL: relativedelta(years=1),
}

# Monthly-equivalent divisor per frequency
MONTHS_PER_CYCLE = {
    FrecuenciaSuscripcion.MENSUAL: 1,
    FrecuenciaSuscripcion.TRIMESTRAL: 3,
    FrecuenciaSuscripcion.ANUAL: 12,
}

REMINDER_DAYS_AHEAD = 3


def add_interval(start: date, frecuencia: FrecuenciaSuscripcion) -> date:
    return start + INTERVALS[frecuencia]


@dataclass
class BillingReport:
    """Outcome of one billing run."""
    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


async def get_subscription(db: AsyncSession, subscription_id: str) -> Suscripcion:
    subscription = await db.get(Suscripcion, subscription_id)
    if subscription is None:
        raise NotFoundError(f"Suscripción {subscription_id} no encontrada")
    return subscription


async def get_subscription_for_user(db: AsyncSession, subscription_id: str, user: Usuario) -> Suscripcion:
    subscription = await get_subscription(db, subscription_id)
    ensure_owner_or_admin(user, subscription.id_usuario, "No tienes permiso para esta suscripción")
    return subscription


def subscription_query(
    estado: Optional[EstadoSuscripcion] = None,
    id_usuario: Optional[str] = None
):
    query = select(Suscripcion)
    if estado is not None:
        query = query.where(Suscripcion.estado == estado)
    if id_usuario:
        query = query.where(Suscripcion.id_usuario == id_usuario)
    return query.order_by(Suscripcion.created.desc())


async def _active_payment_method(db: AsyncSession, user_id: str, method_id: str) -> MetodoPago:
    method = await db.get(MetodoPago, method_id)
    if method is None or method.id_usuario != user_id or not method.activo:
        raise BadRequestError("Método de pago no válido o inactivo")
    return method


async def _charge(
    db: AsyncSession,
    cache: ConfigCache,
    subscription: Suscripcion,
    method: MetodoPago
) -> None:
    """Spawn one completed donation for the subscription and bump its totals."""
    await donations.record_completed_donation(
        db,
        cache,
        id_usuario=subscription.id_usuario,
        id_campana=subscription.id_campana,
        id_suscripcion=subscription.id,
        monto=subscription.monto,
        metodo_pago=method.tipo,
        referencia_pago=method.token_referencia,
        notas=f"Donación recurrente ({subscription.frecuencia.value.lower()})",
    )
    subscription.total_donado = (subscription.total_donado or Decimal("0")) + subscription.monto
    subscription.total_donaciones = (subscription.total_donaciones or 0) + 1
    await db.flush()


async def create_subscription(
    db: AsyncSession,
    cache: ConfigCache,
    user: Usuario,
    *,
    monto: Decimal,
    frecuencia: FrecuenciaSuscripcion,
    id_metodo_pago: str,
    id_campana: Optional[str] = None,
    fecha_inicio: Optional[date] = None,
    fecha_fin: Optional[date] = None
) -> Suscripcion:
    """
    Start a recurring donation and charge the first cycle immediately.

    Requires an active payment method owned by the user.
    """
    if monto <= 0:
        raise BadRequestError({"monto": {"message": "El monto debe ser mayor a cero"}})
    method = await _active_payment_method(db, user.id, id_metodo_pago)
    await donations.get_active_campaign(db, id_campana)

    start = fecha_inicio or date.today()
    if fecha_fin is not None and fecha_fin <= start:
        raise BadRequestError({"fecha_fin": {"message": "La fecha de fin debe ser posterior al inicio"}})

    subscription = Suscripcion(
        id_usuario=user.id,
        id_campana=id_campana,
        id_metodo_pago=method.id,
        monto=monto,
        frecuencia=frecuencia,
        estado=EstadoSuscripcion.ACTIVA,
        fecha_inicio=start,
        fecha_fin=fecha_fin,
        proxima_donacion=add_interval(start, frecuencia),
        total_donado=Decimal("0"),
        total_donaciones=0,
    )
    db.add(subscription)
    await db.flush()

    await _charge(db, cache, subscription, method)
    await db.refresh(subscription)
    logger.info("Subscription %s created for user %s", subscription.id, user.id)
    return subscription


async def update_subscription(
    db: AsyncSession,
    subscription: Suscripcion,
    *,
    monto: Optional[Decimal] = None,
    frecuencia: Optional[FrecuenciaSuscripcion] = None,
    id_metodo_pago: Optional[str] = None,
    today: Optional[date] = None
) -> Suscripcion:
    """Change amount, cadence or payment method; a new cadence restarts from today."""
    if subscription.estado in (EstadoSuscripcion.CANCELADA, EstadoSuscripcion.FINALIZADA):
        raise BadRequestError("No se puede modificar una suscripción cancelada o finalizada")

    if monto is not None:
        if monto <= 0:
            raise BadRequestError({"monto": {"message": "El monto debe ser mayor a cero"}})
        subscription.monto = monto

    if id_metodo_pago is not None:
        method = await _active_payment_method(db, subscription.id_usuario, id_metodo_pago)
        subscription.id_metodo_pago = method.id

    if frecuencia is not None and frecuencia != subscription.frecuencia:
        subscription.frecuencia = frecuencia
        subscription.proxima_donacion = add_interval(today or date.today(), frecuencia)

    await db.flush()
    await db.refresh(subscription)
    return subscription


async def cancel_subscription(
    db: AsyncSession,
    subscription: Suscripcion,
    motivo: Optional[str] = None
) -> Suscripcion:
    """Stop billing. Donations already spawned are left untouched."""
    if subscription.estado == EstadoSuscripcion.CANCELADA:
        raise BadRequestError("La suscripción ya está cancelada")

    subscription.estado = EstadoSuscripcion.CANCELADA
    subscription.motivo_cancelacion = motivo
    subscription.fecha_cancelacion = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(subscription)
    logger.info("Subscription %s cancelled", subscription.id)
    return subscription


async def pause_subscription(db: AsyncSession, subscription: Suscripcion) -> Suscripcion:
    if subscription.estado != EstadoSuscripcion.ACTIVA:
        raise BadRequestError("Solo se pueden pausar suscripciones activas")
    subscription.estado = EstadoSuscripcion.PAUSADA
    await db.flush()
    await db.refresh(subscription)
    return subscription


# ============================================================================
# BATCH JOBS
# ============================================================================

async def process_due_subscriptions(
    db: AsyncSession,
    cache: ConfigCache,
    today: Optional[date] = None
) -> BillingReport:
    """
    Daily billing run.

    Charges every Activa subscription whose next charge is due, then moves
    its next charge one interval past `today`. Subscriptions with a missing
    or inactive payment method are skipped; each one is isolated so a failure
    never aborts the batch.
    """
    today = today or date.today()
    report = BillingReport()

    result = await db.execute(
        select(Suscripcion).where(
            Suscripcion.estado == EstadoSuscripcion.ACTIVA,
            Suscripcion.proxima_donacion <= today,
        )
    )
    due = list(result.scalars().all())
    logger.info("Billing run %s: %d subscriptions due", today.isoformat(), len(due))

    for subscription in due:
        subscription_id = subscription.id
        method = await db.get(MetodoPago, subscription.id_metodo_pago) if subscription.id_metodo_pago else None
        if method is None or not method.activo:
            logger.warning("Subscription %s skipped: payment method missing or inactive", subscription_id)
            report.skipped.append(subscription_id)
            continue

        try:
            async with db.begin_nested():
                await _charge(db, cache, subscription, method)
                subscription.proxima_donacion = add_interval(today, subscription.frecuencia)
                if subscription.fecha_fin is not None and subscription.proxima_donacion > subscription.fecha_fin:
                    subscription.estado = EstadoSuscripcion.FINALIZADA
                await db.flush()
            report.processed.append(subscription_id)
        except Exception:
            logger.exception("Subscription %s: charge failed", subscription_id)
            report.failed.append(subscription_id)

    return report


async def send_upcoming_reminders(db: AsyncSession, today: Optional[date] = None) -> int:
    """Email owners whose next charge is REMINDER_DAYS_AHEAD days away."""
    today = today or date.today()
    target = today + timedelta(days=REMINDER_DAYS_AHEAD)

    result = await db.execute(
        select(Suscripcion, Usuario)
        .join(Usuario, Usuario.id == Suscripcion.id_usuario)
        .where(
            Suscripcion.estado == EstadoSuscripcion.ACTIVA,
            Suscripcion.proxima_donacion == target,
        )
    )
    sent = 0
    for subscription, user in result.all():
        if await email_service.send_subscription_reminder(
            user.correo,
            user.nombres,
            subscription.monto,
            subscription.frecuencia.value,
            subscription.proxima_donacion,
        ):
            sent += 1
    return sent


async def get_statistics(db: AsyncSession) -> dict:
    total = (await db.execute(select(func.count(Suscripcion.id)))).scalar() or 0

    by_state = await db.execute(
        select(Suscripcion.estado, func.count(Suscripcion.id)).group_by(Suscripcion.estado)
    )
    por_estado = {estado.value: 0 for estado in EstadoSuscripcion}
    for estado, count in by_state.all():
        por_estado[estado.value] = count

    active = await db.execute(
        select(
            Suscripcion.frecuencia,
            func.count(Suscripcion.id),
            func.coalesce(func.sum(Suscripcion.monto), 0),
        )
        .where(Suscripcion.estado == EstadoSuscripcion.ACTIVA)
        .group_by(Suscripcion.frecuencia)
    )
    por_frecuencia = {frecuencia.value: 0 for frecuencia in FrecuenciaSuscripcion}
    ingreso_mensual = Decimal("0")
    for frecuencia, count, amount in active.all():
        por_frecuencia[frecuencia.value] = count
        ingreso_mensual += Decimal(str(amount)) / MONTHS_PER_CYCLE[frecuencia]

    return {
        "total_suscripciones": total,
        "suscripciones_activas": por_estado[EstadoSuscripcion.ACTIVA.value],
        "suscripciones_canceladas": por_estado[EstadoSuscripcion.CANCELADA.value],
        "por_estado": por_estado,
        "ingreso_mensual_estimado": ingreso_mensual.quantize(Decimal("0.01")),
        "suscripciones_por_frecuencia": por_frecuencia,
    }
