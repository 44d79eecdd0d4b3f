"""
Donation lifecycle orchestration.

A donation is recorded as Pendiente and later confirmed. Reaching Completada
fans out to an explicit, ordered list of side effects; each runs in its own
savepoint and a failure is logged without undoing the state change.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_FLOOR
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.core.permissions import ensure_owner_or_admin
from app.models.campaign import Campana, EstadoCampana
from app.models.donation import Donacion, EstadoDonacion
from app.models.payment_method import TipoPago
from app.models.user import Usuario
from app.services import campaigns, invoices, receipts, rewards
from app.services.configuration import ConfigCache, get_points_per_dollar
from app.services.email import email_service

logger = logging.getLogger(__name__)


def calculate_points(monto: Decimal, points_per_dollar: Decimal) -> int:
    """floor(monto * points_per_dollar)."""
    return int((Decimal(str(monto)) * points_per_dollar).to_integral_value(rounding=ROUND_FLOOR))


@dataclass
class CompletionStep:
    name: str
    run: Callable[[], Awaitable[object]]


async def get_active_campaign(db: AsyncSession, id_campana: Optional[str]) -> Optional[Campana]:
    if not id_campana:
        return None
    campaign = await db.get(Campana, id_campana)
    if campaign is None:
        raise NotFoundError(f"Campaña {id_campana} no encontrada")
    if campaign.estado != EstadoCampana.ACTIVA:
        raise BadRequestError("La campaña no está activa")
    return campaign


async def get_donation(db: AsyncSession, donation_id: str) -> Donacion:
    donation = await db.get(Donacion, donation_id)
    if donation is None:
        raise NotFoundError(f"Donación {donation_id} no encontrada")
    return donation


async def get_donation_for_user(db: AsyncSession, donation_id: str, user: Usuario) -> Donacion:
    donation = await get_donation(db, donation_id)
    ensure_owner_or_admin(user, donation.id_usuario, "No tienes permiso para ver esta donación")
    return donation


def donation_query(
    estado: Optional[EstadoDonacion] = None,
    id_campana: Optional[str] = None,
    id_usuario: Optional[str] = None
):
    query = select(Donacion)
    if estado is not None:
        query = query.where(Donacion.estado == estado)
    if id_campana:
        query = query.where(Donacion.id_campana == id_campana)
    if id_usuario:
        query = query.where(Donacion.id_usuario == id_usuario)
    return query.order_by(Donacion.fecha_donacion.desc())


async def create_donation(
    db: AsyncSession,
    cache: ConfigCache,
    *,
    monto: Decimal,
    metodo_pago: TipoPago,
    acepto_terminos: bool,
    user: Optional[Usuario] = None,
    ip_donante: Optional[str] = None,
    **fields
) -> Donacion:
    """
    Record a donation intent as Pendiente.

    No payment is processed; referencia_pago is an opaque gateway token.
    puntos_otorgados is frozen here from the current points-per-dollar value.
    """
    if monto is None or monto <= 0:
        raise BadRequestError({"monto": {"message": "El monto debe ser mayor a cero"}})
    if not acepto_terminos:
        raise BadRequestError({"acepto_terminos": {"message": "Debe aceptar los términos y condiciones"}})

    await get_active_campaign(db, fields.get("id_campana"))

    points_per_dollar = await get_points_per_dollar(db, cache)
    donation = Donacion(
        **fields,
        id_usuario=user.id if user else None,
        monto=monto,
        metodo_pago=metodo_pago,
        acepto_terminos=acepto_terminos,
        ip_donante=ip_donante,
        estado=EstadoDonacion.PENDIENTE,
        puntos_otorgados=calculate_points(monto, points_per_dollar),
    )
    db.add(donation)
    await db.flush()
    await db.refresh(donation)
    logger.info("Donation %s created: %s %s", donation.id, donation.monto, donation.moneda)
    return donation


async def record_completed_donation(
    db: AsyncSession,
    cache: ConfigCache,
    *,
    id_usuario: str,
    monto: Decimal,
    metodo_pago: TipoPago,
    id_campana: Optional[str] = None,
    id_suscripcion: Optional[str] = None,
    referencia_pago: Optional[str] = None,
    notas: Optional[str] = None
) -> Donacion:
    """Create a donation that is already Completada (recurring charges) and fan out."""
    points_per_dollar = await get_points_per_dollar(db, cache)
    donation = Donacion(
        id_usuario=id_usuario,
        id_campana=id_campana,
        id_suscripcion=id_suscripcion,
        monto=monto,
        metodo_pago=metodo_pago,
        referencia_pago=referencia_pago,
        acepto_terminos=True,
        estado=EstadoDonacion.COMPLETADA,
        puntos_otorgados=calculate_points(monto, points_per_dollar),
        notas=notas,
    )
    db.add(donation)
    await db.flush()
    await db.refresh(donation)

    await run_completion_side_effects(db, donation, award_points=True)
    return donation


async def update_state(
    db: AsyncSession,
    donation_id: str,
    estado: EstadoDonacion,
    referencia_pago: Optional[str] = None
) -> Donacion:
    """
    Move a donation to `estado`.

    Entering Completada runs the completion side effects. Points are only
    credited on the Pendiente -> Completada edge; receipt, invoice and
    campaign totals are idempotent and safe to replay. Leaving Completada
    (refund) re-aggregates the campaign totals.
    """
    donation = await get_donation(db, donation_id)
    previous = donation.estado

    donation.estado = estado
    if referencia_pago:
        donation.referencia_pago = referencia_pago
    await db.flush()
    logger.info("Donation %s: %s -> %s", donation.id, previous.value, estado.value)

    if estado == EstadoDonacion.COMPLETADA:
        await run_completion_side_effects(
            db, donation, award_points=previous == EstadoDonacion.PENDIENTE
        )
    elif previous == EstadoDonacion.COMPLETADA and donation.id_campana:
        await _run_step(db, donation.id, CompletionStep(
            "campaign totals", lambda: campaigns.recalculate_totals(db, donation.id_campana)
        ))

    await db.refresh(donation)
    return donation


async def _award_points(db: AsyncSession, donation: Donacion) -> None:
    user = await db.get(Usuario, donation.id_usuario)
    if user is None:
        return
    await rewards.add_points(db, user, donation.puntos_otorgados)


async def _send_confirmation(db: AsyncSession, donation: Donacion) -> None:
    to = donation.correo_comprobante
    if not to and donation.id_usuario:
        user = await db.get(Usuario, donation.id_usuario)
        to = user.correo if user else None
    if not to:
        return

    campaign = await db.get(Campana, donation.id_campana) if donation.id_campana else None
    await email_service.send_donation_confirmation(
        to,
        donation.monto,
        campaign.nombre if campaign else None,
        campaign.impacto_descripcion if campaign else None,
    )


def completion_steps(
    db: AsyncSession,
    donation: Donacion,
    award_points: bool = True
) -> list[CompletionStep]:
    """Side effects of a completed donation, in execution order."""
    steps = [CompletionStep("receipt", lambda: receipts.generate_receipt(db, donation.id))]

    if donation.requiere_factura and donation.id_usuario:
        steps.append(CompletionStep(
            "invoice", lambda: invoices.generate_automatic_invoice(db, donation)
        ))
    if donation.id_campana:
        steps.append(CompletionStep(
            "campaign totals", lambda: campaigns.recalculate_totals(db, donation.id_campana)
        ))
    if donation.id_usuario and award_points:
        steps.append(CompletionStep("points", lambda: _award_points(db, donation)))

    steps.append(CompletionStep("confirmation email", lambda: _send_confirmation(db, donation)))
    return steps


async def _run_step(db: AsyncSession, donation_id: str, step: CompletionStep) -> bool:
    try:
        async with db.begin_nested():
            await step.run()
        return True
    except Exception:
        logger.exception("Donation %s: %s failed; manual reconciliation required", donation_id, step.name)
        return False


async def run_completion_side_effects(
    db: AsyncSession,
    donation: Donacion,
    award_points: bool = True
) -> dict[str, bool]:
    """Run every completion step independently; returns step name -> succeeded."""
    outcome = {}
    for step in completion_steps(db, donation, award_points):
        outcome[step.name] = await _run_step(db, donation.id, step)
    return outcome


async def get_dashboard(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    """Admin overview: totals per state plus the current month."""
    now = now or datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    by_state = await db.execute(
        select(
            Donacion.estado,
            func.count(Donacion.id),
            func.coalesce(func.sum(Donacion.monto), 0),
        ).group_by(Donacion.estado)
    )
    por_estado = {estado.value: {"cantidad": 0, "monto": Decimal("0")} for estado in EstadoDonacion}
    for estado, count, total in by_state.all():
        por_estado[estado.value] = {"cantidad": count, "monto": Decimal(str(total))}

    month = (await db.execute(
        select(
            func.count(Donacion.id).label("count"),
            func.coalesce(func.sum(Donacion.monto), 0).label("total"),
            func.count(func.distinct(Donacion.id_usuario)).label("donors"),
        ).where(
            Donacion.estado == EstadoDonacion.COMPLETADA,
            Donacion.fecha_donacion >= month_start,
        )
    )).one()

    completed = por_estado[EstadoDonacion.COMPLETADA.value]
    promedio = (
        (completed["monto"] / completed["cantidad"]).quantize(Decimal("0.01"))
        if completed["cantidad"] else Decimal("0")
    )

    return {
        "por_estado": por_estado,
        "total_recaudado": completed["monto"],
        "total_completadas": completed["cantidad"],
        "monto_promedio": promedio,
        "mes_actual": {
            "donaciones": month.count,
            "monto": Decimal(str(month.total)),
            "donantes_unicos": month.donors,
        },
    }
