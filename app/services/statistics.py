"""
Statistics aggregator.

Live figures are computed from the ledger on demand; monthly snapshots are
persisted in `estadisticas_mensuales` and regenerated by upsert.
"""
import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError
from app.models.campaign import Campana
from app.models.donation import Donacion, EstadoDonacion
from app.models.statistics import EstadisticaMensual
from app.models.subscription import Suscripcion, EstadoSuscripcion
from app.models.user import Usuario, RolUsuario, NivelDonante
from app.services import campaigns, subscriptions
from app.services.configuration import ConfigCache, get_value

logger = logging.getLogger(__name__)

TOP_DONORS_LIMIT = 5
ACTIVE_DONOR_MONTHS = 3
DEFAULT_RANGE_MONTHS = 12

_completed = Donacion.estado == EstadoDonacion.COMPLETADA


def month_bounds(ano: int, mes: int) -> tuple[datetime, datetime]:
    """[first instant of the month, first instant of the next month) in UTC."""
    if not 1 <= mes <= 12:
        raise BadRequestError({"mes": {"message": "El mes debe estar entre 1 y 12"}})
    start = datetime(ano, mes, 1, tzinfo=timezone.utc)
    return start, start + relativedelta(months=1)


def period_bounds(inicio: Optional[date], fin: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive calendar dates to a half-open datetime range."""
    if inicio and fin and fin < inicio:
        raise BadRequestError({"fin": {"message": "La fecha de fin debe ser posterior al inicio"}})
    start = datetime.combine(inicio, time.min, tzinfo=timezone.utc) if inicio else None
    end = datetime.combine(fin, time.min, tzinfo=timezone.utc) + relativedelta(days=1) if fin else None
    return start, end


def _in_range(column, start: Optional[datetime], end: Optional[datetime]):
    conditions = []
    if start is not None:
        conditions.append(column >= start)
    if end is not None:
        conditions.append(column < end)
    return and_(True, *conditions)


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


async def _donation_totals(db: AsyncSession, start: Optional[datetime], end: Optional[datetime]):
    return (await db.execute(
        select(
            func.coalesce(func.sum(Donacion.monto), 0).label("total"),
            func.count(Donacion.id).label("count"),
            func.count(func.distinct(Donacion.id_usuario)).label("donors"),
        ).where(_completed, _in_range(Donacion.fecha_donacion, start, end))
    )).one()


async def _new_donors(db: AsyncSession, start: datetime, end: datetime) -> int:
    """Users whose first completed donation falls inside [start, end)."""
    first = (
        select(Donacion.id_usuario, func.min(Donacion.fecha_donacion).label("primera"))
        .where(_completed, Donacion.id_usuario.is_not(None))
        .group_by(Donacion.id_usuario)
        .subquery()
    )
    result = await db.execute(
        select(func.count()).select_from(first).where(first.c.primera >= start, first.c.primera < end)
    )
    return result.scalar() or 0


async def _top_campaign(db: AsyncSession, start: datetime, end: datetime) -> Optional[str]:
    result = await db.execute(
        select(Donacion.id_campana)
        .where(_completed, Donacion.id_campana.is_not(None), _in_range(Donacion.fecha_donacion, start, end))
        .group_by(Donacion.id_campana)
        .order_by(func.sum(Donacion.monto).desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _month_figures(db: AsyncSession, ano: int, mes: int) -> dict:
    start, end = month_bounds(ano, mes)
    totals = await _donation_totals(db, start, end)

    nuevas = await db.execute(
        select(func.count(Suscripcion.id)).where(
            Suscripcion.fecha_inicio >= start.date(),
            Suscripcion.fecha_inicio < end.date(),
        )
    )
    canceladas = await db.execute(
        select(func.count(Suscripcion.id)).where(
            Suscripcion.estado == EstadoSuscripcion.CANCELADA,
            _in_range(Suscripcion.fecha_cancelacion, start, end),
        )
    )

    total = _money(totals.total)
    return {
        "total_donaciones": total,
        "contador_donaciones": totals.count,
        "contador_donantes_unicos": totals.donors,
        "contador_nuevos_donantes": await _new_donors(db, start, end),
        "contador_suscripciones_nuevas": nuevas.scalar() or 0,
        "contador_suscripciones_canceladas": canceladas.scalar() or 0,
        "campana_principal": await _top_campaign(db, start, end),
        "monto_promedio": _money(total / totals.count) if totals.count else Decimal("0.00"),
    }


async def generate_monthly(db: AsyncSession, ano: int, mes: int) -> EstadisticaMensual:
    """Compute and upsert the snapshot for (ano, mes)."""
    figures = await _month_figures(db, ano, mes)

    snapshot = await db.get(EstadisticaMensual, (ano, mes))
    if snapshot is None:
        snapshot = EstadisticaMensual(ano=ano, mes=mes)
        db.add(snapshot)
    for name, value in figures.items():
        setattr(snapshot, name, value)

    await db.flush()
    await db.refresh(snapshot)
    logger.info("Monthly statistics %04d-%02d generated: %s donations", ano, mes, snapshot.contador_donaciones)
    return snapshot


async def generate_previous_month(db: AsyncSession, today: Optional[date] = None) -> EstadisticaMensual:
    """Monthly job body: snapshot the month before `today`."""
    previous = (today or date.today()).replace(day=1) - relativedelta(months=1)
    return await generate_monthly(db, previous.year, previous.month)


async def get_current_month(db: AsyncSession, today: Optional[date] = None) -> dict:
    today = today or date.today()
    return {"ano": today.year, "mes": today.month, **await _month_figures(db, today.year, today.month)}


async def get_monthly_range(
    db: AsyncSession,
    desde: Optional[date] = None,
    hasta: Optional[date] = None,
    today: Optional[date] = None
) -> list[EstadisticaMensual]:
    """Stored snapshots between two months, inclusive; defaults to the last 12 months."""
    today = today or date.today()
    hasta = hasta or today
    desde = desde or (hasta.replace(day=1) - relativedelta(months=DEFAULT_RANGE_MONTHS - 1))

    lower = desde.year * 12 + desde.month
    upper = hasta.year * 12 + hasta.month
    key = EstadisticaMensual.ano * 12 + EstadisticaMensual.mes
    result = await db.execute(
        select(EstadisticaMensual)
        .where(key >= lower, key <= upper)
        .order_by(EstadisticaMensual.ano.asc(), EstadisticaMensual.mes.asc())
    )
    return list(result.scalars().all())


async def get_top_donors(
    db: AsyncSession,
    limit: int = TOP_DONORS_LIMIT,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> list[dict]:
    total = func.sum(Donacion.monto).label("total")
    result = await db.execute(
        select(Usuario, total, func.count(Donacion.id).label("count"))
        .join(Donacion, Donacion.id_usuario == Usuario.id)
        .where(_completed, Donacion.es_anonima == False, _in_range(Donacion.fecha_donacion, start, end))  # noqa: E712
        .group_by(Usuario.id)
        .order_by(total.desc())
        .limit(limit)
    )
    return [
        {
            "id": user.id,
            "nombre": user.nombre_completo,
            "nivel_donante": user.nivel_donante.value,
            "total_donado": _money(amount),
            "total_donaciones": count,
        }
        for user, amount, count in result.all()
    ]


async def get_dashboard(db: AsyncSession, today: Optional[date] = None) -> dict:
    today = today or date.today()
    historic = await _donation_totals(db, None, None)

    since = datetime.combine(today, time.min, tzinfo=timezone.utc) - relativedelta(months=ACTIVE_DONOR_MONTHS)
    active = await db.execute(
        select(func.count(func.distinct(Donacion.id_usuario))).where(
            _completed, Donacion.fecha_donacion >= since
        )
    )

    return {
        "mes_actual": await get_current_month(db, today),
        "ultimos_meses": await get_monthly_range(db, today=today),
        "total_historico": _money(historic.total),
        "donaciones_historicas": historic.count,
        "donantes_activos": active.scalar() or 0,
        "top_donantes": await get_top_donors(db),
    }


async def get_donation_statistics(
    db: AsyncSession,
    inicio: Optional[date] = None,
    fin: Optional[date] = None
) -> dict:
    """Completed donations in a period, overall and grouped by campaign."""
    start, end = period_bounds(inicio, fin)
    totals = await _donation_totals(db, start, end)

    grouped = await db.execute(
        select(
            Donacion.id_campana,
            Campana.nombre,
            func.coalesce(func.sum(Donacion.monto), 0),
            func.count(Donacion.id),
        )
        .outerjoin(Campana, Campana.id == Donacion.id_campana)
        .where(_completed, _in_range(Donacion.fecha_donacion, start, end))
        .group_by(Donacion.id_campana, Campana.nombre)
        .order_by(func.sum(Donacion.monto).desc())
    )

    total = _money(totals.total)
    return {
        "periodo": {"inicio": inicio.isoformat() if inicio else None, "fin": fin.isoformat() if fin else None},
        "total_recaudado": total,
        "total_donaciones": totals.count,
        "donantes_unicos": totals.donors,
        "monto_promedio": _money(total / totals.count) if totals.count else Decimal("0.00"),
        "por_campana": [
            {
                "id_campana": campaign_id,
                "nombre": nombre or "Donación general",
                "monto": _money(amount),
                "cantidad": count,
            }
            for campaign_id, nombre, amount, count in grouped.all()
        ],
    }


async def get_subscription_statistics(db: AsyncSession) -> dict:
    return await subscriptions.get_statistics(db)


async def get_campaign_statistics(
    db: AsyncSession,
    campaign_id: str,
    inicio: Optional[date] = None,
    fin: Optional[date] = None
) -> dict:
    campaign = await campaigns.get_campaign(db, campaign_id)
    start, end = period_bounds(inicio, fin)

    totals = (await db.execute(
        select(
            func.coalesce(func.sum(Donacion.monto), 0).label("total"),
            func.count(Donacion.id).label("count"),
            func.count(func.distinct(Donacion.id_usuario)).label("donors"),
        ).where(
            _completed,
            Donacion.id_campana == campaign.id,
            _in_range(Donacion.fecha_donacion, start, end),
        )
    )).one()

    total = _money(totals.total)
    return {
        "id_campana": campaign.id,
        "nombre": campaign.nombre,
        "estado": campaign.estado.value,
        "meta_monto": campaign.meta_monto,
        "monto_recaudado": campaign.monto_recaudado,
        "porcentaje_completado": campaign.porcentaje_completado,
        "periodo": {"inicio": inicio.isoformat() if inicio else None, "fin": fin.isoformat() if fin else None},
        "monto_periodo": total,
        "donaciones_periodo": totals.count,
        "donantes_periodo": totals.donors,
        "monto_promedio": _money(total / totals.count) if totals.count else Decimal("0.00"),
    }


async def get_donor_statistics(
    db: AsyncSession,
    inicio: Optional[date] = None,
    fin: Optional[date] = None
) -> dict:
    start, end = period_bounds(inicio, fin)
    donors = Usuario.rol == RolUsuario.DONANTE

    total = (await db.execute(select(func.count(Usuario.id)).where(donors))).scalar() or 0
    nuevos = (await db.execute(
        select(func.count(Usuario.id)).where(donors, _in_range(Usuario.fecha_registro, start, end))
    )).scalar() or 0
    recurrentes = (await db.execute(
        select(func.count(func.distinct(Suscripcion.id_usuario))).where(
            Suscripcion.estado == EstadoSuscripcion.ACTIVA
        )
    )).scalar() or 0

    tiers = await db.execute(
        select(Usuario.nivel_donante, func.count(Usuario.id)).where(donors).group_by(Usuario.nivel_donante)
    )
    por_nivel = {nivel.value: 0 for nivel in NivelDonante}
    for nivel, count in tiers.all():
        por_nivel[nivel.value] = count

    top = await get_top_donors(db, limit=1, start=start, end=end)
    return {
        "total_donantes": total,
        "nuevos_donantes": nuevos,
        "donantes_recurrentes": recurrentes,
        "por_nivel": por_nivel,
        "top_donante": top[0] if top else None,
    }


async def get_public_statistics(
    db: AsyncSession,
    cache: ConfigCache,
    today: Optional[date] = None
) -> dict:
    """Figures safe to show on the public site. No donor identities."""
    today = today or date.today()
    historic = await _donation_totals(db, None, None)

    month_start, month_end = month_bounds(today.year, today.month)
    month = await _donation_totals(db, month_start, month_end)

    meta = await get_value(db, cache, "meta_mensual", 0)
    meta = Decimal(str(meta or 0))
    recaudado_mes = _money(month.total)
    porcentaje = min(float(recaudado_mes / meta * 100), 100.0) if meta > 0 else 0.0

    featured = await campaigns.get_featured(db, today)
    destacada = featured[0] if featured else None

    return {
        "total_recaudado": _money(historic.total),
        "total_donaciones": historic.count,
        "donantes_unicos": historic.donors,
        "recaudado_mes": recaudado_mes,
        "meta_mensual": meta,
        "porcentaje_meta_mensual": round(porcentaje, 2),
        "campana_destacada": {
            "id": destacada.id,
            "nombre": destacada.nombre,
            "porcentaje_completado": destacada.porcentaje_completado,
        } if destacada else None,
    }
