"""
Campaign registry service.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, func, or_, insert, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.campaign import Campana, EstadoCampana, campana_seguidores
from app.models.donation import Donacion, EstadoDonacion
from app.models.user import Usuario
from app.services.email import email_service

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 4


def campaign_query(
    estado: Optional[EstadoCampana] = None,
    es_emergencia: Optional[bool] = None
):
    query = select(Campana)
    if estado is not None:
        query = query.where(Campana.estado == estado)
    if es_emergencia is not None:
        query = query.where(Campana.es_emergencia == es_emergencia)
    return query.order_by(Campana.es_emergencia.desc(), Campana.fecha_inicio.desc())


def search_query(term: str):
    pattern = f"%{term}%"
    return (
        select(Campana)
        .where(or_(
            Campana.nombre.ilike(pattern),
            Campana.descripcion.ilike(pattern),
            Campana.impacto_descripcion.ilike(pattern),
        ))
        .order_by(Campana.fecha_inicio.desc())
    )


async def get_campaign(db: AsyncSession, campaign_id: str) -> Campana:
    campaign = await db.get(Campana, campaign_id)
    if campaign is None:
        raise NotFoundError(f"Campaña {campaign_id} no encontrada")
    return campaign


async def create_campaign(db: AsyncSession, **fields) -> Campana:
    campaign = Campana(
        **fields,
        monto_recaudado=Decimal("0"),
        contador_donaciones=0,
        estado=EstadoCampana.ACTIVA,
    )
    db.add(campaign)
    await db.flush()
    await db.refresh(campaign)
    return campaign


async def update_campaign(db: AsyncSession, campaign_id: str, **fields) -> Campana:
    campaign = await get_campaign(db, campaign_id)
    fecha_inicio = fields.get("fecha_inicio", campaign.fecha_inicio)
    fecha_fin = fields.get("fecha_fin", campaign.fecha_fin)
    if fecha_fin is not None and fecha_fin < fecha_inicio:
        raise BadRequestError({"fecha_fin": {"message": "fecha_fin debe ser posterior a fecha_inicio"}})
    for name, value in fields.items():
        setattr(campaign, name, value)
    await db.flush()
    await db.refresh(campaign)
    return campaign


async def change_state(db: AsyncSession, campaign_id: str, estado: EstadoCampana) -> Campana:
    """Admin state change; any transition is allowed as an override."""
    campaign = await get_campaign(db, campaign_id)
    if campaign.estado != estado:
        logger.info("Campaign %s: %s -> %s", campaign.id, campaign.estado.value, estado.value)
    campaign.estado = estado
    await db.flush()
    await db.refresh(campaign)
    return campaign


async def get_featured(db: AsyncSession, today: Optional[date] = None) -> list[Campana]:
    """Active, not yet ended campaigns: emergencies first, then most raised."""
    today = today or date.today()
    result = await db.execute(
        select(Campana)
        .where(
            Campana.estado == EstadoCampana.ACTIVA,
            or_(Campana.fecha_fin.is_(None), Campana.fecha_fin > today),
        )
        .order_by(Campana.es_emergencia.desc(), Campana.monto_recaudado.desc())
        .limit(FEATURED_LIMIT)
    )
    return list(result.scalars().all())


async def recalculate_totals(db: AsyncSession, campaign_id: str) -> Optional[Campana]:
    """
    Overwrite raised amount and donation counter from all Completed donations.

    A full aggregation rather than an increment, so replaying a completion
    event never double counts.
    """
    campaign = await db.get(Campana, campaign_id)
    if campaign is None:
        return None

    result = await db.execute(
        select(
            func.coalesce(func.sum(Donacion.monto), 0).label("total"),
            func.count(Donacion.id).label("count"),
        ).where(
            Donacion.id_campana == campaign_id,
            Donacion.estado == EstadoDonacion.COMPLETADA,
        )
    )
    row = result.one()
    campaign.monto_recaudado = Decimal(str(row.total))
    campaign.contador_donaciones = row.count
    await db.flush()
    return campaign


async def get_statistics(db: AsyncSession) -> dict:
    by_state = await db.execute(
        select(Campana.estado, func.count(Campana.id)).group_by(Campana.estado)
    )
    counts = {estado.value: 0 for estado in EstadoCampana}
    for estado, count in by_state.all():
        counts[estado.value] = count

    totals = (await db.execute(
        select(
            func.coalesce(func.sum(Campana.meta_monto), 0).label("meta"),
            func.coalesce(func.sum(Campana.monto_recaudado), 0).label("recaudado"),
            func.coalesce(func.sum(Campana.contador_donaciones), 0).label("donaciones"),
        )
    )).one()

    top = await db.execute(
        select(Campana).order_by(Campana.monto_recaudado.desc()).limit(5)
    )

    meta = Decimal(str(totals.meta))
    recaudado = Decimal(str(totals.recaudado))
    return {
        "total_campanas": sum(counts.values()),
        "por_estado": counts,
        "meta_total": meta,
        "recaudado_total": recaudado,
        "total_donaciones": int(totals.donaciones),
        "porcentaje_global": round(float(recaudado / meta * 100), 2) if meta > 0 else 0.0,
        "campanas_top": [
            {
                "id": c.id,
                "nombre": c.nombre,
                "monto_recaudado": c.monto_recaudado,
                "porcentaje_completado": c.porcentaje_completado,
            }
            for c in top.scalars().all()
        ],
    }


# ============================================================================
# FOLLOWERS
# ============================================================================

async def is_following(db: AsyncSession, campaign_id: str, user_id: str) -> bool:
    result = await db.execute(
        select(campana_seguidores.c.id_usuario).where(
            campana_seguidores.c.id_campana == campaign_id,
            campana_seguidores.c.id_usuario == user_id,
        )
    )
    return result.first() is not None


async def set_following(db: AsyncSession, campaign_id: str, user: Usuario, seguir: bool) -> bool:
    await get_campaign(db, campaign_id)
    following = await is_following(db, campaign_id, user.id)

    if seguir and not following:
        await db.execute(insert(campana_seguidores).values(id_campana=campaign_id, id_usuario=user.id))
    elif not seguir and following:
        await db.execute(
            delete(campana_seguidores).where(
                campana_seguidores.c.id_campana == campaign_id,
                campana_seguidores.c.id_usuario == user.id,
            )
        )
    await db.flush()
    return seguir


async def follower_emails(db: AsyncSession, campaign_id: str) -> list[str]:
    result = await db.execute(
        select(Usuario.correo)
        .join(campana_seguidores, campana_seguidores.c.id_usuario == Usuario.id)
        .where(campana_seguidores.c.id_campana == campaign_id, Usuario.activo == True)  # noqa: E712
    )
    return list(result.scalars().all())


async def publish_update(db: AsyncSession, campaign_id: str, actualizacion: str) -> int:
    """Email a progress update to every active follower; returns recipients notified."""
    campaign = await get_campaign(db, campaign_id)
    emails = await follower_emails(db, campaign_id)
    if not emails:
        return 0

    sent = await email_service.send_campaign_update(
        emails, campaign.nombre, actualizacion, campaign.porcentaje_completado
    )
    return len(emails) if sent else 0
