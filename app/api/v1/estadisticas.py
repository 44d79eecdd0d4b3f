"""
Statistics endpoints. Only /publicas is anonymous.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin, get_config_cache
from app.models.user import Usuario
from app.schemas.statistics import MonthlyStatisticsResponse, GenerateMonthly
from app.schemas.user import PersonalStatistics
from app.services import statistics, users
from app.services.configuration import ConfigCache

router = APIRouter(prefix="/estadisticas", tags=["estadisticas"])


@router.get("/publicas")
async def public_statistics(
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache)
):
    return await statistics.get_public_statistics(db, cache)


@router.get("/perfil", response_model=PersonalStatistics)
async def profile_statistics(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await users.get_personal_statistics(db, current_user)


@router.get("/dashboard")
async def dashboard(
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    data = await statistics.get_dashboard(db)
    data["ultimos_meses"] = [
        MonthlyStatisticsResponse.model_validate(m) for m in data["ultimos_meses"]
    ]
    return data


@router.get("/mes-actual")
async def current_month(
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await statistics.get_current_month(db)


@router.get("/mensuales", response_model=list[MonthlyStatisticsResponse])
async def monthly_range(
    desde: Optional[date] = None,
    hasta: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    """Stored monthly snapshots; the last 12 months by default."""
    return await statistics.get_monthly_range(db, desde, hasta)


@router.post("/generar-mensual", response_model=MonthlyStatisticsResponse)
async def generate_monthly(
    data: GenerateMonthly,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await statistics.generate_monthly(db, data.ano, data.mes)


@router.get("/donaciones")
async def donation_statistics(
    inicio: Optional[date] = None,
    fin: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await statistics.get_donation_statistics(db, inicio, fin)


@router.get("/suscripciones")
async def subscription_statistics(
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await statistics.get_subscription_statistics(db)


@router.get("/donantes")
async def donor_statistics(
    inicio: Optional[date] = None,
    fin: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await statistics.get_donor_statistics(db, inicio, fin)


@router.get("/campanas/{campaign_id}")
async def campaign_statistics(
    campaign_id: str,
    inicio: Optional[date] = None,
    fin: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await statistics.get_campaign_statistics(db, campaign_id, inicio, fin)
