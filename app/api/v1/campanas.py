"""
Campaign endpoints. Reads are public; writes are admin only.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin
from app.models.campaign import EstadoCampana
from app.models.user import Usuario
from app.schemas.campaign import (
    CampaignCreate, CampaignUpdate, CampaignResponse,
    CampaignStateUpdate, CampaignFollow, CampaignUpdateNotice
)
from app.schemas.common import PaginatedResponse, MessageResponse
from app.services import campaigns
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/campanas", tags=["campanas"])


@router.get("", response_model=PaginatedResponse[CampaignResponse])
async def list_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    estado: Optional[EstadoCampana] = None,
    es_emergencia: Optional[bool] = None,
    db: AsyncSession = Depends(get_db)
):
    rows, total = await paginate(db, campaigns.campaign_query(estado, es_emergencia), page, limit)
    return PaginatedResponse.build(
        [CampaignResponse.model_validate(c) for c in rows], total, page, limit
    )


@router.get("/destacadas", response_model=list[CampaignResponse])
async def featured_campaigns(db: AsyncSession = Depends(get_db)):
    """Active campaigns, emergencies first, then by amount raised."""
    return await campaigns.get_featured(db)


@router.get("/buscar", response_model=PaginatedResponse[CampaignResponse])
async def search_campaigns(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db)
):
    rows, total = await paginate(db, campaigns.search_query(q), page, limit)
    return PaginatedResponse.build(
        [CampaignResponse.model_validate(c) for c in rows], total, page, limit
    )


@router.get("/estadisticas")
async def campaign_statistics(
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await campaigns.get_statistics(db)


@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: CampaignCreate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await campaigns.create_campaign(db, **data.model_dump())


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(campaign_id: str, db: AsyncSession = Depends(get_db)):
    return await campaigns.get_campaign(db, campaign_id)


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: str,
    data: CampaignUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await campaigns.update_campaign(db, campaign_id, **data.model_dump(exclude_unset=True))


@router.patch("/{campaign_id}/estado", response_model=CampaignResponse)
async def change_campaign_state(
    campaign_id: str,
    data: CampaignStateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await campaigns.change_state(db, campaign_id, data.estado)


@router.post("/{campaign_id}/seguir", response_model=MessageResponse)
async def follow_campaign(
    campaign_id: str,
    data: CampaignFollow,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    following = await campaigns.set_following(db, campaign_id, current_user, data.seguir)
    return MessageResponse(
        message="Ahora sigues esta campaña" if following else "Has dejado de seguir esta campaña"
    )


@router.post("/{campaign_id}/actualizacion", response_model=MessageResponse)
async def publish_campaign_update(
    campaign_id: str,
    data: CampaignUpdateNotice,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    """E-mail a progress update to every follower."""
    notified = await campaigns.publish_update(db, campaign_id, data.actualizacion)
    return MessageResponse(message=f"Actualización enviada a {notified} seguidores")
