"""
Donation endpoints.

Anyone may donate; an authenticated caller becomes the owner. State changes
are admin only and drive the completion side effects.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin, get_optional_user, get_config_cache
from app.models.donation import EstadoDonacion
from app.models.user import Usuario
from app.schemas.common import PaginatedResponse
from app.schemas.donation import DonationCreate, DonationResponse, DonationStateUpdate
from app.services import donations
from app.services.configuration import ConfigCache
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/donaciones", tags=["donaciones"])


@router.post("", response_model=DonationResponse, status_code=status.HTTP_201_CREATED)
async def create_donation(
    data: DonationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    current_user: Optional[Usuario] = Depends(get_optional_user)
):
    """Record a donation as Pendiente."""
    return await donations.create_donation(
        db,
        cache,
        user=current_user,
        ip_donante=request.client.host if request.client else None,
        **data.model_dump(),
    )


@router.get("", response_model=PaginatedResponse[DonationResponse])
async def list_donations(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    estado: Optional[EstadoDonacion] = None,
    id_campana: Optional[str] = None,
    id_usuario: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    query = donations.donation_query(estado, id_campana, id_usuario)
    rows, total = await paginate(db, query, page, limit)
    return PaginatedResponse.build(
        [DonationResponse.model_validate(d) for d in rows], total, page, limit
    )


@router.get("/mis-donaciones", response_model=PaginatedResponse[DonationResponse])
async def my_donations(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    estado: Optional[EstadoDonacion] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    query = donations.donation_query(estado, id_usuario=current_user.id)
    rows, total = await paginate(db, query, page, limit)
    return PaginatedResponse.build(
        [DonationResponse.model_validate(d) for d in rows], total, page, limit
    )


@router.get("/dashboard")
async def donations_dashboard(
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await donations.get_dashboard(db)


@router.get("/{donation_id}", response_model=DonationResponse)
async def get_donation(
    donation_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await donations.get_donation_for_user(db, donation_id, current_user)


@router.post("/{donation_id}/estado", response_model=DonationResponse)
async def update_donation_state(
    donation_id: str,
    data: DonationStateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    """Confirm, fail or refund a donation. Completada fans out side effects."""
    return await donations.update_state(db, donation_id, data.estado, data.referencia_pago)
