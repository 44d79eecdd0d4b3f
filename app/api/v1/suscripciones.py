"""
Recurring donation (subscription) endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin, get_config_cache
from app.models.subscription import EstadoSuscripcion
from app.models.user import Usuario
from app.schemas.common import PaginatedResponse
from app.schemas.subscription import (
    SubscriptionCreate, SubscriptionUpdate, SubscriptionResponse, BillingReportResponse
)
from app.services import subscriptions
from app.services.configuration import ConfigCache
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/suscripciones", tags=["suscripciones"])


@router.get("", response_model=PaginatedResponse[SubscriptionResponse])
async def list_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    estado: Optional[EstadoSuscripcion] = None,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    rows, total = await paginate(db, subscriptions.subscription_query(estado), page, limit)
    return PaginatedResponse.build(
        [SubscriptionResponse.model_validate(s) for s in rows], total, page, limit
    )


@router.get("/mis-suscripciones", response_model=PaginatedResponse[SubscriptionResponse])
async def my_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    estado: Optional[EstadoSuscripcion] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    query = subscriptions.subscription_query(estado, id_usuario=current_user.id)
    rows, total = await paginate(db, query, page, limit)
    return PaginatedResponse.build(
        [SubscriptionResponse.model_validate(s) for s in rows], total, page, limit
    )


@router.get("/estadisticas")
async def subscription_statistics(
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await subscriptions.get_statistics(db)


@router.post("/procesar", response_model=BillingReportResponse)
async def run_billing(
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    admin: Usuario = Depends(get_current_admin)
):
    """Run the daily billing job now."""
    report = await subscriptions.process_due_subscriptions(db, cache)
    return BillingReportResponse(
        procesadas=len(report.processed),
        omitidas=len(report.skipped),
        fallidas=len(report.failed),
    )


@router.post("", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    data: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    current_user: Usuario = Depends(get_current_user)
):
    """Start a subscription; the first charge happens immediately."""
    return await subscriptions.create_subscription(db, cache, current_user, **data.model_dump())


@router.get("/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await subscriptions.get_subscription_for_user(db, subscription_id, current_user)


@router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: str,
    data: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    subscription = await subscriptions.get_subscription_for_user(db, subscription_id, current_user)
    return await subscriptions.update_subscription(db, subscription, **data.model_dump(exclude_unset=True))


@router.delete("/{subscription_id}", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: str,
    motivo: Optional[str] = Query(None, max_length=500),
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    subscription = await subscriptions.get_subscription_for_user(db, subscription_id, current_user)
    return await subscriptions.cancel_subscription(db, subscription, motivo)


@router.post("/{subscription_id}/pausar", response_model=SubscriptionResponse)
async def pause_subscription(
    subscription_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    subscription = await subscriptions.get_subscription_for_user(db, subscription_id, current_user)
    return await subscriptions.pause_subscription(db, subscription)
