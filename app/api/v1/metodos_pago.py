"""
Payment method endpoints, scoped to the authenticated owner.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user
from app.models.user import Usuario
from app.schemas.payment_method import PaymentMethodCreate, PaymentMethodResponse
from app.services import payment_methods

router = APIRouter(prefix="/metodos-pago", tags=["metodos-pago"])


@router.get("", response_model=list[PaymentMethodResponse])
async def list_payment_methods(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await payment_methods.list_for_user(db, current_user)


@router.post("", response_model=PaymentMethodResponse, status_code=status.HTTP_201_CREATED)
async def create_payment_method(
    data: PaymentMethodCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await payment_methods.create_payment_method(db, current_user, **data.model_dump())


@router.delete("/{method_id}", response_model=PaymentMethodResponse)
async def deactivate_payment_method(
    method_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await payment_methods.deactivate(db, current_user, method_id)
