"""
Payment-method vault: tokenized processor references scoped to their owner.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.payment_method import MetodoPago, TipoPago
from app.models.user import Usuario

logger = logging.getLogger(__name__)


async def list_for_user(db: AsyncSession, user: Usuario, include_inactive: bool = False) -> list[MetodoPago]:
    query = select(MetodoPago).where(MetodoPago.id_usuario == user.id)
    if not include_inactive:
        query = query.where(MetodoPago.activo == True)  # noqa: E712
    result = await db.execute(query.order_by(MetodoPago.created.desc()))
    return list(result.scalars().all())


async def get_for_user(db: AsyncSession, user: Usuario, method_id: str) -> MetodoPago:
    method = await db.get(MetodoPago, method_id)
    if method is None or method.id_usuario != user.id:
        raise NotFoundError(f"Método de pago {method_id} no encontrado")
    return method


async def create_payment_method(
    db: AsyncSession,
    user: Usuario,
    *,
    tipo: TipoPago,
    token_referencia: str,
    alias: Optional[str] = None,
    ultimo_digitos: Optional[str] = None,
    banco: Optional[str] = None,
    tipo_cuenta: Optional[str] = None
) -> MetodoPago:
    method = MetodoPago(
        id_usuario=user.id,
        tipo=tipo,
        token_referencia=token_referencia,
        alias=alias,
        ultimo_digitos=ultimo_digitos,
        banco=banco,
        tipo_cuenta=tipo_cuenta,
        activo=True,
    )
    db.add(method)
    await db.flush()
    await db.refresh(method)
    logger.info("Payment method %s (%s) stored for user %s", method.id, tipo.value, user.id)
    return method


async def deactivate(db: AsyncSession, user: Usuario, method_id: str) -> MetodoPago:
    """Soft delete; subscriptions using it are skipped by the billing run."""
    method = await get_for_user(db, user, method_id)
    method.activo = False
    await db.flush()
    await db.refresh(method)
    return method
