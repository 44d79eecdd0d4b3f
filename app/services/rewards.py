"""
Rewards and points engine.

Points are a lifetime-earned counter: assigning a reward checks the balance
but never debits it. The donor tier is always derived from the current total.
"""
import logging
import random
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.reward import (
    Recompensa,
    TipoRecompensa,
    UsuarioRecompensa,
    EstadoUsuarioRecompensa,
)
from app.models.user import Usuario, NivelDonante
from app.services.email import email_service

logger = logging.getLogger(__name__)

# (minimum points, tier), highest first
TIER_THRESHOLDS: list[tuple[int, NivelDonante]] = [
    (1000, NivelDonante.PLATINO),
    (500, NivelDonante.ORO),
    (200, NivelDonante.PLATA),
]

DELIVERED_STATES = (EstadoUsuarioRecompensa.ENTREGADA, EstadoUsuarioRecompensa.CANJEADA)


def calculate_tier(points: int) -> NivelDonante:
    for minimum, tier in TIER_THRESHOLDS:
        if points >= minimum:
            return tier
    return NivelDonante.BRONCE


async def add_points(db: AsyncSession, user: Usuario, points: int) -> Usuario:
    """Credit points to a user and recompute the tier from the new total."""
    user.puntos_acumulados = (user.puntos_acumulados or 0) + points
    user.nivel_donante = calculate_tier(user.puntos_acumulados)
    await db.flush()
    return user


def generate_redemption_code(tipo: TipoRecompensa, now: Optional[datetime] = None) -> str:
    """`{TIPO}-{year}-{5 random digits}`, e.g. INSI-2024-04211."""
    now = now or datetime.now(timezone.utc)
    return f"{tipo.value[:4].upper()}-{now.year}-{random.randint(0, 99999):05d}"


# ============================================================================
# CATALOG
# ============================================================================

def reward_query(activa: Optional[bool] = None, tipo: Optional[TipoRecompensa] = None):
    query = select(Recompensa)
    if activa is not None:
        query = query.where(Recompensa.activa == activa)
    if tipo is not None:
        query = query.where(Recompensa.tipo == tipo)
    return query.order_by(Recompensa.puntos_requeridos.asc())


async def get_reward(db: AsyncSession, reward_id: str) -> Recompensa:
    result = await db.execute(select(Recompensa).where(Recompensa.id == reward_id))
    reward = result.scalar_one_or_none()
    if reward is None:
        raise NotFoundError(f"Recompensa {reward_id} no encontrada")
    return reward


async def create_reward(db: AsyncSession, **fields) -> Recompensa:
    reward = Recompensa(**fields)
    db.add(reward)
    await db.flush()
    await db.refresh(reward)
    return reward


async def update_reward(db: AsyncSession, reward_id: str, **fields) -> Recompensa:
    reward = await get_reward(db, reward_id)
    for name, value in fields.items():
        setattr(reward, name, value)
    await db.flush()
    await db.refresh(reward)
    return reward


async def delete_reward(db: AsyncSession, reward_id: str) -> None:
    """Delete a catalog entry; forbidden once anyone holds it."""
    reward = await get_reward(db, reward_id)

    assigned = await db.execute(
        select(func.count(UsuarioRecompensa.id)).where(UsuarioRecompensa.id_recompensa == reward_id)
    )
    if assigned.scalar():
        raise BadRequestError(
            "No se puede eliminar la recompensa porque ya ha sido asignada a usuarios"
        )

    await db.delete(reward)
    await db.flush()


async def get_available_for_user(db: AsyncSession, user: Usuario) -> list[Recompensa]:
    """Active rewards the user can afford and does not already hold."""
    held = select(UsuarioRecompensa.id_recompensa).where(UsuarioRecompensa.id_usuario == user.id)
    result = await db.execute(
        select(Recompensa)
        .where(
            Recompensa.activa == True,  # noqa: E712
            Recompensa.puntos_requeridos <= user.puntos_acumulados,
            Recompensa.id.not_in(held),
        )
        .order_by(Recompensa.puntos_requeridos.asc())
    )
    return list(result.scalars().all())


# ============================================================================
# ASSIGNMENTS
# ============================================================================

async def find_assignment(
    db: AsyncSession, user_id: str, reward_id: str
) -> Optional[UsuarioRecompensa]:
    result = await db.execute(
        select(UsuarioRecompensa).where(
            UsuarioRecompensa.id_usuario == user_id,
            UsuarioRecompensa.id_recompensa == reward_id,
        )
    )
    return result.scalar_one_or_none()


async def _code_taken(db: AsyncSession, codigo: str) -> bool:
    taken = await db.execute(
        select(UsuarioRecompensa.id).where(UsuarioRecompensa.codigo_unico == codigo)
    )
    return taken.scalar_one_or_none() is not None


async def _unused_code(db: AsyncSession, tipo: TipoRecompensa) -> str:
    while True:
        codigo = generate_redemption_code(tipo)
        if not await _code_taken(db, codigo):
            return codigo


async def _reserve_inventory(db: AsyncSession, reward: Recompensa) -> None:
    """Take one unit of finite inventory; the WHERE clause keeps it from going negative."""
    if reward.cantidad_disponible is None:
        return

    result = await db.execute(
        update(Recompensa)
        .where(Recompensa.id == reward.id, Recompensa.cantidad_disponible > 0)
        .values(cantidad_disponible=Recompensa.cantidad_disponible - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise BadRequestError("No hay unidades disponibles de esta recompensa")
    await db.refresh(reward, attribute_names=["cantidad_disponible"])


async def assign_reward(
    db: AsyncSession,
    user_id: str,
    reward_id: str,
    codigo_unico: Optional[str] = None,
    notas: Optional[str] = None
) -> UsuarioRecompensa:
    """
    Grant a reward to a user.

    Fails (in this order) when the user is missing, the reward is missing or
    inactive, the user already holds it, the user lacks points, or finite
    inventory is exhausted.
    """
    user = await db.get(Usuario, user_id)
    if user is None:
        raise NotFoundError(f"Usuario {user_id} no encontrado")

    reward = await db.get(Recompensa, reward_id)
    if reward is None or not reward.activa:
        raise NotFoundError(f"Recompensa {reward_id} no encontrada o inactiva")

    if await find_assignment(db, user_id, reward_id) is not None:
        raise BadRequestError("El usuario ya tiene esta recompensa")

    if user.puntos_acumulados < reward.puntos_requeridos:
        raise BadRequestError(
            f"Puntos insuficientes. Necesita {reward.puntos_requeridos}, "
            f"tiene {user.puntos_acumulados}"
        )

    if reward.cantidad_disponible is not None and reward.cantidad_disponible <= 0:
        raise BadRequestError("No hay unidades disponibles de esta recompensa")

    if codigo_unico and await _code_taken(db, codigo_unico):
        raise BadRequestError({"codigo_unico": {"message": "El código ya está en uso"}})

    await _reserve_inventory(db, reward)

    assignment = UsuarioRecompensa(
        id_usuario=user.id,
        id_recompensa=reward.id,
        codigo_unico=codigo_unico or await _unused_code(db, reward.tipo),
        puntos_usados=reward.puntos_requeridos,
        estado=EstadoUsuarioRecompensa.PENDIENTE,
        notas=notas,
    )
    db.add(assignment)
    await db.flush()
    await db.refresh(assignment)

    logger.info("Reward %s assigned to user %s (%s)", reward.id, user.id, assignment.codigo_unico)
    await email_service.send_reward_assigned(
        user.correo, user.nombres, reward.nombre, assignment.codigo_unico
    )
    return assignment


async def set_assignment_state(
    db: AsyncSession,
    user_id: str,
    reward_id: str,
    estado: EstadoUsuarioRecompensa,
    notas: Optional[str] = None
) -> UsuarioRecompensa:
    assignment = await find_assignment(db, user_id, reward_id)
    if assignment is None:
        raise NotFoundError("El usuario no tiene asignada esta recompensa")

    assignment.estado = estado
    if estado in DELIVERED_STATES:
        assignment.fecha_entrega = datetime.now(timezone.utc)
    if notas is not None:
        assignment.notas = notas

    await db.flush()
    await db.refresh(assignment)
    return assignment


async def redeem_reward(db: AsyncSession, user: Usuario, reward_id: str) -> UsuarioRecompensa:
    """User-initiated redemption; same effect as an admin setting Canjeada."""
    return await set_assignment_state(db, user.id, reward_id, EstadoUsuarioRecompensa.CANJEADA)


async def list_user_rewards(db: AsyncSession, user_id: str) -> list[UsuarioRecompensa]:
    result = await db.execute(
        select(UsuarioRecompensa)
        .where(UsuarioRecompensa.id_usuario == user_id)
        .order_by(UsuarioRecompensa.fecha_obtencion.desc())
    )
    return list(result.scalars().all())


async def assign_eligible_rewards(db: AsyncSession, user: Usuario) -> list[UsuarioRecompensa]:
    """Assign every reward the user currently qualifies for, skipping failures."""
    granted: list[UsuarioRecompensa] = []
    user_id = user.id
    for reward_id in [r.id for r in await get_available_for_user(db, user)]:
        try:
            async with db.begin_nested():
                granted.append(await assign_reward(db, user_id, reward_id))
        except BadRequestError as e:
            logger.info("Automatic reward %s skipped for user %s: %s", reward_id, user_id, e.detail)
    return granted
