"""
Reward catalog and assignment endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin
from app.models.reward import TipoRecompensa
from app.models.user import Usuario
from app.schemas.common import PaginatedResponse
from app.schemas.reward import (
    RewardCreate, RewardUpdate, RewardResponse,
    RewardAssign, AssignmentStateUpdate, AssignmentResponse
)
from app.services import rewards
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/recompensas", tags=["recompensas"])


@router.get("", response_model=PaginatedResponse[RewardResponse])
async def list_rewards(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    activa: Optional[bool] = None,
    tipo: Optional[TipoRecompensa] = None,
    db: AsyncSession = Depends(get_db)
):
    rows, total = await paginate(db, rewards.reward_query(activa, tipo), page, limit)
    return PaginatedResponse.build(
        [RewardResponse.model_validate(r) for r in rows], total, page, limit
    )


@router.get("/disponibles", response_model=list[RewardResponse])
async def available_rewards(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    """Active rewards the current user can afford and does not hold yet."""
    return await rewards.get_available_for_user(db, current_user)


@router.get("/mis-recompensas", response_model=list[AssignmentResponse])
async def my_rewards(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await rewards.list_user_rewards(db, current_user.id)


@router.post("/asignar", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_reward(
    data: RewardAssign,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await rewards.assign_reward(
        db, data.id_usuario, data.id_recompensa, data.codigo_unico, data.notas
    )


@router.post("/verificar-automaticas", response_model=list[AssignmentResponse])
async def assign_eligible_rewards(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    """Grant every reward the current user qualifies for."""
    return await rewards.assign_eligible_rewards(db, current_user)


@router.patch(
    "/asignaciones/{user_id}/{reward_id}/estado",
    response_model=AssignmentResponse
)
async def set_assignment_state(
    user_id: str,
    reward_id: str,
    data: AssignmentStateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await rewards.set_assignment_state(db, user_id, reward_id, data.estado, data.notas)


@router.post("", response_model=RewardResponse, status_code=status.HTTP_201_CREATED)
async def create_reward(
    data: RewardCreate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await rewards.create_reward(db, **data.model_dump())


@router.get("/{reward_id}", response_model=RewardResponse)
async def get_reward(reward_id: str, db: AsyncSession = Depends(get_db)):
    return await rewards.get_reward(db, reward_id)


@router.put("/{reward_id}", response_model=RewardResponse)
async def update_reward(
    reward_id: str,
    data: RewardUpdate,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await rewards.update_reward(db, reward_id, **data.model_dump(exclude_unset=True))


@router.delete("/{reward_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reward(
    reward_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    """Only rewards nobody holds can be deleted."""
    await rewards.delete_reward(db, reward_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{reward_id}/canjear", response_model=AssignmentResponse)
async def redeem_reward(
    reward_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await rewards.redeem_reward(db, current_user, reward_id)
