"""
Configuration store endpoints. Public reads are limited to a whitelist.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_admin, get_config_cache
from app.models.configuration import Configuracion
from app.models.user import Usuario
from app.schemas.common import PaginatedResponse
from app.schemas.configuration import ConfigCreate, ConfigUpdate, ConfigResponse, PublicValue
from app.services import configuration
from app.services.configuration import ConfigCache
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/configuraciones", tags=["configuraciones"])


@router.get("/publicas/valor", response_model=PublicValue)
async def get_public_value(
    clave: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache)
):
    valor = await configuration.get_public_value(db, cache, clave)
    return PublicValue(clave=clave, valor=valor)


@router.get("/publicas/valores")
async def get_public_values(
    claves: str = Query(..., min_length=1, description="Comma separated keys"),
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache)
):
    keys = [clave.strip() for clave in claves.split(",") if clave.strip()]
    return await configuration.get_public_values(db, cache, keys)


@router.get("", response_model=PaginatedResponse[ConfigResponse])
async def list_configurations(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    query = select(Configuracion).order_by(Configuracion.clave.asc())
    rows, total = await paginate(db, query, page, limit)
    return PaginatedResponse.build(
        [ConfigResponse.model_validate(c) for c in rows], total, page, limit
    )


@router.post("", response_model=ConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_configuration(
    data: ConfigCreate,
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    admin: Usuario = Depends(get_current_admin)
):
    return await configuration.create_config(db, cache, **data.model_dump())


@router.get("/{clave}", response_model=ConfigResponse)
async def get_configuration(
    clave: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await configuration.get_config(db, clave)


@router.put("/{clave}", response_model=ConfigResponse)
async def update_configuration(
    clave: str,
    data: ConfigUpdate,
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    admin: Usuario = Depends(get_current_admin)
):
    return await configuration.update_config(db, cache, clave, **data.model_dump(exclude_unset=True))


@router.delete("/{clave}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_configuration(
    clave: str,
    db: AsyncSession = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    admin: Usuario = Depends(get_current_admin)
):
    await configuration.delete_config(db, cache, clave)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
