"""
Configuration store service.

Typed key/value settings persisted in `configuraciones`, read through a
per-key TTL cache. The cache is owned by the application and passed in
explicitly; a stale read for up to the TTL after a concurrent write is
accepted.
"""
import json
import logging
import math
import time
from decimal import Decimal
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.models.configuration import Configuracion, TipoConfiguracion

logger = logging.getLogger(__name__)

PUBLIC_KEYS = frozenset({
    "montos_predeterminados",
    "moneda_principal",
    "titulo_sitio",
    "meta_mensual",
    "mensaje_donacion",
    "puntos_por_dolar",
    "limite_intentos_pago",
})

# Numeric settings that are counts, rates or amounts
NON_NEGATIVE_KEYS = frozenset({"puntos_por_dolar", "meta_mensual", "limite_intentos_pago"})

DEFAULT_POINTS_PER_DOLLAR = 1

_MISSING = object()


class ConfigCache:
    """In-process key -> value map with a per-key expiry."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def get(self, key: str, default: Any = _MISSING) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not _MISSING


def parse_value(valor: str, tipo: TipoConfiguracion) -> Any:
    """Convert a stored text value to its typed form."""
    if tipo == TipoConfiguracion.NUMERO:
        number = float(valor)
        if not math.isfinite(number):
            raise ValueError(f"non-finite number: {valor}")
        return number
    if tipo == TipoConfiguracion.BOOLEANO:
        return valor.strip().lower() in ("true", "1")
    if tipo == TipoConfiguracion.JSON:
        return json.loads(valor)
    return valor


def validate_value(valor: str, tipo: TipoConfiguracion, clave: Optional[str] = None) -> None:
    """Reject values that do not parse as their declared type."""
    if tipo == TipoConfiguracion.NUMERO:
        try:
            number = parse_value(valor, tipo)
        except ValueError:
            raise BadRequestError({"valor": {"message": "El valor debe ser un número"}})
        if clave in NON_NEGATIVE_KEYS and number < 0:
            raise BadRequestError({"valor": {"message": f"{clave} no puede ser negativo"}})
    elif tipo == TipoConfiguracion.BOOLEANO:
        if valor.strip().lower() not in ("true", "false", "1", "0"):
            raise BadRequestError({"valor": {"message": "El valor debe ser true/false o 1/0"}})
    elif tipo == TipoConfiguracion.JSON:
        try:
            json.loads(valor)
        except ValueError:
            raise BadRequestError({"valor": {"message": "El valor debe ser JSON válido"}})


async def find_config(db: AsyncSession, clave: str) -> Optional[Configuracion]:
    result = await db.execute(select(Configuracion).where(Configuracion.clave == clave))
    return result.scalar_one_or_none()


async def get_config(db: AsyncSession, clave: str) -> Configuracion:
    config = await find_config(db, clave)
    if config is None:
        raise NotFoundError(f"Configuración '{clave}' no encontrada")
    return config


async def get_value(
    db: AsyncSession,
    cache: ConfigCache,
    clave: str,
    default: Any = None
) -> Any:
    """
    Typed value for `clave`, served from the cache when fresh.

    Missing keys return `default` and are not cached, so a later create is
    visible immediately.
    """
    cached = cache.get(clave)
    if cached is not _MISSING:
        return cached

    config = await find_config(db, clave)
    if config is None:
        return default

    try:
        value = parse_value(config.valor, config.tipo)
    except ValueError:
        logger.warning("Configuration %s holds an invalid %s value", clave, config.tipo.value)
        return default

    cache.set(clave, value)
    return value


async def get_points_per_dollar(db: AsyncSession, cache: ConfigCache) -> Decimal:
    """Current rate; anything that is not a non-negative number falls back to the default."""
    value = await get_value(db, cache, "puntos_por_dolar", DEFAULT_POINTS_PER_DOLLAR)
    valid = isinstance(value, (int, float)) and not isinstance(value, bool)
    if not valid or not math.isfinite(value) or value < 0:
        logger.warning("Ignoring invalid puntos_por_dolar %r", value)
        return Decimal(DEFAULT_POINTS_PER_DOLLAR)
    return Decimal(str(value))


async def create_config(
    db: AsyncSession,
    cache: ConfigCache,
    clave: str,
    valor: str,
    tipo: TipoConfiguracion,
    descripcion: Optional[str] = None,
    editable: bool = True
) -> Configuracion:
    if await find_config(db, clave) is not None:
        raise BadRequestError({"clave": {"message": f"Ya existe la configuración '{clave}'"}})
    validate_value(valor, tipo, clave)

    config = Configuracion(
        clave=clave,
        valor=valor,
        tipo=tipo,
        descripcion=descripcion,
        editable=editable,
    )
    db.add(config)
    await db.flush()
    await db.refresh(config)

    # Evicted rather than set: the write is not committed yet
    cache.delete(clave)
    return config


async def update_config(
    db: AsyncSession,
    cache: ConfigCache,
    clave: str,
    valor: Optional[str] = None,
    tipo: Optional[TipoConfiguracion] = None,
    descripcion: Optional[str] = None,
    editable: Optional[bool] = None
) -> Configuracion:
    config = await get_config(db, clave)
    if not config.editable:
        raise BadRequestError(f"La configuración '{clave}' no es editable")

    new_tipo = tipo or config.tipo
    new_valor = valor if valor is not None else config.valor
    validate_value(new_valor, new_tipo, clave)

    config.tipo = new_tipo
    config.valor = new_valor
    if descripcion is not None:
        config.descripcion = descripcion
    if editable is not None:
        config.editable = editable

    await db.flush()
    await db.refresh(config)

    cache.delete(clave)
    return config


async def delete_config(db: AsyncSession, cache: ConfigCache, clave: str) -> None:
    config = await get_config(db, clave)
    if not config.editable:
        raise BadRequestError(f"La configuración '{clave}' no es editable")

    await db.delete(config)
    await db.flush()
    cache.delete(clave)


async def get_public_value(db: AsyncSession, cache: ConfigCache, clave: str) -> Any:
    if clave not in PUBLIC_KEYS:
        raise ForbiddenError(f"La configuración '{clave}' no es pública")

    value = await get_value(db, cache, clave, _MISSING)
    if value is _MISSING:
        raise NotFoundError(f"Configuración '{clave}' no encontrada")
    return value


async def get_public_values(
    db: AsyncSession,
    cache: ConfigCache,
    claves: list[str]
) -> dict[str, Any]:
    """Whitelisted keys that exist; everything else is silently omitted."""
    values: dict[str, Any] = {}
    for clave in claves:
        if clave not in PUBLIC_KEYS:
            continue
        value = await get_value(db, cache, clave, _MISSING)
        if value is not _MISSING:
            values[clave] = value
    return values
