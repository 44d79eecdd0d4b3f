"""
Configuration store schemas.
"""
from typing import Any, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.configuration import TipoConfiguracion


class ConfigCreate(BaseModel):
    clave: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    valor: str
    tipo: TipoConfiguracion = TipoConfiguracion.TEXTO
    descripcion: Optional[str] = None
    editable: bool = True


class ConfigUpdate(BaseModel):
    valor: Optional[str] = None
    tipo: Optional[TipoConfiguracion] = None
    descripcion: Optional[str] = None
    editable: Optional[bool] = None


class ConfigResponse(BaseModel):
    id: str
    clave: str
    valor: str
    tipo: TipoConfiguracion
    descripcion: Optional[str] = None
    editable: bool
    fecha_actualizacion: datetime

    class Config:
        from_attributes = True


class PublicValue(BaseModel):
    clave: str
    valor: Any
