"""
Reward catalog and assignment schemas.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator

from app.models.reward import TipoRecompensa, EstadoUsuarioRecompensa


class RewardCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=100)
    descripcion: str = Field(..., min_length=1)
    puntos_requeridos: int = Field(..., ge=0)
    tipo: TipoRecompensa
    imagen_url: Optional[str] = Field(None, max_length=500)
    activa: bool = True
    cantidad_disponible: Optional[int] = Field(None, ge=0)


class RewardUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=100)
    descripcion: Optional[str] = None
    puntos_requeridos: Optional[int] = Field(None, ge=0)
    tipo: Optional[TipoRecompensa] = None
    imagen_url: Optional[str] = Field(None, max_length=500)
    activa: Optional[bool] = None
    cantidad_disponible: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_required(self):
        for name in ("nombre", "descripcion", "puntos_requeridos", "tipo", "activa"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} no puede ser nulo")
        return self


class RewardResponse(BaseModel):
    id: str
    nombre: str
    descripcion: str
    puntos_requeridos: int
    tipo: TipoRecompensa
    imagen_url: Optional[str] = None
    activa: bool
    cantidad_disponible: Optional[int] = None
    created: datetime

    class Config:
        from_attributes = True


class RewardAssign(BaseModel):
    id_usuario: str
    id_recompensa: str
    codigo_unico: Optional[str] = Field(None, min_length=1, max_length=50)
    notas: Optional[str] = None


class AssignmentStateUpdate(BaseModel):
    estado: EstadoUsuarioRecompensa
    notas: Optional[str] = None


class AssignmentResponse(BaseModel):
    id: str
    id_usuario: str
    id_recompensa: str
    codigo_unico: str
    fecha_obtencion: datetime
    puntos_usados: int
    estado: EstadoUsuarioRecompensa
    fecha_entrega: Optional[datetime] = None
    notas: Optional[str] = None

    class Config:
        from_attributes = True
