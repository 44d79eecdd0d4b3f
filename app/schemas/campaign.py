"""
Campaign schemas.
"""
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field, model_validator

from app.models.campaign import EstadoCampana


class CampaignCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=200)
    descripcion: str = Field(..., min_length=1)
    imagen_url: Optional[str] = Field(None, max_length=500)
    meta_monto: Decimal = Field(..., gt=0, decimal_places=2)
    es_emergencia: bool = False
    fecha_inicio: date
    fecha_fin: Optional[date] = None
    impacto_descripcion: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.fecha_fin is not None and self.fecha_fin < self.fecha_inicio:
            raise ValueError("fecha_fin debe ser posterior a fecha_inicio")
        return self


class CampaignUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=200)
    descripcion: Optional[str] = None
    imagen_url: Optional[str] = Field(None, max_length=500)
    meta_monto: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    es_emergencia: Optional[bool] = None
    fecha_inicio: Optional[date] = None
    fecha_fin: Optional[date] = None
    impacto_descripcion: Optional[str] = None

    @model_validator(mode="after")
    def check_fields(self):
        for name in ("nombre", "descripcion", "meta_monto", "es_emergencia", "fecha_inicio"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} no puede ser nulo")
        if self.fecha_inicio and self.fecha_fin and self.fecha_fin < self.fecha_inicio:
            raise ValueError("fecha_fin debe ser posterior a fecha_inicio")
        return self


class CampaignStateUpdate(BaseModel):
    estado: EstadoCampana


class CampaignFollow(BaseModel):
    seguir: bool = True


class CampaignUpdateNotice(BaseModel):
    """Progress update mailed to followers."""
    actualizacion: str = Field(..., min_length=1)


class CampaignResponse(BaseModel):
    id: str
    nombre: str
    descripcion: str
    imagen_url: Optional[str] = None
    meta_monto: Decimal
    monto_recaudado: Decimal
    contador_donaciones: int
    porcentaje_completado: float
    es_emergencia: bool
    fecha_inicio: date
    fecha_fin: Optional[date] = None
    estado: EstadoCampana
    impacto_descripcion: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True
