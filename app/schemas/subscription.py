"""
Subscription (recurring donation) schemas.
"""
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.models.subscription import FrecuenciaSuscripcion, EstadoSuscripcion


class SubscriptionCreate(BaseModel):
    monto: Decimal = Field(..., gt=0, decimal_places=2)
    frecuencia: FrecuenciaSuscripcion
    id_metodo_pago: str
    id_campana: Optional[str] = None
    fecha_fin: Optional[date] = None


class SubscriptionUpdate(BaseModel):
    monto: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    frecuencia: Optional[FrecuenciaSuscripcion] = None
    id_metodo_pago: Optional[str] = None


class SubscriptionCancel(BaseModel):
    motivo: Optional[str] = Field(None, max_length=500)


class SubscriptionResponse(BaseModel):
    id: str
    id_usuario: str
    id_campana: Optional[str] = None
    id_metodo_pago: Optional[str] = None
    monto: Decimal
    frecuencia: FrecuenciaSuscripcion
    estado: EstadoSuscripcion
    fecha_inicio: date
    fecha_fin: Optional[date] = None
    proxima_donacion: date
    total_donado: Decimal
    total_donaciones: int
    motivo_cancelacion: Optional[str] = None
    fecha_cancelacion: Optional[datetime] = None
    created: datetime

    class Config:
        from_attributes = True


class BillingReportResponse(BaseModel):
    procesadas: int
    omitidas: int
    fallidas: int
