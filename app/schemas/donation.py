"""
Pydantic schemas for Donation endpoints.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, EmailStr

from app.models.donation import EstadoDonacion
from app.models.payment_method import TipoPago


class DonationCreate(BaseModel):
    """Create a new donation (guest or authenticated)."""
    monto: Decimal = Field(..., gt=0, decimal_places=2)
    moneda: str = Field(default="USD", max_length=3)
    metodo_pago: TipoPago
    referencia_pago: Optional[str] = Field(None, max_length=255)
    id_campana: Optional[str] = None

    es_anonima: bool = False
    requiere_factura: bool = False
    correo_comprobante: Optional[EmailStr] = None
    acepto_terminos: bool
    acepto_noticias: bool = False
    notas: Optional[str] = None


class DonationStateUpdate(BaseModel):
    estado: EstadoDonacion
    referencia_pago: Optional[str] = Field(None, max_length=255)


class DonationResponse(BaseModel):
    id: str
    id_usuario: Optional[str] = None
    id_campana: Optional[str] = None
    id_suscripcion: Optional[str] = None
    monto: Decimal
    moneda: str
    fecha_donacion: datetime
    metodo_pago: TipoPago
    referencia_pago: Optional[str] = None
    estado: EstadoDonacion
    es_anonima: bool
    requiere_factura: bool
    correo_comprobante: Optional[str] = None
    puntos_otorgados: int
    notas: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True
