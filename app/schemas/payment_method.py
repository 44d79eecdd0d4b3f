"""
Payment method schemas.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from app.models.payment_method import TipoPago


class PaymentMethodCreate(BaseModel):
    tipo: TipoPago
    token_referencia: str = Field(..., min_length=1, max_length=255)
    alias: Optional[str] = Field(None, max_length=100)
    ultimo_digitos: Optional[str] = Field(None, pattern=r"^\d{1,4}$")
    banco: Optional[str] = Field(None, max_length=100)
    tipo_cuenta: Optional[str] = Field(None, max_length=50)


class PaymentMethodResponse(BaseModel):
    id: str
    tipo: TipoPago
    alias: Optional[str] = None
    ultimo_digitos: Optional[str] = None
    banco: Optional[str] = None
    tipo_cuenta: Optional[str] = None
    activo: bool
    nombre_formateado: str
    ultima_actualizacion: datetime

    class Config:
        from_attributes = True
