"""
Receipt (comprobante) schemas.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr


class ReceiptResponse(BaseModel):
    id: str
    id_donacion: str
    codigo_unico: str
    fecha_emision: datetime
    url_pdf: Optional[str] = None
    enviado_email: bool
    fecha_envio: Optional[datetime] = None
    correo_envio: Optional[str] = None

    class Config:
        from_attributes = True


class ReceiptVerification(BaseModel):
    valido: bool
    codigo: str
    fecha_emision: Optional[datetime] = None
    monto: Optional[Decimal] = None
    moneda: Optional[str] = None
    campana: Optional[str] = None


class ResendRequest(BaseModel):
    correo: Optional[EmailStr] = None


class SentResponse(BaseModel):
    enviado: bool
