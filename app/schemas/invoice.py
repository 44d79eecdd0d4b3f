"""
Invoice (factura) and fiscal data schemas.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field

from app.models.invoice import EstadoFactura


class FiscalDataCreate(BaseModel):
    rfc: str = Field(..., min_length=10, max_length=13)
    razon_social: str = Field(..., min_length=1, max_length=200)
    direccion_fiscal: str = Field(..., min_length=1)
    correo_facturacion: EmailStr
    requiere_cfdi: bool = False


class FiscalDataResponse(BaseModel):
    id: str
    id_usuario: str
    rfc: str
    razon_social: str
    direccion_fiscal: str
    correo_facturacion: str
    requiere_cfdi: bool
    ultima_actualizacion: datetime

    class Config:
        from_attributes = True


class InvoiceRequest(BaseModel):
    id_donacion: str
    rfc: Optional[str] = Field(None, max_length=13)


class InvoiceResponse(BaseModel):
    id: str
    id_donacion: str
    numero_factura: str
    fecha_emision: datetime
    subtotal: Decimal
    impuestos: Decimal
    total: Decimal
    url_pdf: Optional[str] = None
    enviada_email: bool
    fecha_envio: Optional[datetime] = None
    enviada_sat: bool
    estado: EstadoFactura

    class Config:
        from_attributes = True
