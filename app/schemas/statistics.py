"""
Statistics schemas.
"""
from typing import Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel


class MonthlyStatisticsResponse(BaseModel):
    ano: int
    mes: int
    total_donaciones: Decimal
    contador_donaciones: int
    contador_donantes_unicos: int
    contador_nuevos_donantes: int
    contador_suscripciones_nuevas: int
    contador_suscripciones_canceladas: int
    campana_principal: Optional[str] = None
    monto_promedio: Decimal
    updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class GenerateMonthly(BaseModel):
    ano: int
    mes: int
