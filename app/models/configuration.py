"""
Configuration model - typed key/value settings managed by admins.
"""
from typing import Optional
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Text, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel, utcnow


class TipoConfiguracion(str, Enum):
    TEXTO = "texto"
    NUMERO = "numero"
    BOOLEANO = "booleano"
    JSON = "json"


class Configuracion(BaseModel):
    """
    Runtime configuration entry.

    The raw value is always stored as text and parsed according to `tipo`.
    Examples: puntos_por_dolar, moneda_principal, meta_mensual.
    """
    __tablename__ = "configuraciones"

    clave: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    valor: Mapped[str] = mapped_column(Text, nullable=False)
    tipo: Mapped[TipoConfiguracion] = mapped_column(
        SQLEnum(
            TipoConfiguracion,
            name="tipoconfiguracion",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=TipoConfiguracion.TEXTO,
        nullable=False
    )
    descripcion: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    editable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Configuracion {self.clave}>"
