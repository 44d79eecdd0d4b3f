"""
In-app notifications for donors.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import Usuario


class TipoNotificacion(str, Enum):
    DONACION = "Donacion"
    SUSCRIPCION = "Suscripcion"
    CAMPANA = "Campana"
    SISTEMA = "Sistema"


class Notificacion(BaseModel):
    __tablename__ = "notificaciones"

    id_usuario: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("usuarios.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    tipo: Mapped[TipoNotificacion] = mapped_column(
        SQLEnum(
            TipoNotificacion,
            name="tiponotificacion",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    titulo: Mapped[str] = mapped_column(String(200), nullable=False)
    mensaje: Mapped[str] = mapped_column(Text, nullable=False)
    leida: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fecha_lectura: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    usuario: Mapped["Usuario"] = relationship("Usuario", back_populates="notificaciones")

    def __repr__(self) -> str:
        return f"<Notificacion {self.tipo} {self.titulo}>"
