"""
Reward catalog and per-user assignments.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    String, Text, Boolean, Integer, DateTime, ForeignKey, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from app.models.user import Usuario


class TipoRecompensa(str, Enum):
    INSIGNIA = "Insignia"
    CERTIFICADO = "Certificado"
    EXPERIENCIA = "Experiencia"
    DESCUENTO = "Descuento"


class EstadoUsuarioRecompensa(str, Enum):
    """Pendiente -> Entregada | Canjeada | Expirada (admins may set any state)."""
    PENDIENTE = "Pendiente"
    ENTREGADA = "Entregada"
    CANJEADA = "Canjeada"
    EXPIRADA = "Expirada"


class Recompensa(BaseModel):
    """Catalog entry. cantidad_disponible = None means unlimited inventory."""
    __tablename__ = "recompensas"

    nombre: Mapped[str] = mapped_column(String(100), nullable=False)
    descripcion: Mapped[str] = mapped_column(Text, nullable=False)
    puntos_requeridos: Mapped[int] = mapped_column(Integer, nullable=False)
    tipo: Mapped[TipoRecompensa] = mapped_column(
        SQLEnum(
            TipoRecompensa,
            name="tiporecompensa",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    imagen_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    activa: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    cantidad_disponible: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    asignaciones: Mapped[list["UsuarioRecompensa"]] = relationship(
        "UsuarioRecompensa", back_populates="recompensa"
    )

    def __repr__(self) -> str:
        return f"<Recompensa {self.nombre} ({self.puntos_requeridos} pts)>"


class UsuarioRecompensa(BaseModel):
    """A reward held by a user. A user can hold each reward at most once."""
    __tablename__ = "usuarios_recompensas"
    __table_args__ = (
        UniqueConstraint("id_usuario", "id_recompensa", name="uq_usuarios_recompensas_usuario_recompensa"),
    )

    id_usuario: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("usuarios.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    id_recompensa: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("recompensas.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    codigo_unico: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    fecha_obtencion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    puntos_usados: Mapped[int] = mapped_column(Integer, nullable=False)
    estado: Mapped[EstadoUsuarioRecompensa] = mapped_column(
        SQLEnum(
            EstadoUsuarioRecompensa,
            name="estadousuariorecompensa",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EstadoUsuarioRecompensa.PENDIENTE,
        nullable=False
    )
    fecha_entrega: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notas: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    usuario: Mapped["Usuario"] = relationship("Usuario", back_populates="recompensas")
    recompensa: Mapped["Recompensa"] = relationship("Recompensa", back_populates="asignaciones")

    def __repr__(self) -> str:
        return f"<UsuarioRecompensa {self.codigo_unico} - {self.estado}>"
