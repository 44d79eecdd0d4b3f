"""
Fundraising campaign model.
"""
from typing import Optional, TYPE_CHECKING
from datetime import date
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Text, Boolean, Integer, Date, Numeric, ForeignKey, Table, Column,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import Usuario
    from app.models.donation import Donacion


class EstadoCampana(str, Enum):
    ACTIVA = "Activa"
    FINALIZADA = "Finalizada"
    CANCELADA = "Cancelada"


campana_seguidores = Table(
    "campana_seguidores",
    Base.metadata,
    Column("id_campana", String(15), ForeignKey("campanas.id", ondelete="CASCADE"), primary_key=True),
    Column("id_usuario", String(15), ForeignKey("usuarios.id", ondelete="CASCADE"), primary_key=True),
)


class Campana(BaseModel):
    """
    Fundraising campaign.

    monto_recaudado and contador_donaciones are derived from completed
    donations and are only ever overwritten by a full recalculation.
    """
    __tablename__ = "campanas"

    nombre: Mapped[str] = mapped_column(String(200), nullable=False)
    descripcion: Mapped[str] = mapped_column(Text, nullable=False)
    imagen_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    meta_monto: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    monto_recaudado: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )
    contador_donaciones: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    es_emergencia: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fecha_inicio: Mapped[date] = mapped_column(Date, nullable=False)
    fecha_fin: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    estado: Mapped[EstadoCampana] = mapped_column(
        SQLEnum(
            EstadoCampana,
            name="estadocampana",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EstadoCampana.ACTIVA,
        nullable=False,
        index=True
    )
    impacto_descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    donaciones: Mapped[list["Donacion"]] = relationship("Donacion", back_populates="campana")
    seguidores: Mapped[list["Usuario"]] = relationship(
        "Usuario", secondary=campana_seguidores, back_populates="campanas_seguidas"
    )

    @property
    def porcentaje_completado(self) -> float:
        """Share of the goal raised so far, capped at 100."""
        if not self.meta_monto or self.meta_monto <= 0:
            return 0.0
        porcentaje = float(self.monto_recaudado or 0) / float(self.meta_monto) * 100
        return round(min(porcentaje, 100.0), 2)

    def __repr__(self) -> str:
        return f"<Campana {self.nombre}>"
