"""
Recurring donation schedule.
"""
from typing import Optional, TYPE_CHECKING
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, Integer, Date, DateTime, ForeignKey, Numeric, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import Usuario
    from app.models.campaign import Campana
    from app.models.payment_method import MetodoPago
    from app.models.donation import Donacion


class FrecuenciaSuscripcion(str, Enum):
    MENSUAL = "Mensual"
    TRIMESTRAL = "Trimestral"
    ANUAL = "Anual"


class EstadoSuscripcion(str, Enum):
    """Only Activa subscriptions are billed; the others never resume on their own."""
    ACTIVA = "Activa"
    PAUSADA = "Pausada"
    CANCELADA = "Cancelada"
    FINALIZADA = "Finalizada"


class Suscripcion(BaseModel):
    __tablename__ = "suscripciones"

    id_usuario: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("usuarios.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    id_campana: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("campanas.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    id_metodo_pago: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("metodos_pago.id", ondelete="SET NULL"),
        nullable=True
    )

    monto: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    frecuencia: Mapped[FrecuenciaSuscripcion] = mapped_column(
        SQLEnum(
            FrecuenciaSuscripcion,
            name="frecuenciasuscripcion",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    estado: Mapped[EstadoSuscripcion] = mapped_column(
        SQLEnum(
            EstadoSuscripcion,
            name="estadosuscripcion",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EstadoSuscripcion.ACTIVA,
        nullable=False,
        index=True
    )

    # Schedule
    fecha_inicio: Mapped[date] = mapped_column(Date, nullable=False)
    fecha_fin: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    proxima_donacion: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Running totals
    total_donado: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )
    total_donaciones: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    motivo_cancelacion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    fecha_cancelacion: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    usuario: Mapped["Usuario"] = relationship("Usuario", back_populates="suscripciones")
    campana: Mapped[Optional["Campana"]] = relationship("Campana")
    metodo_pago: Mapped[Optional["MetodoPago"]] = relationship("MetodoPago")
    donaciones: Mapped[list["Donacion"]] = relationship("Donacion", back_populates="suscripcion")

    def __repr__(self) -> str:
        return f"<Suscripcion {self.monto} {self.frecuencia} - {self.estado}>"
