"""
Donation model - one ledger entry per contribution.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Text, Boolean, Integer, DateTime, ForeignKey, Numeric, Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, utcnow
from app.models.payment_method import TipoPago

if TYPE_CHECKING:
    from app.models.user import Usuario
    from app.models.campaign import Campana
    from app.models.subscription import Suscripcion


class EstadoDonacion(str, Enum):
    """Pendiente -> Completada | Fallida | Reembolsada."""
    PENDIENTE = "Pendiente"
    COMPLETADA = "Completada"
    FALLIDA = "Fallida"
    REEMBOLSADA = "Reembolsada"


class Donacion(BaseModel):
    """
    Donation record.

    Linked optionally to a user, a campaign and the subscription that spawned
    it. puntos_otorgados is computed once at creation and never recalculated.
    """
    __tablename__ = "donaciones"

    id_usuario: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("usuarios.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    id_campana: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("campanas.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    id_suscripcion: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("suscripciones.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Amount
    monto: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    moneda: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    fecha_donacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    # Payment details
    metodo_pago: Mapped[TipoPago] = mapped_column(
        SQLEnum(
            TipoPago,
            name="metodopagodonacion",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    referencia_pago: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    estado: Mapped[EstadoDonacion] = mapped_column(
        SQLEnum(
            EstadoDonacion,
            name="estadodonacion",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EstadoDonacion.PENDIENTE,
        nullable=False,
        index=True
    )

    # Donor preferences
    es_anonima: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    requiere_factura: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    correo_comprobante: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    acepto_terminos: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    acepto_noticias: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    puntos_otorgados: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ip_donante: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    notas: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    usuario: Mapped[Optional["Usuario"]] = relationship("Usuario", back_populates="donaciones")
    campana: Mapped[Optional["Campana"]] = relationship("Campana", back_populates="donaciones")
    suscripcion: Mapped[Optional["Suscripcion"]] = relationship(
        "Suscripcion", back_populates="donaciones"
    )

    def __repr__(self) -> str:
        return f"<Donacion {self.monto} {self.moneda} - {self.estado}>"
