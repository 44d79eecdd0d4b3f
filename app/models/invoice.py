"""
Invoice (factura) and donor fiscal data models.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Text, Boolean, DateTime, ForeignKey, Numeric, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from app.models.donation import Donacion


class EstadoFactura(str, Enum):
    EMITIDA = "Emitida"
    CANCELADA = "Cancelada"


class Factura(BaseModel):
    __tablename__ = "facturas"

    id_donacion: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("donaciones.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    numero_factura: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    fecha_emision: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Amounts (donations carry no tax)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)
    impuestos: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )
    total: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    url_pdf: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    enviada_email: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fecha_envio: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    enviada_sat: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    estado: Mapped[EstadoFactura] = mapped_column(
        SQLEnum(
            EstadoFactura,
            name="estadofactura",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=EstadoFactura.EMITIDA,
        nullable=False
    )

    donacion: Mapped["Donacion"] = relationship("Donacion")

    def __repr__(self) -> str:
        return f"<Factura {self.numero_factura}>"


class DatosFiscales(BaseModel):
    """Tax identity of a donor. A user may register several RFCs."""
    __tablename__ = "datos_fiscales"
    __table_args__ = (
        UniqueConstraint("id_usuario", "rfc", name="uq_datos_fiscales_usuario_rfc"),
    )

    id_usuario: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("usuarios.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    rfc: Mapped[str] = mapped_column(String(20), nullable=False)
    razon_social: Mapped[str] = mapped_column(String(200), nullable=False)
    direccion_fiscal: Mapped[str] = mapped_column(Text, nullable=False)
    correo_facturacion: Mapped[str] = mapped_column(String(255), nullable=False)
    requiere_cfdi: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ultima_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<DatosFiscales {self.rfc}>"
