"""
Stored payment methods (tokenized references to external processors).
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from app.models.user import Usuario


class TipoPago(str, Enum):
    """Payment processor family, shared by donations and stored methods."""
    TARJETA = "Tarjeta"
    PLUX = "PLUX"
    PAYPAL = "PayPal"


class MetodoPago(BaseModel):
    __tablename__ = "metodos_pago"

    id_usuario: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("usuarios.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    tipo: Mapped[TipoPago] = mapped_column(
        SQLEnum(
            TipoPago,
            name="tipometodopago",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        nullable=False
    )
    token_referencia: Mapped[str] = mapped_column(String(255), nullable=False)
    alias: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    ultimo_digitos: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    banco: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tipo_cuenta: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    ultima_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    usuario: Mapped["Usuario"] = relationship("Usuario", back_populates="metodos_pago")

    @property
    def nombre_formateado(self) -> str:
        if self.alias:
            return self.alias
        if self.tipo == TipoPago.TARJETA and self.ultimo_digitos:
            return f"Tarjeta terminada en {self.ultimo_digitos}"
        if self.tipo == TipoPago.PLUX:
            return "Cuenta PLUX"
        if self.tipo == TipoPago.PAYPAL:
            return "Cuenta PayPal"
        return "Método de pago"

    def __repr__(self) -> str:
        return f"<MetodoPago {self.tipo} usuario={self.id_usuario}>"
