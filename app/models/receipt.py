"""
Donation receipt (comprobante) metadata.
"""
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from app.models.donation import Donacion


class Comprobante(BaseModel):
    __tablename__ = "comprobantes"

    id_donacion: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("donaciones.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    codigo_unico: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    fecha_emision: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    url_pdf: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    enviado_email: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fecha_envio: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    correo_envio: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    donacion: Mapped["Donacion"] = relationship("Donacion")

    def __repr__(self) -> str:
        return f"<Comprobante {self.codigo_unico}>"
