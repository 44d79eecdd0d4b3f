"""
Monthly statistics snapshot.
"""
from typing import Optional
from decimal import Decimal
from sqlalchemy import Integer, String, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base
from app.models.base import TimestampMixin


class EstadisticaMensual(Base, TimestampMixin):
    """Rollup of one calendar month, keyed by (ano, mes). Regenerated by upsert."""
    __tablename__ = "estadisticas_mensuales"

    ano: Mapped[int] = mapped_column(Integer, primary_key=True)
    mes: Mapped[int] = mapped_column(Integer, primary_key=True)

    total_donaciones: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2), default=Decimal("0"), nullable=False
    )
    contador_donaciones: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    contador_donantes_unicos: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    contador_nuevos_donantes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    contador_suscripciones_nuevas: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    contador_suscripciones_canceladas: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    campana_principal: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    monto_promedio: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), default=Decimal("0"), nullable=False
    )

    def __repr__(self) -> str:
        return f"<EstadisticaMensual {self.ano}-{self.mes:02d}>"
