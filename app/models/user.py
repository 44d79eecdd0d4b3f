"""
User (donor account) model.
"""
from typing import Optional, TYPE_CHECKING
from datetime import date, datetime
from enum import Enum
from sqlalchemy import String, Boolean, Integer, Date, DateTime, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import BaseModel, utcnow

if TYPE_CHECKING:
    from app.models.donation import Donacion
    from app.models.subscription import Suscripcion
    from app.models.payment_method import MetodoPago
    from app.models.notification import Notificacion
    from app.models.reward import UsuarioRecompensa
    from app.models.campaign import Campana


class RolUsuario(str, Enum):
    DONANTE = "donante"
    ADMIN = "admin"


class NivelDonante(str, Enum):
    """Donor tier, ordered Bronce < Plata < Oro < Platino."""
    BRONCE = "Bronce"
    PLATA = "Plata"
    ORO = "Oro"
    PLATINO = "Platino"


class Usuario(BaseModel):
    """Donor account with credentials, profile and accumulated points."""
    __tablename__ = "usuarios"

    # Profile
    nombres: Mapped[str] = mapped_column(String(100), nullable=False)
    apellidos: Mapped[str] = mapped_column(String(100), nullable=False)
    cedula: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    fecha_nacimiento: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    direccion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ciudad: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    provincia: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    telefono: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Auth
    correo: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    rol: Mapped[RolUsuario] = mapped_column(
        SQLEnum(
            RolUsuario,
            name="rolusuario",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=RolUsuario.DONANTE,
        nullable=False
    )
    fecha_registro: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    ultimo_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    activo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Rewards
    puntos_acumulados: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    nivel_donante: Mapped[NivelDonante] = mapped_column(
        SQLEnum(
            NivelDonante,
            name="niveldonante",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=NivelDonante.BRONCE,
        nullable=False
    )

    # Relationships
    donaciones: Mapped[list["Donacion"]] = relationship(
        "Donacion", back_populates="usuario"
    )
    suscripciones: Mapped[list["Suscripcion"]] = relationship(
        "Suscripcion", back_populates="usuario"
    )
    metodos_pago: Mapped[list["MetodoPago"]] = relationship(
        "MetodoPago", back_populates="usuario", cascade="all, delete-orphan"
    )
    notificaciones: Mapped[list["Notificacion"]] = relationship(
        "Notificacion", back_populates="usuario", cascade="all, delete-orphan"
    )
    recompensas: Mapped[list["UsuarioRecompensa"]] = relationship(
        "UsuarioRecompensa", back_populates="usuario"
    )
    campanas_seguidas: Mapped[list["Campana"]] = relationship(
        "Campana", secondary="campana_seguidores", back_populates="seguidores"
    )

    @property
    def nombre_completo(self) -> str:
        return f"{self.nombres} {self.apellidos}"

    def __repr__(self) -> str:
        return f"<Usuario {self.correo}>"
