"""
Authentication, account and notification schemas.
"""
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field

from app.models.notification import TipoNotificacion
from app.models.user import RolUsuario, NivelDonante
from app.schemas.donation import DonationResponse
from app.schemas.reward import AssignmentResponse
from app.schemas.subscription import SubscriptionResponse


class UserCreate(BaseModel):
    """Registration request."""
    nombres: str = Field(..., min_length=1, max_length=100)
    apellidos: str = Field(..., min_length=1, max_length=100)
    correo: EmailStr
    password: str = Field(..., min_length=8)
    cedula: Optional[str] = Field(None, max_length=20)
    telefono: Optional[str] = Field(None, max_length=20)
    fecha_nacimiento: Optional[date] = None
    direccion: Optional[str] = None
    ciudad: Optional[str] = Field(None, max_length=100)
    provincia: Optional[str] = Field(None, max_length=100)


class UserLogin(BaseModel):
    correo: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class PasswordResetRequest(BaseModel):
    correo: EmailStr


class PasswordReset(BaseModel):
    token: str
    password_nuevo: str = Field(..., min_length=8)


class PasswordChange(BaseModel):
    """Password change request."""
    password_actual: str
    password_nuevo: str = Field(..., min_length=8)


class UserUpdate(BaseModel):
    """Profile update; only the fields sent are changed."""
    nombres: Optional[str] = Field(None, min_length=1, max_length=100)
    apellidos: Optional[str] = Field(None, min_length=1, max_length=100)
    correo: Optional[EmailStr] = None
    cedula: Optional[str] = Field(None, max_length=20)
    telefono: Optional[str] = Field(None, max_length=20)
    fecha_nacimiento: Optional[date] = None
    direccion: Optional[str] = None
    ciudad: Optional[str] = Field(None, max_length=100)
    provincia: Optional[str] = Field(None, max_length=100)


class UserResponse(BaseModel):
    id: str
    nombres: str
    apellidos: str
    correo: str
    cedula: Optional[str] = None
    telefono: Optional[str] = None
    fecha_nacimiento: Optional[date] = None
    direccion: Optional[str] = None
    ciudad: Optional[str] = None
    provincia: Optional[str] = None
    rol: RolUsuario
    activo: bool
    puntos_acumulados: int
    nivel_donante: NivelDonante
    fecha_registro: datetime
    ultimo_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    usuario: UserResponse


class NotificationCreate(BaseModel):
    id_usuario: str
    tipo: TipoNotificacion = TipoNotificacion.SISTEMA
    titulo: str = Field(..., min_length=1, max_length=200)
    mensaje: str = Field(..., min_length=1)


class NotificationResponse(BaseModel):
    id: str
    id_usuario: str
    tipo: TipoNotificacion
    titulo: str
    mensaje: str
    leida: bool
    fecha_lectura: Optional[datetime] = None
    created: datetime

    class Config:
        from_attributes = True


class PersonalStatistics(BaseModel):
    total_donado: Decimal
    total_donaciones: int
    campanas_apoyadas: int
    ultima_donacion: Optional[datetime] = None
    puntos_acumulados: int
    nivel_donante: str
    recompensas_obtenidas: int


class HistoryResponse(BaseModel):
    donaciones: list[DonationResponse]
    suscripciones: list[SubscriptionResponse]
    recompensas: list[AssignmentResponse]
