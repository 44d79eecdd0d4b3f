"""
SQLAlchemy models for the donations backend.

Modules:
- Accounts: users, notifications, payment methods
- Fundraising: campaigns, donations, subscriptions
- Documents: receipts, invoices, fiscal data
- Rewards: catalog and user assignments
- Settings & reporting: configuration store, monthly statistics
"""
# Accounts
from app.models.user import Usuario, RolUsuario, NivelDonante
from app.models.notification import Notificacion, TipoNotificacion
from app.models.payment_method import MetodoPago, TipoPago

# Fundraising
from app.models.campaign import Campana, EstadoCampana, campana_seguidores
from app.models.donation import Donacion, EstadoDonacion
from app.models.subscription import Suscripcion, FrecuenciaSuscripcion, EstadoSuscripcion

# Documents
from app.models.receipt import Comprobante
from app.models.invoice import Factura, EstadoFactura, DatosFiscales

# Rewards
from app.models.reward import (
    Recompensa,
    TipoRecompensa,
    UsuarioRecompensa,
    EstadoUsuarioRecompensa,
)

# Settings & reporting
from app.models.configuration import Configuracion, TipoConfiguracion
from app.models.statistics import EstadisticaMensual

__all__ = [
    # Accounts
    "Usuario",
    "RolUsuario",
    "NivelDonante",
    "Notificacion",
    "TipoNotificacion",
    "MetodoPago",
    "TipoPago",
    # Fundraising
    "Campana",
    "EstadoCampana",
    "campana_seguidores",
    "Donacion",
    "EstadoDonacion",
    "Suscripcion",
    "FrecuenciaSuscripcion",
    "EstadoSuscripcion",
    # Documents
    "Comprobante",
    "Factura",
    "EstadoFactura",
    "DatosFiscales",
    # Rewards
    "Recompensa",
    "TipoRecompensa",
    "UsuarioRecompensa",
    "EstadoUsuarioRecompensa",
    # Settings & reporting
    "Configuracion",
    "TipoConfiguracion",
    "EstadisticaMensual",
]
