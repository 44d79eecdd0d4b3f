#!/usr/bin/env python3
"""
Demo Data Seeding Script for the donations backend.

Creates, when missing:
- An administrator account
- The public configuration keys the donation site reads
- A few demo campaigns (one flagged as an emergency)

Existing rows are left untouched, so the script can be re-run safely.

Usage:
    python scripts/seed_demo_data.py [--admin-email EMAIL] [--admin-password PASSWORD]

Requires:
    - DATABASE_URL pointing at a migrated database
"""
import argparse
import asyncio
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from app.core.config import settings
from app.core.security import get_password_hash
from app.db.base import session_scope
from app.models.campaign import Campana
from app.models.configuration import TipoConfiguracion
from app.models.user import Usuario, RolUsuario, NivelDonante
from app.services import campaigns, configuration
from app.services.configuration import ConfigCache
from app.services.users import find_by_email


DEFAULT_CONFIG = [
    ("titulo_sitio", "Dona y transforma vidas", TipoConfiguracion.TEXTO, "Título del sitio público"),
    ("moneda_principal", "USD", TipoConfiguracion.TEXTO, "Moneda de las donaciones"),
    ("montos_predeterminados", "[5, 10, 25, 50, 100]", TipoConfiguracion.JSON, "Montos sugeridos"),
    ("meta_mensual", "5000", TipoConfiguracion.NUMERO, "Meta de recaudación mensual"),
    ("mensaje_donacion", "¡Gracias por tu generosidad!", TipoConfiguracion.TEXTO, "Mensaje tras donar"),
    ("puntos_por_dolar", "1", TipoConfiguracion.NUMERO, "Puntos otorgados por dólar donado"),
    ("limite_intentos_pago", "3", TipoConfiguracion.NUMERO, "Intentos de cobro permitidos"),
]

DEMO_CAMPAIGNS = [
    {
        "nombre": "Agua limpia para comunidades rurales",
        "descripcion": "Construcción de pozos y sistemas de filtrado en zonas rurales.",
        "meta_monto": Decimal("15000.00"),
        "es_emergencia": False,
        "impacto_descripcion": "Cada $10 lleva agua potable a una familia durante un mes",
    },
    {
        "nombre": "Respuesta a inundaciones",
        "descripcion": "Kits de higiene, alimentos y refugio temporal para familias afectadas.",
        "meta_monto": Decimal("8000.00"),
        "es_emergencia": True,
        "impacto_descripcion": "Con $25 entregamos un kit de emergencia",
    },
    {
        "nombre": "Becas escolares",
        "descripcion": "Útiles, uniformes y transporte para el año lectivo.",
        "meta_monto": Decimal("6000.00"),
        "es_emergencia": False,
        "impacto_descripcion": "Con $50 un estudiante completa su lista de útiles",
    },
]


async def ensure_admin(db, correo: str, password: str) -> Usuario:
    """Get or create the administrator account."""
    print("\nLooking for administrator account...")

    user = await find_by_email(db, correo)
    if user is not None:
        if user.rol != RolUsuario.ADMIN:
            user.rol = RolUsuario.ADMIN
            await db.flush()
            print(f"  Promoted {user.correo} to admin")
        else:
            print(f"  Found admin: {user.correo} ({user.id})")
        return user

    user = Usuario(
        nombres="Administrador",
        apellidos="General",
        correo=correo.lower(),
        password_hash=get_password_hash(password),
        rol=RolUsuario.ADMIN,
        activo=True,
        puntos_acumulados=0,
        nivel_donante=NivelDonante.BRONCE,
    )
    db.add(user)
    await db.flush()
    print(f"  Created admin: {user.correo} ({user.id})")
    return user


async def ensure_configuration(db, cache: ConfigCache) -> int:
    """Create the default configuration keys that do not exist yet."""
    print("\nSetting up configuration...")

    created = 0
    for clave, valor, tipo, descripcion in DEFAULT_CONFIG:
        if await configuration.find_config(db, clave) is not None:
            print(f"  Kept existing: {clave}")
            continue
        await configuration.create_config(db, cache, clave, valor, tipo, descripcion)
        created += 1
        print(f"  Created: {clave} = {valor}")
    return created


async def ensure_campaigns(db) -> int:
    """Create the demo campaigns whose name is not taken."""
    print("\nCreating demo campaigns...")

    created = 0
    for data in DEMO_CAMPAIGNS:
        result = await db.execute(select(Campana.id).where(Campana.nombre == data["nombre"]))
        if result.first() is not None:
            print(f"  Kept existing: {data['nombre']}")
            continue
        campaign = await campaigns.create_campaign(db, fecha_inicio=date.today(), **data)
        created += 1
        badge = "[EMERGENCIA]" if campaign.es_emergencia else ""
        print(f"  Created campaign: {campaign.nombre} {badge}".rstrip())
        print(f"    Meta: ${campaign.meta_monto:,.2f}")
    return created


async def print_summary(db):
    """Print summary of the seeded data."""
    print("\n" + "="*60)
    print("DEMO DATA SUMMARY")
    print("="*60)

    featured = await campaigns.get_featured(db)
    print(f"\nFeatured campaigns: {len(featured)}")
    for c in featured:
        print(f"  {c.nombre}")
        print(f"    ${c.monto_recaudado:,.2f} / ${c.meta_monto:,.2f} ({c.porcentaje_completado}%)")

    public = await configuration.get_public_values(db, ConfigCache(0), [clave for clave, *_ in DEFAULT_CONFIG])
    print(f"\nPublic configuration: {len(public)} keys")
    for clave, valor in public.items():
        print(f"  {clave:24} {valor}")

    print("\n" + "="*60)
    print("Demo data seeding complete!")
    print("="*60)


async def main(args: argparse.Namespace):
    """Main seeding function."""
    print("="*60)
    print(f"{settings.APP_NAME} Demo Data Seeder")
    print("="*60)

    cache = ConfigCache(settings.CONFIG_CACHE_TTL_SECONDS)
    async with session_scope() as db:
        await ensure_admin(db, args.admin_email, args.admin_password)
        await ensure_configuration(db, cache)
        await ensure_campaigns(db)
        await print_summary(db)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo data for the donations backend")
    parser.add_argument("--admin-email", default="admin@donaciones.local", help="Administrator e-mail")
    parser.add_argument("--admin-password", default="Admin123!", help="Administrator password")
    asyncio.run(main(parser.parse_args()))
