"""
Invoice (factura) issuance and donor fiscal data.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.donation import Donacion, EstadoDonacion
from app.models.invoice import Factura, EstadoFactura, DatosFiscales
from app.services.documents import write_document, resolve_document
from app.services.email import email_service

logger = logging.getLogger(__name__)


# ============================================================================
# FISCAL DATA
# ============================================================================

async def list_fiscal_data(db: AsyncSession, user_id: str) -> list[DatosFiscales]:
    result = await db.execute(
        select(DatosFiscales)
        .where(DatosFiscales.id_usuario == user_id)
        .order_by(DatosFiscales.ultima_actualizacion.desc())
    )
    return list(result.scalars().all())


async def get_latest_fiscal_data(db: AsyncSession, user_id: str) -> Optional[DatosFiscales]:
    """Most recently updated fiscal record of a user, if any."""
    result = await db.execute(
        select(DatosFiscales)
        .where(DatosFiscales.id_usuario == user_id)
        .order_by(DatosFiscales.ultima_actualizacion.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_fiscal_data(db: AsyncSession, user_id: str, rfc: str) -> Optional[DatosFiscales]:
    result = await db.execute(
        select(DatosFiscales).where(
            DatosFiscales.id_usuario == user_id,
            DatosFiscales.rfc == rfc,
        )
    )
    return result.scalar_one_or_none()


async def save_fiscal_data(
    db: AsyncSession,
    user_id: str,
    rfc: str,
    razon_social: str,
    direccion_fiscal: str,
    correo_facturacion: str,
    requiere_cfdi: bool = False
) -> DatosFiscales:
    """Create or update the fiscal record identified by (user, rfc)."""
    rfc = rfc.strip().upper()
    datos = await find_fiscal_data(db, user_id, rfc)
    if datos is None:
        datos = DatosFiscales(id_usuario=user_id, rfc=rfc)
        db.add(datos)

    datos.razon_social = razon_social
    datos.direccion_fiscal = direccion_fiscal
    datos.correo_facturacion = correo_facturacion
    datos.requiere_cfdi = requiere_cfdi
    datos.ultima_actualizacion = datetime.now(timezone.utc)

    await db.flush()
    await db.refresh(datos)
    return datos


# ============================================================================
# INVOICES
# ============================================================================

async def find_invoice_for_donation(db: AsyncSession, donation_id: str) -> Optional[Factura]:
    result = await db.execute(select(Factura).where(Factura.id_donacion == donation_id))
    return result.scalar_one_or_none()


async def get_invoice(db: AsyncSession, invoice_id: str) -> Factura:
    invoice = await db.get(Factura, invoice_id)
    if invoice is None:
        raise NotFoundError(f"Factura {invoice_id} no encontrada")
    return invoice


async def get_invoice_by_number(db: AsyncSession, numero: str) -> Factura:
    result = await db.execute(select(Factura).where(Factura.numero_factura == numero))
    invoice = result.scalar_one_or_none()
    if invoice is None:
        raise NotFoundError(f"Factura {numero} no encontrada")
    return invoice


def user_invoices_query(user_id: str):
    return (
        select(Factura)
        .join(Donacion, Donacion.id == Factura.id_donacion)
        .where(Donacion.id_usuario == user_id)
        .order_by(Factura.fecha_emision.desc())
    )


async def _next_number(db: AsyncSession, year: int) -> str:
    """FAC-{year}-{sequence:05d}, sequence counted per year."""
    prefix = f"FAC-{year}-"
    issued = await db.execute(
        select(func.count(Factura.id)).where(Factura.numero_factura.like(f"{prefix}%"))
    )
    sequence = (issued.scalar() or 0) + 1
    while True:
        numero = f"{prefix}{sequence:05d}"
        taken = await db.execute(select(Factura.id).where(Factura.numero_factura == numero))
        if taken.scalar_one_or_none() is None:
            return numero
        sequence += 1


async def send_invoice_email(
    db: AsyncSession,
    invoice: Factura,
    to: str
) -> bool:
    pdf_path = str(resolve_document(invoice.url_pdf)) if invoice.url_pdf else None
    sent = await email_service.send_invoice(to, invoice.numero_factura, invoice.total, pdf_path)
    if sent:
        invoice.enviada_email = True
        invoice.fecha_envio = datetime.now(timezone.utc)
        await db.flush()
    return sent


async def issue_invoice(
    db: AsyncSession,
    donation: Donacion,
    datos: DatosFiscales
) -> Factura:
    """Issue the invoice for a completed donation using the given fiscal data."""
    if donation.estado != EstadoDonacion.COMPLETADA:
        raise BadRequestError("Solo se facturan donaciones completadas")
    if await find_invoice_for_donation(db, donation.id) is not None:
        raise BadRequestError("Esta donación ya tiene una factura")

    now = datetime.now(timezone.utc)
    numero = await _next_number(db, now.year)
    url_pdf = f"/facturas/{numero}.pdf"

    write_document(url_pdf, f"Factura {numero}", [
        ("Fecha de emisión", now.strftime("%Y-%m-%d %H:%M UTC")),
        ("RFC", datos.rfc),
        ("Razón social", datos.razon_social),
        ("Dirección fiscal", datos.direccion_fiscal),
        ("Concepto", f"Donación {donation.id}"),
        ("Subtotal", f"{donation.monto} {donation.moneda}"),
        ("Impuestos", f"0.00 {donation.moneda}"),
        ("Total", f"{donation.monto} {donation.moneda}"),
    ])

    invoice = Factura(
        id_donacion=donation.id,
        numero_factura=numero,
        fecha_emision=now,
        subtotal=donation.monto,
        impuestos=0,
        total=donation.monto,
        url_pdf=url_pdf,
        enviada_sat=datos.requiere_cfdi,
        estado=EstadoFactura.EMITIDA,
    )
    db.add(invoice)
    await db.flush()
    await db.refresh(invoice)
    logger.info("Invoice %s issued for donation %s", numero, donation.id)

    await send_invoice_email(db, invoice, datos.correo_facturacion)
    return invoice


async def generate_automatic_invoice(db: AsyncSession, donation: Donacion) -> Optional[Factura]:
    """
    Invoice a completed donation that asked for one.

    Skipped (returns None) without an owner, without requiere_factura, when
    the owner has no fiscal data, or when an invoice already exists.
    """
    if not donation.requiere_factura or not donation.id_usuario:
        return None

    existing = await find_invoice_for_donation(db, donation.id)
    if existing is not None:
        return existing

    datos = await get_latest_fiscal_data(db, donation.id_usuario)
    if datos is None:
        logger.info("Donation %s requested an invoice but its owner has no fiscal data", donation.id)
        return None

    return await issue_invoice(db, donation, datos)


async def request_invoice(
    db: AsyncSession,
    user_id: str,
    donation_id: str,
    rfc: Optional[str] = None
) -> Factura:
    """Invoice one of the user's own donations on demand."""
    donation = await db.get(Donacion, donation_id)
    if donation is None or donation.id_usuario != user_id:
        raise NotFoundError(f"Donación {donation_id} no encontrada")

    if rfc:
        datos = await find_fiscal_data(db, user_id, rfc.strip().upper())
    else:
        datos = await get_latest_fiscal_data(db, user_id)
    if datos is None:
        raise BadRequestError("Debe registrar sus datos fiscales antes de solicitar una factura")

    return await issue_invoice(db, donation, datos)


async def generate_invoice_for_donation(db: AsyncSession, donation_id: str) -> Factura:
    """Admin path: invoice any completed, owned donation."""
    donation = await db.get(Donacion, donation_id)
    if donation is None:
        raise NotFoundError(f"Donación {donation_id} no encontrada")
    if not donation.id_usuario:
        raise BadRequestError("No se pueden facturar donaciones sin usuario")

    datos = await get_latest_fiscal_data(db, donation.id_usuario)
    if datos is None:
        raise BadRequestError("El usuario no tiene datos fiscales registrados")
    return await issue_invoice(db, donation, datos)


async def resend_invoice(db: AsyncSession, invoice: Factura, to: Optional[str] = None) -> bool:
    if to is None:
        donation = await db.get(Donacion, invoice.id_donacion)
        datos = await get_latest_fiscal_data(db, donation.id_usuario) if donation.id_usuario else None
        if datos is None:
            raise BadRequestError("No hay correo de facturación disponible")
        to = datos.correo_facturacion
    return await send_invoice_email(db, invoice, to)
