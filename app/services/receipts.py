"""
Receipt (comprobante) issuance for completed donations.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.campaign import Campana
from app.models.donation import Donacion, EstadoDonacion
from app.models.receipt import Comprobante
from app.models.user import Usuario
from app.services.documents import write_document, resolve_document
from app.services.email import email_service

logger = logging.getLogger(__name__)


async def find_receipt_for_donation(db: AsyncSession, donation_id: str) -> Optional[Comprobante]:
    result = await db.execute(select(Comprobante).where(Comprobante.id_donacion == donation_id))
    return result.scalar_one_or_none()


async def get_receipt(db: AsyncSession, receipt_id: str) -> Comprobante:
    receipt = await db.get(Comprobante, receipt_id)
    if receipt is None:
        raise NotFoundError(f"Comprobante {receipt_id} no encontrado")
    return receipt


async def get_receipt_by_code(db: AsyncSession, codigo: str) -> Comprobante:
    result = await db.execute(select(Comprobante).where(Comprobante.codigo_unico == codigo))
    receipt = result.scalar_one_or_none()
    if receipt is None:
        raise NotFoundError(f"Comprobante con código {codigo} no encontrado")
    return receipt


async def _next_code(db: AsyncSession, year: int) -> str:
    """COMP-{year}-{sequence:05d}, sequence counted per year."""
    prefix = f"COMP-{year}-"
    issued = await db.execute(
        select(func.count(Comprobante.id)).where(Comprobante.codigo_unico.like(f"{prefix}%"))
    )
    sequence = (issued.scalar() or 0) + 1
    while True:
        codigo = f"{prefix}{sequence:05d}"
        taken = await db.execute(select(Comprobante.id).where(Comprobante.codigo_unico == codigo))
        if taken.scalar_one_or_none() is None:
            return codigo
        sequence += 1


async def _recipient(db: AsyncSession, donation: Donacion) -> Optional[str]:
    if donation.correo_comprobante:
        return donation.correo_comprobante
    if donation.id_usuario:
        user = await db.get(Usuario, donation.id_usuario)
        if user is not None:
            return user.correo
    return None


async def _campaign_name(db: AsyncSession, donation: Donacion) -> Optional[str]:
    if not donation.id_campana:
        return None
    campaign = await db.get(Campana, donation.id_campana)
    return campaign.nombre if campaign else None


async def send_receipt_email(
    db: AsyncSession,
    receipt: Comprobante,
    donation: Donacion,
    to: Optional[str] = None
) -> bool:
    recipient = to or await _recipient(db, donation)
    if not recipient:
        logger.info("Receipt %s has no recipient; email skipped", receipt.codigo_unico)
        return False

    pdf_path = str(resolve_document(receipt.url_pdf)) if receipt.url_pdf else None
    sent = await email_service.send_receipt(recipient, receipt.codigo_unico, donation.monto, pdf_path)
    if sent:
        receipt.enviado_email = True
        receipt.fecha_envio = datetime.now(timezone.utc)
        receipt.correo_envio = recipient
        await db.flush()
    return sent


async def generate_receipt(db: AsyncSession, donation_id: str) -> Comprobante:
    """
    Issue the receipt for a completed donation.

    Idempotent: a donation that already has a receipt gets the existing one
    back and nothing is regenerated or re-sent.
    """
    donation = await db.get(Donacion, donation_id)
    if donation is None:
        raise NotFoundError(f"Donación {donation_id} no encontrada")

    existing = await find_receipt_for_donation(db, donation_id)
    if existing is not None:
        return existing

    if donation.estado != EstadoDonacion.COMPLETADA:
        raise BadRequestError("Solo se emiten comprobantes de donaciones completadas")

    now = datetime.now(timezone.utc)
    codigo = await _next_code(db, now.year)
    url_pdf = f"/comprobantes/{codigo}.pdf"

    campana = await _campaign_name(db, donation)
    write_document(url_pdf, f"Comprobante de donación {codigo}", [
        ("Fecha de emisión", now.strftime("%Y-%m-%d %H:%M UTC")),
        ("Donación", donation.id),
        ("Monto", f"{donation.monto} {donation.moneda}"),
        ("Método de pago", donation.metodo_pago.value),
        ("Campaña", campana or "Donación general"),
        ("Donante", "Anónimo" if donation.es_anonima else (donation.id_usuario or "Invitado")),
    ])

    receipt = Comprobante(
        id_donacion=donation.id,
        codigo_unico=codigo,
        fecha_emision=now,
        url_pdf=url_pdf,
    )
    db.add(receipt)
    await db.flush()
    await db.refresh(receipt)
    logger.info("Receipt %s issued for donation %s", codigo, donation.id)

    await send_receipt_email(db, receipt, donation)
    return receipt


async def resend_receipt(db: AsyncSession, receipt: Comprobante, to: Optional[str] = None) -> bool:
    donation = await db.get(Donacion, receipt.id_donacion)
    return await send_receipt_email(db, receipt, donation, to)


async def verify_receipt(db: AsyncSession, codigo: str) -> dict:
    """Public authenticity check; reveals no donor identity."""
    result = await db.execute(select(Comprobante).where(Comprobante.codigo_unico == codigo))
    receipt = result.scalar_one_or_none()
    if receipt is None:
        return {"valido": False, "codigo": codigo}

    donation = await db.get(Donacion, receipt.id_donacion)
    return {
        "valido": True,
        "codigo": receipt.codigo_unico,
        "fecha_emision": receipt.fecha_emision,
        "monto": donation.monto,
        "moneda": donation.moneda,
        "campana": await _campaign_name(db, donation),
    }
