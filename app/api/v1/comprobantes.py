"""
Receipt (comprobante) endpoints.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin
from app.core.exceptions import NotFoundError
from app.core.permissions import ensure_owner_or_admin
from app.models.donation import Donacion
from app.models.receipt import Comprobante
from app.models.user import Usuario
from app.schemas.receipt import ReceiptResponse, ReceiptVerification, ResendRequest, SentResponse
from app.services import receipts
from app.services.documents import read_document

router = APIRouter(prefix="/comprobantes", tags=["comprobantes"])


async def check_receipt_access(db: AsyncSession, receipt: Comprobante, user: Usuario) -> Donacion:
    donation = await db.get(Donacion, receipt.id_donacion)
    ensure_owner_or_admin(user, donation.id_usuario if donation else None,
                          "No tienes permiso para ver este comprobante")
    return donation


@router.get("/verificar/{codigo}", response_model=ReceiptVerification)
async def verify_receipt(codigo: str, db: AsyncSession = Depends(get_db)):
    """Public authenticity check."""
    return await receipts.verify_receipt(db, codigo)


@router.get("/codigo/{codigo}", response_model=ReceiptResponse)
async def get_receipt_by_code(
    codigo: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    receipt = await receipts.get_receipt_by_code(db, codigo)
    await check_receipt_access(db, receipt, current_user)
    return receipt


@router.get("/donacion/{donation_id}", response_model=ReceiptResponse)
async def get_receipt_for_donation(
    donation_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    receipt = await receipts.find_receipt_for_donation(db, donation_id)
    if receipt is None:
        raise NotFoundError("La donación no tiene comprobante")
    await check_receipt_access(db, receipt, current_user)
    return receipt


@router.post("/generar/{donation_id}", response_model=ReceiptResponse)
async def generate_receipt(
    donation_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    """Manually issue (or fetch) the receipt of a completed donation."""
    return await receipts.generate_receipt(db, donation_id)


@router.get("/{receipt_id}", response_model=ReceiptResponse)
async def get_receipt(
    receipt_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    receipt = await receipts.get_receipt(db, receipt_id)
    await check_receipt_access(db, receipt, current_user)
    return receipt


@router.get("/{receipt_id}/pdf")
async def download_receipt(
    receipt_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    receipt = await receipts.get_receipt(db, receipt_id)
    await check_receipt_access(db, receipt, current_user)
    if not receipt.url_pdf:
        raise NotFoundError("Documento no encontrado")
    return FileResponse(
        read_document(receipt.url_pdf),
        media_type="text/plain; charset=utf-8",
        filename=f"{receipt.codigo_unico}.txt",
    )


@router.post("/{receipt_id}/reenviar", response_model=SentResponse)
async def resend_receipt(
    receipt_id: str,
    data: ResendRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    receipt = await receipts.get_receipt(db, receipt_id)
    await check_receipt_access(db, receipt, current_user)
    sent = await receipts.resend_receipt(db, receipt, data.correo)
    return SentResponse(enviado=sent)
