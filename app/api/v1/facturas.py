"""
Invoice (factura) and fiscal data endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.deps import get_current_user, get_current_admin
from app.core.exceptions import NotFoundError
from app.core.permissions import ensure_owner_or_admin
from app.models.donation import Donacion
from app.models.invoice import Factura
from app.models.user import Usuario
from app.schemas.common import PaginatedResponse
from app.schemas.invoice import (
    FiscalDataCreate, FiscalDataResponse, InvoiceRequest, InvoiceResponse
)
from app.schemas.receipt import ResendRequest, SentResponse
from app.services import invoices
from app.services.documents import read_document
from app.services.pagination import paginate, DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/facturas", tags=["facturas"])


async def check_invoice_access(db: AsyncSession, invoice: Factura, user: Usuario) -> None:
    donation = await db.get(Donacion, invoice.id_donacion)
    ensure_owner_or_admin(user, donation.id_usuario if donation else None,
                          "No tienes permiso para ver esta factura")


# ============================================================================
# FISCAL DATA
# ============================================================================

@router.get("/datos-fiscales", response_model=list[FiscalDataResponse])
async def list_fiscal_data(
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await invoices.list_fiscal_data(db, current_user.id)


@router.post("/datos-fiscales", response_model=FiscalDataResponse)
async def save_fiscal_data(
    data: FiscalDataCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    """Create or update the fiscal record for this RFC."""
    return await invoices.save_fiscal_data(db, current_user.id, **data.model_dump())


# ============================================================================
# INVOICES
# ============================================================================

@router.get("/mis-facturas", response_model=PaginatedResponse[InvoiceResponse])
async def my_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    rows, total = await paginate(db, invoices.user_invoices_query(current_user.id), page, limit)
    return PaginatedResponse.build(
        [InvoiceResponse.model_validate(f) for f in rows], total, page, limit
    )


@router.post("/solicitar", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def request_invoice(
    data: InvoiceRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    return await invoices.request_invoice(db, current_user.id, data.id_donacion, data.rfc)


@router.post("/generar/{donation_id}", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def generate_invoice(
    donation_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Usuario = Depends(get_current_admin)
):
    return await invoices.generate_invoice_for_donation(db, donation_id)


@router.get("/numero/{numero}", response_model=InvoiceResponse)
async def get_invoice_by_number(
    numero: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    invoice = await invoices.get_invoice_by_number(db, numero)
    await check_invoice_access(db, invoice, current_user)
    return invoice


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    invoice = await invoices.get_invoice(db, invoice_id)
    await check_invoice_access(db, invoice, current_user)
    return invoice


@router.get("/{invoice_id}/pdf")
async def download_invoice(
    invoice_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    invoice = await invoices.get_invoice(db, invoice_id)
    await check_invoice_access(db, invoice, current_user)
    if not invoice.url_pdf:
        raise NotFoundError("Documento no encontrado")
    return FileResponse(
        read_document(invoice.url_pdf),
        media_type="text/plain; charset=utf-8",
        filename=f"{invoice.numero_factura}.txt",
    )


@router.post("/{invoice_id}/reenviar", response_model=SentResponse)
async def resend_invoice(
    invoice_id: str,
    data: ResendRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Usuario = Depends(get_current_user)
):
    invoice = await invoices.get_invoice(db, invoice_id)
    await check_invoice_access(db, invoice, current_user)
    sent = await invoices.resend_invoice(db, invoice, data.correo)
    return SentResponse(enviado=sent)
