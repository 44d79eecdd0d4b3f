"""
Tests for the donation lifecycle and its completion side effects.
"""
import pytest
from decimal import Decimal
from httpx import AsyncClient
from sqlalchemy import select, func

from app.models.configuration import TipoConfiguracion
from app.models.donation import EstadoDonacion
from app.models.campaign import EstadoCampana
from app.models.invoice import Factura
from app.models.payment_method import TipoPago
from app.models.receipt import Comprobante
from app.services import configuration, donations, invoices, receipts


def donation_payload(**overrides) -> dict:
    payload = {
        "monto": "50.00",
        "metodo_pago": "Tarjeta",
        "acepto_terminos": True,
    }
    payload.update(overrides)
    return payload


async def count(db, model, **filters) -> int:
    query = select(func.count(model.id))
    for name, value in filters.items():
        query = query.where(getattr(model, name) == value)
    return (await db.execute(query)).scalar()


# ===== CREATION =====

class TestCreateDonation:
    """Recording donation intents."""

    @pytest.mark.asyncio
    async def test_guest_donation_is_pending(self, client: AsyncClient, campaign):
        response = await client.post(
            "/api/v1/donaciones",
            json=donation_payload(id_campana=campaign.id, correo_comprobante="invitado@example.com")
        )
        assert response.status_code == 201
        data = response.json()
        assert data["estado"] == "Pendiente"
        assert data["id_usuario"] is None
        assert data["moneda"] == "USD"
        assert data["puntos_otorgados"] == 50

    @pytest.mark.asyncio
    async def test_authenticated_donor_owns_donation(
        self, client: AsyncClient, donor, donor_headers: dict
    ):
        response = await client.post("/api/v1/donaciones", json=donation_payload(), headers=donor_headers)
        assert response.status_code == 201
        assert response.json()["id_usuario"] == donor.id

    @pytest.mark.asyncio
    async def test_terms_must_be_accepted(self, client: AsyncClient):
        response = await client.post("/api/v1/donaciones", json=donation_payload(acepto_terminos=False))
        assert response.status_code == 400
        assert "acepto_terminos" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_non_positive_amount_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/donaciones", json=donation_payload(monto="0"))
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_inactive_campaign_rejected(self, client: AsyncClient, db_session, campaign):
        campaign.estado = EstadoCampana.FINALIZADA
        await db_session.flush()

        response = await client.post("/api/v1/donaciones", json=donation_payload(id_campana=campaign.id))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_points_follow_configured_rate(self, db_session, config_cache, donor):
        await configuration.create_config(
            db_session, config_cache, "puntos_por_dolar", "2.5", TipoConfiguracion.NUMERO
        )
        donation = await donations.create_donation(
            db_session, config_cache, user=donor,
            monto=Decimal("10.99"), metodo_pago=TipoPago.PAYPAL, acepto_terminos=True,
        )
        # floor(10.99 * 2.5) = floor(27.475)
        assert donation.puntos_otorgados == 27


# ===== COMPLETION =====

class TestCompletion:
    """Side effects of reaching Completada."""

    async def pending(self, db_session, config_cache, donor, campaign=None, **fields):
        return await donations.create_donation(
            db_session, config_cache, user=donor,
            monto=Decimal("50.00"), metodo_pago=TipoPago.TARJETA, acepto_terminos=True,
            id_campana=campaign.id if campaign else None, **fields,
        )

    @pytest.mark.asyncio
    async def test_completion_fans_out(
        self, client: AsyncClient, db_session, config_cache, donor, campaign, admin_headers: dict
    ):
        donation = await self.pending(db_session, config_cache, donor, campaign)

        response = await client.post(
            f"/api/v1/donaciones/{donation.id}/estado",
            json={"estado": "Completada", "referencia_pago": "ch_123"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["estado"] == "Completada"

        receipt = await receipts.find_receipt_for_donation(db_session, donation.id)
        assert receipt is not None
        assert receipt.codigo_unico.startswith("COMP-")
        assert receipt.enviado_email is True

        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("50.00")
        assert campaign.contador_donaciones == 1

        await db_session.refresh(donor)
        assert donor.puntos_acumulados == 50

    @pytest.mark.asyncio
    async def test_replayed_completion_is_idempotent(
        self, db_session, config_cache, donor, campaign
    ):
        donation = await self.pending(db_session, config_cache, donor, campaign)

        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)
        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)

        assert await count(db_session, Comprobante, id_donacion=donation.id) == 1
        await db_session.refresh(donor)
        assert donor.puntos_acumulados == 50
        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("50.00")
        assert campaign.contador_donaciones == 1

    @pytest.mark.asyncio
    async def test_completion_after_refund_does_not_award_again(
        self, db_session, config_cache, donor, campaign
    ):
        donation = await self.pending(db_session, config_cache, donor, campaign)

        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)
        await donations.update_state(db_session, donation.id, EstadoDonacion.REEMBOLSADA)
        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("0")

        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)

        await db_session.refresh(donor)
        assert donor.puntos_acumulados == 50
        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_points_frozen_at_creation(self, db_session, config_cache, donor):
        donation = await self.pending(db_session, config_cache, donor)
        await configuration.create_config(
            db_session, config_cache, "puntos_por_dolar", "3", TipoConfiguracion.NUMERO
        )

        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)

        await db_session.refresh(donor)
        assert donation.puntos_otorgados == 50
        assert donor.puntos_acumulados == 50

    @pytest.mark.asyncio
    async def test_campaign_total_matches_completed_donations(
        self, db_session, config_cache, donor, campaign
    ):
        first = await self.pending(db_session, config_cache, donor, campaign)
        second = await self.pending(db_session, config_cache, donor, campaign)
        await self.pending(db_session, config_cache, donor, campaign)

        await donations.update_state(db_session, first.id, EstadoDonacion.COMPLETADA)
        await donations.update_state(db_session, second.id, EstadoDonacion.COMPLETADA)
        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("100.00")
        assert campaign.contador_donaciones == 2

        await donations.update_state(db_session, second.id, EstadoDonacion.REEMBOLSADA)
        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("50.00")
        assert campaign.contador_donaciones == 1

    @pytest.mark.asyncio
    async def test_invoice_issued_with_fiscal_data(self, db_session, config_cache, donor):
        await invoices.save_fiscal_data(
            db_session, donor.id, rfc="xaxx010101000", razon_social="Ana Pérez",
            direccion_fiscal="Av. Siempre Viva 742", correo_facturacion="facturas@example.com",
        )
        donation = await self.pending(db_session, config_cache, donor, requiere_factura=True)

        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)

        invoice = await invoices.find_invoice_for_donation(db_session, donation.id)
        assert invoice is not None
        assert invoice.numero_factura.startswith("FAC-")
        assert invoice.total == Decimal("50.00")
        assert invoice.enviada_email is True

    @pytest.mark.asyncio
    async def test_invoice_skipped_without_fiscal_data(self, db_session, config_cache, donor):
        donation = await self.pending(db_session, config_cache, donor, requiere_factura=True)

        await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)

        assert await count(db_session, Factura, id_donacion=donation.id) == 0
        assert await count(db_session, Comprobante, id_donacion=donation.id) == 1

    @pytest.mark.asyncio
    async def test_failed_step_keeps_state_and_other_effects(
        self, db_session, config_cache, donor, campaign, monkeypatch
    ):
        donation = await self.pending(db_session, config_cache, donor, campaign)

        async def broken_receipt(db, donation_id):
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(receipts, "generate_receipt", broken_receipt)

        updated = await donations.update_state(db_session, donation.id, EstadoDonacion.COMPLETADA)

        assert updated.estado == EstadoDonacion.COMPLETADA
        assert await count(db_session, Comprobante, id_donacion=donation.id) == 0
        await db_session.refresh(donor)
        assert donor.puntos_acumulados == 50
        await db_session.refresh(campaign)
        assert campaign.monto_recaudado == Decimal("50.00")


# ===== ACCESS =====

class TestDonationAccess:
    """Ownership and role checks."""

    @pytest.mark.asyncio
    async def test_state_change_requires_admin(
        self, client: AsyncClient, db_session, config_cache, donor, donor_headers: dict
    ):
        donation = await donations.create_donation(
            db_session, config_cache, user=donor,
            monto=Decimal("5"), metodo_pago=TipoPago.PLUX, acepto_terminos=True,
        )
        response = await client.post(
            f"/api/v1/donaciones/{donation.id}/estado",
            json={"estado": "Completada"},
            headers=donor_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_donor_cannot_read_donation(
        self, client: AsyncClient, db_session, config_cache, donor, user_factory, headers_factory
    ):
        other = await user_factory("otro@example.com")
        donation = await donations.create_donation(
            db_session, config_cache, user=donor,
            monto=Decimal("5"), metodo_pago=TipoPago.PLUX, acepto_terminos=True,
        )

        response = await client.get(f"/api/v1/donaciones/{donation.id}", headers=headers_factory(other))
        assert response.status_code == 403

        response = await client.get(f"/api/v1/donaciones/{donation.id}", headers=headers_factory(donor))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_my_donations_lists_only_own(
        self, client: AsyncClient, db_session, config_cache, donor, donor_headers: dict, user_factory
    ):
        other = await user_factory("otro@example.com")
        for user in (donor, donor, other):
            await donations.create_donation(
                db_session, config_cache, user=user,
                monto=Decimal("5"), metodo_pago=TipoPago.PLUX, acepto_terminos=True,
            )

        response = await client.get("/api/v1/donaciones/mis-donaciones", headers=donor_headers)
        assert response.status_code == 200
        assert response.json()["totalItems"] == 2
