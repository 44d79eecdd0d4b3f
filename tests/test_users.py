"""
Tests for donor accounts: profile, notifications, payment methods and receipts.
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from httpx import AsyncClient

from app.core.exceptions import BadRequestError, NotFoundError
from app.core.security import verify_password
from app.models.donation import EstadoDonacion
from app.models.notification import TipoNotificacion
from app.models.payment_method import TipoPago
from app.services import donations, payment_methods, users
from app.services.receipts import find_receipt_for_donation

TEST_PASSWORD = "TestPass123"


async def completed_donation(db, cache, user, monto="20.00", campaign=None):
    donation = await donations.create_donation(
        db, cache, user=user,
        monto=Decimal(monto), metodo_pago=TipoPago.TARJETA, acepto_terminos=True,
        id_campana=campaign.id if campaign else None,
    )
    return await donations.update_state(db, donation.id, EstadoDonacion.COMPLETADA)


# ===== PROFILE =====

class TestProfile:
    """Self-service account changes."""

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, donor_headers: dict):
        response = await client.put(
            "/api/v1/usuarios/perfil", json={"ciudad": "Quito", "telefono": "0991234567"}, headers=donor_headers
        )
        assert response.status_code == 200
        assert response.json()["ciudad"] == "Quito"

    @pytest.mark.asyncio
    async def test_email_taken_by_other_account(self, db_session, donor, user_factory):
        await user_factory("otro@example.com")

        with pytest.raises(BadRequestError):
            await users.update_profile(db_session, donor, correo="OTRO@example.com")

    @pytest.mark.asyncio
    async def test_change_password(self, db_session, donor):
        with pytest.raises(BadRequestError):
            await users.change_password(db_session, donor, "Incorrecta1", "NuevaClave99")
        with pytest.raises(BadRequestError):
            await users.change_password(db_session, donor, TEST_PASSWORD, TEST_PASSWORD)

        await users.change_password(db_session, donor, TEST_PASSWORD, "NuevaClave99")
        assert verify_password("NuevaClave99", donor.password_hash)

    @pytest.mark.asyncio
    async def test_deactivated_account_loses_access(self, client: AsyncClient, donor_headers: dict):
        response = await client.delete("/api/v1/usuarios/perfil", headers=donor_headers)
        assert response.status_code == 200

        response = await client.get("/api/v1/usuarios/perfil", headers=donor_headers)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_personal_statistics(self, client: AsyncClient, db_session, config_cache, donor, donor_headers, campaign):
        await completed_donation(db_session, config_cache, donor, "20.00", campaign)
        await completed_donation(db_session, config_cache, donor, "30.00")

        response = await client.get("/api/v1/usuarios/estadisticas", headers=donor_headers)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total_donado"]) == Decimal("50.00")
        assert data["total_donaciones"] == 2
        assert data["campanas_apoyadas"] == 1
        assert data["puntos_acumulados"] == 50


# ===== NOTIFICATIONS =====

class TestNotifications:
    """In-app notifications."""

    @pytest.mark.asyncio
    async def test_mark_read_only_own(self, db_session, donor, user_factory):
        other = await user_factory("otro@example.com")
        notification = await users.create_notification(
            db_session, donor.id, TipoNotificacion.SISTEMA, "Bienvenida", "Gracias por registrarte"
        )

        with pytest.raises(NotFoundError):
            await users.mark_read(db_session, other, notification.id)

        read = await users.mark_read(db_session, donor, notification.id)
        assert read.leida is True
        assert read.fecha_lectura is not None

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, db_session, donor, donor_headers: dict):
        for titulo in ("Uno", "Dos", "Tres"):
            await users.create_notification(db_session, donor.id, TipoNotificacion.CAMPANA, titulo, "Novedades")

        response = await client.patch("/api/v1/usuarios/notificaciones/leer-todas", headers=donor_headers)
        assert response.status_code == 200

        response = await client.get(
            "/api/v1/usuarios/notificaciones", params={"leida": False}, headers=donor_headers
        )
        assert response.json()["totalItems"] == 0

    @pytest.mark.asyncio
    async def test_monthly_summary(self, db_session, config_cache, donor, campaign):
        donation = await completed_donation(db_session, config_cache, donor, "20.00", campaign)
        donation.fecha_donacion = datetime(2024, 2, 14, 10, 0, tzinfo=timezone.utc)
        await db_session.flush()

        assert await users.send_monthly_summary(db_session, donor.id, datetime(2024, 3, 2, tzinfo=timezone.utc)) is True
        assert await users.send_monthly_summary(db_session, donor.id, datetime(2024, 4, 2, tzinfo=timezone.utc)) is False


# ===== PAYMENT METHODS =====

class TestPaymentMethods:
    """Stored payment references."""

    @pytest.mark.asyncio
    async def test_create_hides_token(self, client: AsyncClient, donor_headers: dict):
        response = await client.post(
            "/api/v1/metodos-pago",
            json={"tipo": "Tarjeta", "token_referencia": "tok_mc_5454", "ultimo_digitos": "5454"},
            headers=donor_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert "token_referencia" not in data
        assert data["activo"] is True

    @pytest.mark.asyncio
    async def test_other_user_gets_not_found(self, db_session, payment_method, user_factory):
        other = await user_factory("otro@example.com")

        with pytest.raises(NotFoundError):
            await payment_methods.deactivate(db_session, other, payment_method.id)

    @pytest.mark.asyncio
    async def test_soft_delete(self, client: AsyncClient, db_session, donor, donor_headers: dict, payment_method):
        response = await client.delete(f"/api/v1/metodos-pago/{payment_method.id}", headers=donor_headers)
        assert response.status_code == 200
        assert response.json()["activo"] is False

        response = await client.get("/api/v1/metodos-pago", headers=donor_headers)
        assert response.json() == []

        kept = await payment_methods.list_for_user(db_session, donor, include_inactive=True)
        assert [m.id for m in kept] == [payment_method.id]


# ===== RECEIPTS =====

class TestReceipts:
    """Receipt verification and download."""

    @pytest.mark.asyncio
    async def test_public_verification(self, client: AsyncClient, db_session, config_cache, donor, campaign):
        donation = await completed_donation(db_session, config_cache, donor, "20.00", campaign)
        response = await client.get(f"/api/v1/comprobantes/donacion/{donation.id}", headers={})
        assert response.status_code == 401

        receipt = await find_receipt_for_donation(db_session, donation.id)

        response = await client.get(f"/api/v1/comprobantes/verificar/{receipt.codigo_unico}")
        assert response.status_code == 200
        data = response.json()
        assert data["valido"] is True
        assert data["campana"] == "Agua limpia"

        response = await client.get("/api/v1/comprobantes/verificar/COMP-1999-00001")
        assert response.json() == {
            "valido": False, "codigo": "COMP-1999-00001",
            "fecha_emision": None, "monto": None, "moneda": None, "campana": None,
        }

    @pytest.mark.asyncio
    async def test_download_owner_only(
        self, client: AsyncClient, db_session, config_cache, donor, donor_headers, user_factory, headers_factory
    ):

        donation = await completed_donation(db_session, config_cache, donor)
        receipt = await find_receipt_for_donation(db_session, donation.id)
        other = await user_factory("otro@example.com")

        response = await client.get(f"/api/v1/comprobantes/{receipt.id}/pdf", headers=headers_factory(other))
        assert response.status_code == 403

        response = await client.get(f"/api/v1/comprobantes/{receipt.id}/pdf", headers=donor_headers)
        assert response.status_code == 200
        assert receipt.codigo_unico in response.text
