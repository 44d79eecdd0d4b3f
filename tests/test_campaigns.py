"""
Tests for campaigns: catalog, featured list and followers.
"""
import pytest
from datetime import date
from decimal import Decimal
from httpx import AsyncClient

from app.core.exceptions import NotFoundError
from app.models.campaign import EstadoCampana
from app.services import campaigns


def campaign_payload(**overrides) -> dict:
    payload = {
        "nombre": "Becas escolares",
        "descripcion": "Útiles y uniformes para el año lectivo",
        "meta_monto": "2500.00",
        "fecha_inicio": "2024-02-01",
    }
    payload.update(overrides)
    return payload


async def make_campaign(db, nombre: str, recaudado: str = "0", emergencia: bool = False, **fields):
    campaign = await campaigns.create_campaign(
        db,
        nombre=nombre,
        descripcion=f"Campaña {nombre}",
        meta_monto=Decimal("1000.00"),
        es_emergencia=emergencia,
        fecha_inicio=date(2024, 1, 1),
        **fields,
    )
    campaign.monto_recaudado = Decimal(recaudado)
    await db.flush()
    return campaign


# ===== CATALOG =====

class TestCampaignCatalog:
    """Creation, state and featured ordering."""

    @pytest.mark.asyncio
    async def test_admin_creates_campaign(self, client: AsyncClient, admin_headers: dict):
        response = await client.post("/api/v1/campanas", json=campaign_payload(), headers=admin_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["estado"] == "Activa"
        assert data["contador_donaciones"] == 0

    @pytest.mark.asyncio
    async def test_donor_cannot_create(self, client: AsyncClient, donor_headers: dict):
        response = await client.post("/api/v1/campanas", json=campaign_payload(), headers=donor_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/campanas", json=campaign_payload(fecha_fin="2024-01-15"), headers=admin_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_campaign(self, client: AsyncClient):
        response = await client.get("/api/v1/campanas/noexiste")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_featured_order(self, db_session):
        quiet = await make_campaign(db_session, "Huertos", "300")
        popular = await make_campaign(db_session, "Comedores", "900")
        urgent = await make_campaign(db_session, "Inundaciones", "50", emergencia=True)
        await make_campaign(db_session, "Vencida", "5000", fecha_fin=date(2024, 3, 1))
        closed = await make_campaign(db_session, "Cerrada", "4000")
        await campaigns.change_state(db_session, closed.id, EstadoCampana.FINALIZADA)

        featured = await campaigns.get_featured(db_session, today=date(2024, 3, 15))

        assert [c.id for c in featured] == [urgent.id, popular.id, quiet.id]

    @pytest.mark.asyncio
    async def test_progress_capped(self, db_session):
        campaign = await make_campaign(db_session, "Superada", "1500")
        assert campaign.porcentaje_completado == 100.0


# ===== FOLLOWERS =====

class TestFollowers:
    """Following campaigns and mailing updates."""

    @pytest.mark.asyncio
    async def test_follow_and_unfollow(self, db_session, donor, campaign):
        await campaigns.set_following(db_session, campaign.id, donor, True)
        await campaigns.set_following(db_session, campaign.id, donor, True)
        assert await campaigns.follower_emails(db_session, campaign.id) == [donor.correo]

        await campaigns.set_following(db_session, campaign.id, donor, False)
        assert await campaigns.is_following(db_session, campaign.id, donor.id) is False

    @pytest.mark.asyncio
    async def test_follow_unknown_campaign(self, db_session, donor):
        with pytest.raises(NotFoundError):
            await campaigns.set_following(db_session, "noexiste", donor, True)

    @pytest.mark.asyncio
    async def test_update_reaches_active_followers(self, db_session, donor, user_factory, campaign):
        other = await user_factory("otro@example.com")
        gone = await user_factory("baja@example.com")
        for user in (donor, other, gone):
            await campaigns.set_following(db_session, campaign.id, user, True)
        gone.activo = False
        await db_session.flush()

        notified = await campaigns.publish_update(db_session, campaign.id, "Ya perforamos el primer pozo")

        assert notified == 2

    @pytest.mark.asyncio
    async def test_follow_via_api(self, client: AsyncClient, donor_headers: dict, admin_headers: dict, campaign):
        response = await client.post(
            f"/api/v1/campanas/{campaign.id}/seguir", json={"seguir": True}, headers=donor_headers
        )
        assert response.status_code == 200

        response = await client.post(
            f"/api/v1/campanas/{campaign.id}/actualizacion",
            json={"actualizacion": "Meta al 50%"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert "1" in response.json()["message"]


# ===== UPDATES =====

class TestCampaignUpdate:
    """Partial edits by administrators."""

    @pytest.mark.asyncio
    async def test_null_required_field_rejected(self, client: AsyncClient, admin_headers: dict, campaign):
        for field in ("nombre", "descripcion", "meta_monto", "fecha_inicio"):
            response = await client.put(
                f"/api/v1/campanas/{campaign.id}", json={field: None}, headers=admin_headers
            )
            assert response.status_code == 422, field

    @pytest.mark.asyncio
    async def test_clearing_optional_fields(self, client: AsyncClient, admin_headers: dict, campaign):
        response = await client.put(
            f"/api/v1/campanas/{campaign.id}",
            json={"impacto_descripcion": None, "fecha_fin": None, "nombre": "Agua para todos"},
            headers=admin_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["impacto_descripcion"] is None
        assert data["nombre"] == "Agua para todos"

    @pytest.mark.asyncio
    async def test_update_end_before_start_rejected(self, client: AsyncClient, admin_headers: dict, campaign):
        response = await client.put(
            f"/api/v1/campanas/{campaign.id}",
            json={"fecha_inicio": "2024-03-01", "fecha_fin": "2024-02-01"},
            headers=admin_headers
        )
        assert response.status_code == 422

        # Only the end date sent; compared with the stored start (2024-01-01)
        response = await client.put(
            f"/api/v1/campanas/{campaign.id}", json={"fecha_fin": "2023-12-31"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert campaign.fecha_fin is None
