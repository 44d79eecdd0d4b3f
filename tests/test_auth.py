"""
Tests for registration, login, token refresh and password recovery.
"""
import pytest
from httpx import AsyncClient

from app.services import auth as auth_service
from app.services.email import email_service

TEST_PASSWORD = "TestPass123"


def registration_payload(**overrides) -> dict:
    payload = {
        "nombres": "Luis",
        "apellidos": "Gómez",
        "correo": "Luis.Gomez@Example.com",
        "password": "Segura2024",
    }
    payload.update(overrides)
    return payload


# ===== REGISTRATION =====

class TestRegistration:
    """Donor sign-up."""

    @pytest.mark.asyncio
    async def test_register_returns_tokens(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/registro", json=registration_payload())
        assert response.status_code == 201
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["usuario"]["correo"] == "luis.gomez@example.com"
        assert data["usuario"]["rol"] == "donante"
        assert data["usuario"]["nivel_donante"] == "Bronce"

    @pytest.mark.asyncio
    async def test_duplicate_email_any_case(self, client: AsyncClient):
        await client.post("/api/v1/auth/registro", json=registration_payload())

        response = await client.post(
            "/api/v1/auth/registro", json=registration_payload(correo="LUIS.GOMEZ@example.com")
        )
        assert response.status_code == 400
        assert "correo" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/registro", json=registration_payload(password="corta"))
        assert response.status_code == 422


# ===== LOGIN =====

class TestLogin:
    """Credential checks and token exchange."""

    @pytest.mark.asyncio
    async def test_login(self, client: AsyncClient, donor):
        response = await client.post(
            "/api/v1/auth/login", json={"correo": "DONANTE@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["usuario"]["id"] == donor.id
        assert donor.ultimo_login is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, donor):
        response = await client.post(
            "/api/v1/auth/login", json={"correo": "donante@example.com", "password": "Incorrecta1"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_account_cannot_login(self, client: AsyncClient, db_session, donor):
        donor.activo = False
        await db_session.flush()

        response = await client.post(
            "/api/v1/auth/login", json={"correo": "donante@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, donor):
        tokens = auth_service.issue_tokens(donor)

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["usuario"]["id"] == donor.id

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_token_not_accepted_as_access(self, client: AsyncClient, donor):
        tokens = auth_service.issue_tokens(donor)

        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401


# ===== PASSWORD RESET =====

class TestPasswordReset:
    """Reset by e-mailed token."""

    @pytest.mark.asyncio
    async def test_same_message_for_unknown_email(self, client: AsyncClient, donor):
        known = await client.post("/api/v1/auth/solicitar-reset", json={"correo": "donante@example.com"})
        unknown = await client.post("/api/v1/auth/solicitar-reset", json={"correo": "nadie@example.com"})

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    @pytest.mark.asyncio
    async def test_reset_flow(self, client: AsyncClient, donor, monkeypatch):
        sent = {}

        async def capture(to, nombre, token):
            sent["token"] = token
            return True

        monkeypatch.setattr(email_service, "send_password_reset", capture)

        await client.post("/api/v1/auth/solicitar-reset", json={"correo": "donante@example.com"})
        assert "token" in sent

        response = await client.post(
            "/api/v1/auth/reset-password", json={"token": sent["token"], "password_nuevo": "NuevaClave99"}
        )
        assert response.status_code == 200

        response = await client.post(
            "/api/v1/auth/login", json={"correo": "donante@example.com", "password": "NuevaClave99"}
        )
        assert response.status_code == 200

        # The token is bound to the old password hash
        response = await client.post(
            "/api/v1/auth/reset-password", json={"token": sent["token"], "password_nuevo": "OtraClave77"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/reset-password", json={"token": "no-es-un-jwt", "password_nuevo": "NuevaClave99"}
        )
        assert response.status_code == 400


# ===== ACCESS =====

class TestAccess:
    """Bearer authentication and role gating."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["code"] == 200

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, donor, donor_headers: dict):
        response = await client.get("/api/v1/auth/me", headers=donor_headers)
        assert response.status_code == 200
        assert response.json()["correo"] == "donante@example.com"

    @pytest.mark.asyncio
    async def test_donor_cannot_list_users(self, client: AsyncClient, donor_headers: dict, admin_headers: dict):
        response = await client.get("/api/v1/usuarios", headers=donor_headers)
        assert response.status_code == 403

        response = await client.get("/api/v1/usuarios", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["totalItems"] == 2
