"""
Tests for the configuration store and its TTL cache.
"""
import pytest
from decimal import Decimal
from httpx import AsyncClient

from app.core.exceptions import BadRequestError
from app.models.configuration import Configuracion, TipoConfiguracion
from app.models.payment_method import TipoPago
from app.services import configuration, donations
from app.services.configuration import ConfigCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ===== CACHE =====

class TestConfigCache:
    """Per-key expiry."""

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = ConfigCache(60, clock=clock)
        cache.set("meta_mensual", 5000.0)

        clock.now += 59
        assert cache.get("meta_mensual") == 5000.0
        clock.now += 1
        assert "meta_mensual" not in cache

    @pytest.mark.asyncio
    async def test_stale_read_until_ttl(self, db_session):
        clock = FakeClock()
        cache = ConfigCache(60, clock=clock)
        config = await configuration.create_config(
            db_session, cache, "meta_mensual", "5000", TipoConfiguracion.NUMERO
        )
        assert await configuration.get_value(db_session, cache, "meta_mensual") == 5000.0

        # Direct write that bypasses the service, as another process would
        config.valor = "8000"
        await db_session.flush()

        assert await configuration.get_value(db_session, cache, "meta_mensual") == 5000.0
        clock.now += 61
        assert await configuration.get_value(db_session, cache, "meta_mensual") == 8000.0

    @pytest.mark.asyncio
    async def test_missing_key_not_cached(self, db_session):
        cache = ConfigCache(60, clock=FakeClock())

        assert await configuration.get_value(db_session, cache, "titulo_sitio", "Donaciones") == "Donaciones"
        assert "titulo_sitio" not in cache


# ===== VALUES =====

class TestTypedValues:
    """Parsing and validation by declared type."""

    def test_parse_by_type(self):
        assert configuration.parse_value("12.5", TipoConfiguracion.NUMERO) == 12.5
        assert configuration.parse_value("1", TipoConfiguracion.BOOLEANO) is True
        assert configuration.parse_value("False", TipoConfiguracion.BOOLEANO) is False
        assert configuration.parse_value("[10, 25, 50]", TipoConfiguracion.JSON) == [10, 25, 50]
        assert configuration.parse_value("hola", TipoConfiguracion.TEXTO) == "hola"

    @pytest.mark.parametrize("valor,tipo", [
        ("diez", TipoConfiguracion.NUMERO),
        ("quizas", TipoConfiguracion.BOOLEANO),
        ("{roto", TipoConfiguracion.JSON),
        ("nan", TipoConfiguracion.NUMERO),
        ("inf", TipoConfiguracion.NUMERO),
    ])
    def test_invalid_values_rejected(self, valor, tipo):
        with pytest.raises(BadRequestError):
            configuration.validate_value(valor, tipo)

    def test_negative_rate_rejected(self):
        with pytest.raises(BadRequestError):
            configuration.validate_value("-2", TipoConfiguracion.NUMERO, "puntos_por_dolar")
        configuration.validate_value("-2", TipoConfiguracion.NUMERO, "temperatura_minima")

    @pytest.mark.parametrize("valor", ["-2", "nan", "inf", "muchos"])
    @pytest.mark.asyncio
    async def test_stored_invalid_rate_falls_back_to_default(self, db_session, config_cache, donor, valor):
        # Written straight to the table, as a manual fix in the database would
        db_session.add(Configuracion(clave="puntos_por_dolar", valor=valor, tipo=TipoConfiguracion.NUMERO))
        await db_session.flush()

        donation = await donations.create_donation(
            db_session, config_cache, user=donor,
            monto=Decimal("10.00"), metodo_pago=TipoPago.TARJETA, acepto_terminos=True,
        )

        assert donation.puntos_otorgados == 10

    @pytest.mark.asyncio
    async def test_rolled_back_update_not_served_from_cache(self, db_session, config_cache):
        await configuration.create_config(
            db_session, config_cache, "mensaje_donacion", "Gracias", TipoConfiguracion.TEXTO
        )
        assert await configuration.get_value(db_session, config_cache, "mensaje_donacion") == "Gracias"

        savepoint = await db_session.begin_nested()
        await configuration.update_config(db_session, config_cache, "mensaje_donacion", valor="Muchas gracias")
        await savepoint.rollback()

        assert await configuration.get_value(db_session, config_cache, "mensaje_donacion") == "Gracias"

    @pytest.mark.asyncio
    async def test_update_refreshes_cache(self, db_session, config_cache):
        await configuration.create_config(
            db_session, config_cache, "mensaje_donacion", "Gracias", TipoConfiguracion.TEXTO
        )
        await configuration.update_config(db_session, config_cache, "mensaje_donacion", valor="Muchas gracias")

        assert await configuration.get_value(db_session, config_cache, "mensaje_donacion") == "Muchas gracias"

    @pytest.mark.asyncio
    async def test_not_editable_rejects_update_and_delete(self, db_session, config_cache):
        await configuration.create_config(
            db_session, config_cache, "moneda_principal", "USD", TipoConfiguracion.TEXTO, editable=False
        )

        with pytest.raises(BadRequestError):
            await configuration.update_config(db_session, config_cache, "moneda_principal", valor="EUR")
        with pytest.raises(BadRequestError):
            await configuration.delete_config(db_session, config_cache, "moneda_principal")


# ===== API =====

class TestConfigurationAPI:
    """Admin CRUD and public reads."""

    @pytest.mark.asyncio
    async def test_public_value_whitelist(self, client: AsyncClient, db_session, config_cache):
        await configuration.create_config(
            db_session, config_cache, "titulo_sitio", "Dona hoy", TipoConfiguracion.TEXTO
        )
        await configuration.create_config(
            db_session, config_cache, "clave_pasarela", "sk_live", TipoConfiguracion.TEXTO
        )

        response = await client.get("/api/v1/configuraciones/publicas/valor", params={"clave": "titulo_sitio"})
        assert response.status_code == 200
        assert response.json() == {"clave": "titulo_sitio", "valor": "Dona hoy"}

        response = await client.get("/api/v1/configuraciones/publicas/valor", params={"clave": "clave_pasarela"})
        assert response.status_code == 403

        response = await client.get("/api/v1/configuraciones/publicas/valor", params={"clave": "meta_mensual"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_public_values_omit_unknown(self, client: AsyncClient, db_session, config_cache):
        await configuration.create_config(
            db_session, config_cache, "montos_predeterminados", "[10, 25, 50]", TipoConfiguracion.JSON
        )
        await configuration.create_config(
            db_session, config_cache, "clave_pasarela", "sk_live", TipoConfiguracion.TEXTO
        )

        response = await client.get(
            "/api/v1/configuraciones/publicas/valores",
            params={"claves": "montos_predeterminados,clave_pasarela,meta_mensual"}
        )
        assert response.status_code == 200
        assert response.json() == {"montos_predeterminados": [10, 25, 50]}

    @pytest.mark.asyncio
    async def test_admin_crud(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/configuraciones",
            json={"clave": "limite_intentos_pago", "valor": "3", "tipo": "numero"},
            headers=admin_headers
        )
        assert response.status_code == 201

        response = await client.post(
            "/api/v1/configuraciones",
            json={"clave": "limite_intentos_pago", "valor": "4", "tipo": "numero"},
            headers=admin_headers
        )
        assert response.status_code == 400

        response = await client.put(
            "/api/v1/configuraciones/limite_intentos_pago", json={"valor": "cinco"}, headers=admin_headers
        )
        assert response.status_code == 400

        response = await client.put(
            "/api/v1/configuraciones/limite_intentos_pago", json={"valor": "5"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["valor"] == "5"

        response = await client.get("/api/v1/configuraciones/publicas/valor", params={"clave": "limite_intentos_pago"})
        assert response.json()["valor"] == 5.0

        response = await client.delete("/api/v1/configuraciones/limite_intentos_pago", headers=admin_headers)
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_admin_listing_forbidden_for_donors(self, client: AsyncClient, donor_headers: dict):
        response = await client.get("/api/v1/configuraciones", headers=donor_headers)
        assert response.status_code == 403
