"""
Tests for the points engine, donor tiers and reward assignment.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select, func

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.reward import (
    Recompensa, TipoRecompensa, UsuarioRecompensa, EstadoUsuarioRecompensa
)
from app.models.user import Usuario, RolUsuario, NivelDonante
from app.services import rewards


async def make_reward(db, puntos: int, cantidad=None, activa=True, nombre="Insignia solidaria") -> Recompensa:
    reward = Recompensa(
        nombre=nombre,
        descripcion="Reconocimiento a donantes",
        puntos_requeridos=puntos,
        tipo=TipoRecompensa.INSIGNIA,
        activa=activa,
        cantidad_disponible=cantidad,
    )
    db.add(reward)
    await db.flush()
    return reward


async def assignment_count(db, reward_id: str) -> int:
    result = await db.execute(
        select(func.count(UsuarioRecompensa.id)).where(UsuarioRecompensa.id_recompensa == reward_id)
    )
    return result.scalar()


# ===== TIERS =====

class TestTiers:
    """Donor tier thresholds."""

    @pytest.mark.parametrize("points,tier", [
        (0, NivelDonante.BRONCE),
        (199, NivelDonante.BRONCE),
        (200, NivelDonante.PLATA),
        (499, NivelDonante.PLATA),
        (500, NivelDonante.ORO),
        (999, NivelDonante.ORO),
        (1000, NivelDonante.PLATINO),
    ])
    def test_calculate_tier_boundaries(self, points, tier):
        assert rewards.calculate_tier(points) == tier

    @pytest.mark.asyncio
    async def test_add_points_promotes_tier(self, db_session, donor):
        """180 + 25 crosses the Plata threshold."""
        donor.puntos_acumulados = 180
        await rewards.add_points(db_session, donor, 25)
        assert donor.puntos_acumulados == 205
        assert donor.nivel_donante == NivelDonante.PLATA

    def test_redemption_code_format(self):
        codigo = rewards.generate_redemption_code(TipoRecompensa.CERTIFICADO)
        prefix, year, digits = codigo.split("-")
        assert prefix == "CERT"
        assert len(year) == 4
        assert len(digits) == 5 and digits.isdigit()


# ===== ASSIGNMENT =====

class TestAssignment:
    """Granting rewards to users."""

    @pytest.mark.asyncio
    async def test_assign_reward(self, db_session, donor):
        donor.puntos_acumulados = 300
        reward = await make_reward(db_session, 250)

        assignment = await rewards.assign_reward(db_session, donor.id, reward.id)

        assert assignment.estado == EstadoUsuarioRecompensa.PENDIENTE
        assert assignment.puntos_usados == 250
        assert assignment.codigo_unico.startswith("INSI-")
        # Points are a lifetime counter; nothing is debited
        assert donor.puntos_acumulados == 300

    @pytest.mark.asyncio
    async def test_insufficient_points_creates_nothing(self, db_session, donor):
        donor.puntos_acumulados = 100
        reward = await make_reward(db_session, 250)

        with pytest.raises(BadRequestError):
            await rewards.assign_reward(db_session, donor.id, reward.id)
        assert await assignment_count(db_session, reward.id) == 0

    @pytest.mark.asyncio
    async def test_double_assignment_rejected(self, db_session, donor):
        donor.puntos_acumulados = 500
        reward = await make_reward(db_session, 100)

        await rewards.assign_reward(db_session, donor.id, reward.id)
        with pytest.raises(BadRequestError):
            await rewards.assign_reward(db_session, donor.id, reward.id)
        assert await assignment_count(db_session, reward.id) == 1

    @pytest.mark.asyncio
    async def test_inactive_reward_not_found(self, db_session, donor):
        donor.puntos_acumulados = 500
        reward = await make_reward(db_session, 100, activa=False)

        with pytest.raises(NotFoundError):
            await rewards.assign_reward(db_session, donor.id, reward.id)

    @pytest.mark.asyncio
    async def test_last_unit_goes_to_one_user(self, db_session, donor, user_factory):
        other = await user_factory("otro@example.com", puntos=500)
        donor.puntos_acumulados = 500
        reward = await make_reward(db_session, 100, cantidad=1)

        await rewards.assign_reward(db_session, donor.id, reward.id)
        with pytest.raises(BadRequestError):
            await rewards.assign_reward(db_session, other.id, reward.id)

        await db_session.refresh(reward)
        assert reward.cantidad_disponible == 0
        assert await assignment_count(db_session, reward.id) == 1

    @pytest.mark.asyncio
    async def test_duplicate_custom_code_rejected(self, db_session, donor, user_factory):
        other = await user_factory("otro@example.com", puntos=500)
        donor.puntos_acumulados = 500
        first = await make_reward(db_session, 100)
        second = await make_reward(db_session, 100, nombre="Certificado")

        await rewards.assign_reward(db_session, donor.id, first.id, codigo_unico="GALA-2024")
        with pytest.raises(BadRequestError):
            await rewards.assign_reward(db_session, other.id, second.id, codigo_unico="GALA-2024")

    @pytest.mark.asyncio
    async def test_delivered_state_sets_delivery_date(self, db_session, donor):
        donor.puntos_acumulados = 500
        reward = await make_reward(db_session, 100)
        await rewards.assign_reward(db_session, donor.id, reward.id)

        assignment = await rewards.set_assignment_state(
            db_session, donor.id, reward.id, EstadoUsuarioRecompensa.ENTREGADA, "Enviada por correo"
        )
        assert assignment.fecha_entrega is not None
        assert assignment.notas == "Enviada por correo"

    @pytest.mark.asyncio
    async def test_assign_eligible_rewards(self, db_session, donor):
        donor.puntos_acumulados = 300
        cheap = await make_reward(db_session, 100)
        await make_reward(db_session, 1000, nombre="Experiencia VIP")

        granted = await rewards.assign_eligible_rewards(db_session, donor)

        assert [a.id_recompensa for a in granted] == [cheap.id]


# ===== CATALOG =====

class TestCatalog:
    """Reward catalog rules."""

    @pytest.mark.asyncio
    async def test_available_excludes_held_and_unaffordable(self, db_session, donor):
        donor.puntos_acumulados = 300
        held = await make_reward(db_session, 50, nombre="Ya obtenida")
        affordable = await make_reward(db_session, 200, nombre="Alcanzable")
        await make_reward(db_session, 400, nombre="Cara")
        await make_reward(db_session, 10, activa=False, nombre="Inactiva")
        await rewards.assign_reward(db_session, donor.id, held.id)

        available = await rewards.get_available_for_user(db_session, donor)

        assert [r.id for r in available] == [affordable.id]

    @pytest.mark.asyncio
    async def test_cannot_delete_assigned_reward(self, db_session, donor):
        donor.puntos_acumulados = 500
        reward = await make_reward(db_session, 100)
        await rewards.assign_reward(db_session, donor.id, reward.id)

        with pytest.raises(BadRequestError):
            await rewards.delete_reward(db_session, reward.id)

    @pytest.mark.asyncio
    async def test_delete_unassigned_reward(self, db_session):
        reward = await make_reward(db_session, 100)
        await rewards.delete_reward(db_session, reward.id)

        with pytest.raises(NotFoundError):
            await rewards.get_reward(db_session, reward.id)


# ===== API =====

class TestRewardsAPI:
    """Reward endpoints."""

    @pytest.mark.asyncio
    async def test_create_reward_requires_admin(self, client: AsyncClient, donor_headers: dict):
        response = await client.post(
            "/api/v1/recompensas",
            json={"nombre": "Taza", "descripcion": "Taza oficial", "puntos_requeridos": 100, "tipo": "Descuento"},
            headers=donor_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_assigns_and_donor_redeems(
        self, client: AsyncClient, db_session, donor, donor_headers: dict, admin_headers: dict
    ):
        donor.puntos_acumulados = 300
        reward = await make_reward(db_session, 100)

        response = await client.post(
            "/api/v1/recompensas/asignar",
            json={"id_usuario": donor.id, "id_recompensa": reward.id},
            headers=admin_headers
        )
        assert response.status_code == 201

        response = await client.post(f"/api/v1/recompensas/{reward.id}/canjear", headers=donor_headers)
        assert response.status_code == 200
        assert response.json()["estado"] == "Canjeada"

        response = await client.get("/api/v1/recompensas/mis-recompensas", headers=donor_headers)
        assert len(response.json()) == 1

    @pytest.mark.asyncio
    async def test_assign_without_points_returns_400(
        self, client: AsyncClient, db_session, donor, admin_headers: dict
    ):
        reward = await make_reward(db_session, 100)
        response = await client.post(
            "/api/v1/recompensas/asignar",
            json={"id_usuario": donor.id, "id_recompensa": reward.id},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_rejects_null_required_field(
        self, client: AsyncClient, db_session, admin_headers: dict
    ):
        reward = await make_reward(db_session, 100, cantidad=5)

        for field in ("nombre", "puntos_requeridos", "tipo", "activa"):
            response = await client.put(
                f"/api/v1/recompensas/{reward.id}", json={field: None}, headers=admin_headers
            )
            assert response.status_code == 422, field

        # Unlimited inventory is expressed as null
        response = await client.put(
            f"/api/v1/recompensas/{reward.id}", json={"cantidad_disponible": None}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["cantidad_disponible"] is None


# ===== CONCURRENCY =====

class TestInventoryRace:
    """Two sessions competing for the last unit."""

    async def seed(self, session_factory) -> tuple[str, str, str]:
        async with session_factory() as setup:
            first = Usuario(
                nombres="Ana", apellidos="Pérez", correo="ana@example.com", password_hash="x",
                rol=RolUsuario.DONANTE, activo=True, puntos_acumulados=500, nivel_donante=NivelDonante.ORO,
            )
            second = Usuario(
                nombres="Luis", apellidos="Gómez", correo="luis@example.com", password_hash="x",
                rol=RolUsuario.DONANTE, activo=True, puntos_acumulados=500, nivel_donante=NivelDonante.ORO,
            )
            setup.add_all([first, second])
            reward = await make_reward(setup, 200, cantidad=1)
            await setup.commit()
            return first.id, second.id, reward.id

    @pytest.mark.asyncio
    async def test_stale_reader_loses_last_unit(self, session_factory):
        first_id, second_id, reward_id = await self.seed(session_factory)

        async with session_factory() as winner, session_factory() as loser:
            # Both sessions load the reward while one unit is left
            assert (await winner.get(Recompensa, reward_id)).cantidad_disponible == 1
            assert (await loser.get(Recompensa, reward_id)).cantidad_disponible == 1
            await loser.commit()

            await rewards.assign_reward(winner, first_id, reward_id)
            await winner.commit()

            # The loser's in-memory copy still shows 1 unit
            assert (await loser.get(Recompensa, reward_id)).cantidad_disponible == 1
            with pytest.raises(BadRequestError) as exc_info:
                await rewards.assign_reward(loser, second_id, reward_id)
            assert "unidades disponibles" in exc_info.value.detail
            await loser.rollback()

        async with session_factory() as check:
            reward = await check.get(Recompensa, reward_id)
            assert reward.cantidad_disponible == 0
            assert await assignment_count(check, reward_id) == 1
