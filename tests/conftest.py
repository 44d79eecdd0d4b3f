"""
Test configuration and fixtures for the donations backend tests.
"""
import os
import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.db.base import Base, get_db
from app.core.config import settings
from app.core.security import get_password_hash, create_access_token
from app.models.user import Usuario, RolUsuario, NivelDonante
from app.models.campaign import Campana, EstadoCampana
from app.models.payment_method import MetodoPago, TipoPago
from app.services.configuration import ConfigCache
from app.services.email import email_service


# Use a file-based SQLite DB to avoid :memory: multiple-connection issues
# with SQLAlchemy + aiosqlite (each new connection would see an empty DB).
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

TEST_PASSWORD = "TestPass123"


@pytest.fixture(autouse=True)
def isolated_files(tmp_path, monkeypatch):
    """Generated documents and the email log go to a per-test directory."""
    monkeypatch.setattr(settings, "STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setattr(email_service, "email_log_path", tmp_path / "emails.log")
    return tmp_path


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT (begin_nested) to behave.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    # Clean up test database file
    try:
        os.remove("./test.db")
    except OSError:
        pass


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def config_cache() -> ConfigCache:
    """The application cache, emptied for each test."""
    app.state.config_cache.clear()
    yield app.state.config_cache
    app.state.config_cache.clear()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, config_cache: ConfigCache) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(
    db: AsyncSession,
    correo: str,
    rol: RolUsuario = RolUsuario.DONANTE,
    puntos: int = 0
) -> Usuario:
    user = Usuario(
        nombres="Ana",
        apellidos="Pérez",
        correo=correo,
        password_hash=get_password_hash(TEST_PASSWORD),
        rol=rol,
        activo=True,
        puntos_acumulados=puntos,
        nivel_donante=NivelDonante.BRONCE,
    )
    db.add(user)
    await db.flush()
    return user


@pytest.fixture
def user_factory(db_session: AsyncSession):
    """Create extra accounts: `await user_factory("x@example.com", puntos=500)`."""
    async def factory(correo: str, rol: RolUsuario = RolUsuario.DONANTE, puntos: int = 0) -> Usuario:
        return await make_user(db_session, correo, rol, puntos)
    return factory


def headers_for(user: Usuario) -> dict:
    token = create_access_token(subject=user.id, additional_claims={"rol": user.rol.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_factory():
    return headers_for


@pytest_asyncio.fixture
async def donor(db_session: AsyncSession) -> Usuario:
    """Create a donor account."""
    return await make_user(db_session, "donante@example.com")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Usuario:
    """Create an admin account."""
    return await make_user(db_session, "admin@example.com", rol=RolUsuario.ADMIN)


@pytest_asyncio.fixture
async def donor_headers(donor: Usuario) -> dict:
    return headers_for(donor)


@pytest_asyncio.fixture
async def admin_headers(admin: Usuario) -> dict:
    return headers_for(admin)


@pytest_asyncio.fixture
async def campaign(db_session: AsyncSession) -> Campana:
    """Create an active campaign."""
    campana = Campana(
        nombre="Agua limpia",
        descripcion="Pozos para comunidades rurales",
        meta_monto=Decimal("1000.00"),
        monto_recaudado=Decimal("0"),
        contador_donaciones=0,
        es_emergencia=False,
        fecha_inicio=date(2024, 1, 1),
        estado=EstadoCampana.ACTIVA,
        impacto_descripcion="Cada $10 lleva agua a una familia",
    )
    db_session.add(campana)
    await db_session.flush()
    return campana


@pytest_asyncio.fixture
async def payment_method(db_session: AsyncSession, donor: Usuario) -> MetodoPago:
    """Create an active card for the donor."""
    method = MetodoPago(
        id_usuario=donor.id,
        tipo=TipoPago.TARJETA,
        token_referencia="tok_visa_4242",
        ultimo_digitos="4242",
        activo=True,
    )
    db_session.add(method)
    await db_session.flush()
    return method
