import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.main import app
from app.config import settings
from app.database import Base, get_db
from app.api.deps import get_now
from app.models.apar import Apar
from tests.helpers import FIXED_NOW, FIXED_LAT, FIXED_LNG, create_user

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"


@pytest_asyncio.fixture
async def test_db():
    """Create test database and tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """Keep stored photos inside the test's temporary directory."""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return tmp_path / "uploads"


@pytest_asyncio.fixture
async def teknisi(test_db: AsyncSession):
    return await create_user(test_db, "Budi Teknisi", "teknisi@example.com", "teknisi")


@pytest_asyncio.fixture
async def other_teknisi(test_db: AsyncSession):
    return await create_user(test_db, "Sari Teknisi", "teknisi2@example.com", "teknisi")


@pytest_asyncio.fixture
async def supervisor(test_db: AsyncSession):
    return await create_user(test_db, "Dewi Supervisor", "supervisor@example.com", "supervisor")


@pytest_asyncio.fixture
async def admin(test_db: AsyncSession):
    return await create_user(test_db, "Agus Admin", "admin@example.com", "admin")


@pytest.fixture
def clock():
    """Mutable evaluation clock; tests move it with ``clock["now"] = ...``."""
    return {"now": FIXED_NOW}


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, clock):
    """Create test client with overridden database and clock."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock["now"]

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def fixed_apar(test_db: AsyncSession):
    """A geofenced APAR at Monas, Jakarta."""
    apar = Apar(
        serial_number="SN-FIXED-001",
        qr_code="APAR-FIXED00001",
        location_type="fixed",
        location_name="Gedung A Lantai 1",
        latitude=FIXED_LAT,
        longitude=FIXED_LNG,
        valid_radius=30,
        capacity=3,
        status="active",
    )
    test_db.add(apar)
    await test_db.commit()
    await test_db.refresh(apar)
    return apar


@pytest_asyncio.fixture
async def mobile_apar(test_db: AsyncSession):
    apar = Apar(
        serial_number="SN-MOBILE-001",
        qr_code="APAR-MOBILE0001",
        location_type="mobile",
        location_name="Truk Operasional 07",
        valid_radius=30,
        capacity=6,
        status="active",
    )
    test_db.add(apar)
    await test_db.commit()
    await test_db.refresh(apar)
    return apar
