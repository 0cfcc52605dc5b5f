import pytest
from typing import AsyncGenerator, Callable, Awaitable, List
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.infrastructure.cache import MemoryCache
from app.infrastructure.database import get_db, Base
from app.domain.doctors.models import Doctor
from app.domain.doctors.repository import DoctorRepository
from app.domain.doctors.service import DoctorService


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FakeClock:
    """Manually advanced clock for cache expiry tests"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(sliding_expiration=300, absolute_expiration=600, clock=clock)


@pytest.fixture(scope="function")
def doctor_service(db_session: AsyncSession, cache: MemoryCache) -> DoctorService:
    return DoctorService(db_session, cache, default_page_size=10, max_page_size=50)


@pytest.fixture(scope="function")
async def client(session_factory, cache: MemoryCache) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database and cache overrides."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.cache = cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    del app.state.cache


@pytest.fixture(scope="function")
def sample_doctor_data() -> dict:
    """Sample doctor data for testing."""
    return {
        "name": "Dr. Gregory House",
        "specialization": "Diagnostic Medicine",
        "experience": 20,
        "availability": ["Monday", "Wednesday", "Friday"],
    }


@pytest.fixture(scope="function")
def force_availability(session_factory) -> Callable[..., Awaitable[None]]:
    """Write availability straight to the database, skipping validation."""

    async def _force(doctor_id, availability) -> None:
        async with session_factory() as session:
            repo = DoctorRepository(session)
            doctor = await repo.get_by_id(doctor_id)
            doctor.availability = availability
            await repo.update(doctor)

    return _force


@pytest.fixture(scope="function")
def seed_doctors(session_factory) -> Callable[[int], Awaitable[List[Doctor]]]:
    """Insert doctors named 'Doctor 01'..'Doctor NN' directly, last name first."""

    async def _seed(count: int) -> List[Doctor]:
        async with session_factory() as session:
            repo = DoctorRepository(session)
            return [
                await repo.create({
                    "name": f"Doctor {i:02d}",
                    "specialization": "General Practice",
                    "experience": i,
                    "availability": ["Monday"],
                })
                for i in range(count, 0, -1)
            ]

    return _seed


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "cache: mark test as cache behaviour related"
    )
    config.addinivalue_line(
        "markers", "doctors: mark test as doctor management related"
    )
