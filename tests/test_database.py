import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from app.core.config import settings
from app.domain.doctors.repository import DoctorRepository
from app.infrastructure.database import is_transient_error, run_with_retry


def locked_error() -> OperationalError:
    return OperationalError("SELECT", {}, Exception("database is locked"))


@pytest.fixture
def no_retry_delay(monkeypatch) -> None:
    monkeypatch.setattr(settings, "DATABASE_RETRY_DELAY", 0)


@pytest.mark.unit
class TestTransientErrors:
    """Which driver errors count as transient."""

    def test_operational_error_is_transient(self) -> None:
        assert is_transient_error(locked_error())

    def test_invalidated_connection_is_transient(self) -> None:
        error = DBAPIError("SELECT 1", {}, Exception("connection reset"), connection_invalidated=True)
        assert is_transient_error(error)

    def test_constraint_violation_is_not_transient(self) -> None:
        error = IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed"))
        assert not is_transient_error(error)


@pytest.mark.unit
class TestRunWithRetry:
    """Bounded retry with backoff below the service layer."""

    async def test_succeeds_on_second_attempt(self, db_session, no_retry_delay) -> None:
        operation = AsyncMock(side_effect=[locked_error(), 42])

        assert await run_with_retry(db_session, operation, "count doctors") == 42
        assert operation.await_count == 2

    async def test_gives_up_after_max_retries(self, db_session, no_retry_delay, monkeypatch) -> None:
        monkeypatch.setattr(settings, "DATABASE_MAX_RETRIES", 2)
        operation = AsyncMock(side_effect=locked_error())

        with pytest.raises(OperationalError):
            await run_with_retry(db_session, operation)

        assert operation.await_count == 3

    async def test_non_transient_error_is_not_retried(self, db_session, no_retry_delay) -> None:
        operation = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("constraint")))

        with pytest.raises(IntegrityError):
            await run_with_retry(db_session, operation)

        assert operation.await_count == 1

    async def test_backoff_doubles_up_to_cap(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "DATABASE_MAX_RETRIES", 4)
        monkeypatch.setattr(settings, "DATABASE_RETRY_DELAY", 0.5)
        monkeypatch.setattr(settings, "DATABASE_MAX_RETRY_DELAY", 3.0)
        session = AsyncMock()
        operation = AsyncMock(side_effect=[locked_error()] * 4 + ["ok"])

        with patch("app.infrastructure.database.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await run_with_retry(session, operation) == "ok"

        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0, 2.0, 3.0]
        assert session.rollback.await_count == 4


@pytest.mark.doctors
@pytest.mark.integration
class TestRepositoryRetry:
    """Repository reads ride out a transient failure."""

    async def test_count_retries_locked_database(self, db_session, seed_doctors, no_retry_delay) -> None:
        await seed_doctors(2)
        real_execute = db_session.execute
        calls = []

        async def flaky_execute(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise locked_error()
            return await real_execute(*args, **kwargs)

        with patch.object(db_session, "execute", side_effect=flaky_execute):
            assert await DoctorRepository(db_session).count() == 2

        assert len(calls) == 2

    async def test_delete_retries_locked_database(self, db_session, seed_doctors, no_retry_delay) -> None:
        doctors = await seed_doctors(1)
        real_execute = db_session.execute
        calls = []

        async def flaky_execute(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise locked_error()
            return await real_execute(*args, **kwargs)

        with patch.object(db_session, "execute", side_effect=flaky_execute):
            assert await DoctorRepository(db_session).delete(doctors[0].id) is True

        assert len(calls) == 2
