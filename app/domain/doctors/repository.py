from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, exists, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from datetime import datetime, timezone
from app.core.exceptions import ConcurrencyConflictError, handle_database_error
from app.domain.doctors.models import Doctor
from app.infrastructure.database import run_with_retry
import logging
import uuid

logger = logging.getLogger(__name__)


class DoctorRepository:
    """
    Repository for doctor data access operations.

    Reads and the single-statement delete retry transient database errors;
    inserts and updates through the unit of work fail on the first error.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, doctor_data: dict) -> Doctor:
        """Insert a doctor, assigning id and created_at when absent"""
        doctor_data = dict(doctor_data)
        if doctor_data.get("id") is None:
            doctor_data["id"] = uuid.uuid4()
        if doctor_data.get("created_at") is None:
            doctor_data["created_at"] = datetime.now(timezone.utc)
        if doctor_data.get("availability") is None:
            doctor_data["availability"] = []

        doctor = Doctor(**doctor_data)
        self.db.add(doctor)
        await self._commit("create doctor")
        return doctor

    async def get_by_id(self, doctor_id: uuid.UUID) -> Optional[Doctor]:
        """Get doctor by ID"""
        return await run_with_retry(self.db, lambda: self.db.get(Doctor, doctor_id), "get doctor")

    async def get_page(self, skip: int = 0, limit: int = 10) -> List[Doctor]:
        """Get a window of doctors ordered by name"""
        async def fetch() -> List[Doctor]:
            result = await self.db.execute(
                select(Doctor)
                .order_by(Doctor.name.asc(), Doctor.id.asc())
                .offset(skip)
                .limit(limit)
            )
            return list(result.scalars().all())

        return await run_with_retry(self.db, fetch, "list doctors")

    async def count(self) -> int:
        async def fetch() -> int:
            result = await self.db.execute(select(func.count(Doctor.id)))
            return result.scalar_one()

        return await run_with_retry(self.db, fetch, "count doctors")

    async def update(self, doctor: Doctor) -> Doctor:
        """Persist pending changes on a loaded doctor"""
        await self._commit("update doctor")
        return doctor

    async def delete(self, doctor_id: uuid.UUID) -> bool:
        """Delete doctor record"""
        async def execute() -> int:
            result = await self.db.execute(
                delete(Doctor).where(Doctor.id == doctor_id)
            )
            await self.db.commit()
            return result.rowcount

        try:
            rowcount = await run_with_retry(self.db, execute, "delete doctor")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise handle_database_error(e, "delete doctor") from e
        return rowcount > 0

    async def exists(self, doctor_id: uuid.UUID) -> bool:
        async def fetch() -> bool:
            result = await self.db.execute(
                select(exists().where(Doctor.id == doctor_id))
            )
            return bool(result.scalar())

        return await run_with_retry(self.db, fetch, "check doctor exists")

    async def _commit(self, operation: str) -> None:
        # Not retried: a rollback discards the session's pending inserts and changes
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(f"Concurrent modification during {operation}: {e}")
            raise ConcurrencyConflictError(details={"operation": operation}) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise handle_database_error(e, operation) from e
