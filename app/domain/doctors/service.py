from typing import Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import math
import uuid

from app.api.v1.doctors.schemas import DoctorCreate, DoctorPage, DoctorUpdate, DoctorView
from app.core.config import settings
from app.core.exceptions import ConcurrencyConflictError, DataIntegrityError, NotFoundError
from app.domain.doctors.models import Doctor
from app.domain.doctors.repository import DoctorRepository
from app.domain.doctors.validation import (
    check_availability,
    validate_availability,
    validate_doctor_fields,
)
from app.infrastructure.cache import ExpiringCache

logger = logging.getLogger(__name__)

# Largest page number accepted over HTTP, so the row offset fits a signed 64-bit integer
MAX_PAGE_NUMBER = 2**31 - 1


def list_cache_key(page_number: int, page_size: int) -> str:
    return f"doctors:list:{page_number}:{page_size}"


def item_cache_key(doctor_id: uuid.UUID) -> str:
    return f"doctors:item:{doctor_id}"


class DoctorService:
    """
    Service layer for doctor management.

    Reads go through the cache; writes go to the database first and then
    invalidate the affected cache keys. Invalidation only ever touches the
    doctor's own key and the first list page at the default page size, so
    other cached pages can serve stale items until they expire.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: ExpiringCache,
        default_page_size: int = settings.DEFAULT_PAGE_SIZE,
        max_page_size: int = settings.MAX_PAGE_SIZE,
    ):
        self.db = db
        self.cache = cache
        self.doctor_repo = DoctorRepository(db)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.sliding_expiration = settings.CACHE_SLIDING_EXPIRATION_SECONDS
        self.absolute_expiration = settings.CACHE_ABSOLUTE_EXPIRATION_SECONDS

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            return self.default_page_size
        return max(1, min(page_size, self.max_page_size))

    async def list_doctors(self, page_number: int = 1, page_size: Optional[int] = None) -> DoctorPage:
        """Get one page of doctors ordered by name"""
        page_number = max(page_number, 1)
        page_size = self.clamp_page_size(page_size)
        skip = (page_number - 1) * page_size

        # Never cached, so it can disagree with a stale cached page
        total_count = await self.doctor_repo.count()

        if skip >= total_count:
            # Past the end: nothing to fetch or cache
            items = []
        else:
            cache_key = list_cache_key(page_number, page_size)
            cached = await self._cache_get(cache_key)
            if cached is None:
                doctors = await self.doctor_repo.get_page(skip=skip, limit=page_size)
                items = [DoctorView.model_validate(doctor) for doctor in doctors]
                await self._cache_set(cache_key, [item.model_dump(mode="json") for item in items])
            else:
                items = [DoctorView.model_validate(item) for item in cached]

        return DoctorPage(
            page_number=page_number,
            page_size=page_size,
            total_pages=math.ceil(total_count / page_size),
            total_count=total_count,
            items=items
        )

    async def get_doctor(self, doctor_id: uuid.UUID) -> DoctorView:
        """Get doctor by ID"""
        cache_key = item_cache_key(doctor_id)
        cached = await self._cache_get(cache_key)
        if cached is not None:
            return DoctorView.model_validate(cached)

        doctor = await self._get_or_404(doctor_id)
        view = DoctorView.model_validate(doctor)
        await self._cache_set(cache_key, view.model_dump(mode="json"))
        return view

    async def create_doctor(self, doctor_data: DoctorCreate) -> DoctorView:
        """Create a new doctor"""
        validate_doctor_fields(
            name=doctor_data.name,
            specialization=doctor_data.specialization,
            experience=doctor_data.experience,
            availability=doctor_data.availability or [],
        )

        doctor = await self.doctor_repo.create({
            "name": doctor_data.name,
            "specialization": doctor_data.specialization,
            "experience": doctor_data.experience,
            "availability": list(doctor_data.availability or []),
        })
        logger.info(f"Created doctor {doctor.id}")

        await self._invalidate()
        return DoctorView.model_validate(doctor)

    async def update_doctor(self, doctor_id: uuid.UUID, doctor_data: DoctorUpdate) -> None:
        """Apply the fields present in doctor_data"""
        changes = doctor_data.changes()
        validate_doctor_fields(**changes)

        doctor = await self._get_or_404(doctor_id)
        for field, value in changes.items():
            setattr(doctor, field, value)

        await self._save(doctor_id, doctor)
        await self._invalidate(doctor_id)

    async def delete_doctor(self, doctor_id: uuid.UUID) -> None:
        """Delete doctor record"""
        deleted = await self.doctor_repo.delete(doctor_id)
        if not deleted:
            raise self._not_found(doctor_id)

        logger.info(f"Deleted doctor {doctor_id}")
        await self._invalidate(doctor_id)

    async def set_availability(self, doctor_id: uuid.UUID, days: List[str]) -> None:
        """Replace a doctor's availability"""
        validate_availability(days)

        doctor = await self._get_or_404(doctor_id)
        doctor.availability = list(days)

        await self._save(doctor_id, doctor)
        await self._invalidate(doctor_id)

    async def get_availability(self, doctor_id: uuid.UUID) -> List[str]:
        """
        Read a doctor's availability straight from the database.

        Stored data that is null or contains a non-weekday is reported as
        DataIntegrityError instead of being returned.
        """
        doctor = await self._get_or_404(doctor_id)

        availability = doctor.availability
        if availability is None or not check_availability(availability).valid:
            logger.warning(f"Doctor {doctor_id} has invalid availability data")
            raise DataIntegrityError(
                message="Doctor has invalid availability data.",
                details={"doctor_id": str(doctor_id)}
            )
        return list(availability)

    async def _get_or_404(self, doctor_id: uuid.UUID) -> Doctor:
        doctor = await self.doctor_repo.get_by_id(doctor_id)
        if doctor is None:
            raise self._not_found(doctor_id)
        return doctor

    def _not_found(self, doctor_id: uuid.UUID) -> NotFoundError:
        logger.warning(f"Doctor with ID {doctor_id} not found")
        return NotFoundError(
            message="Doctor not found",
            details={"doctor_id": str(doctor_id)}
        )

    async def _save(self, doctor_id: uuid.UUID, doctor: Doctor) -> None:
        try:
            await self.doctor_repo.update(doctor)
        except ConcurrencyConflictError as e:
            # A concurrent delete is a plain 404; anything else is fatal
            if not await self.doctor_repo.exists(doctor_id):
                raise self._not_found(doctor_id) from e
            raise

    async def _invalidate(self, doctor_id: Optional[uuid.UUID] = None) -> None:
        if doctor_id is not None:
            await self._cache_remove(item_cache_key(doctor_id))
        await self._cache_remove(list_cache_key(1, self.default_page_size))

    async def _cache_get(self, key: str) -> Optional[Any]:
        try:
            value = await self.cache.get(key)
        except Exception as e:
            logger.error(f"Cache get failed for {key}, reading from database: {e}")
            return None
        logger.debug(f"Cache {'hit' if value is not None else 'miss'} for {key}")
        return value

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self.cache.set(
                key,
                value,
                sliding_expiration=self.sliding_expiration,
                absolute_expiration=self.absolute_expiration
            )
        except Exception as e:
            logger.error(f"Cache set failed for {key}: {e}")

    async def _cache_remove(self, key: str) -> None:
        try:
            await self.cache.remove(key)
            logger.debug(f"Invalidated cache key {key}")
        except Exception as e:
            logger.error(f"Cache invalidation failed for {key}: {e}")
