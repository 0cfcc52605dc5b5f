from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.domain.doctors.service import DoctorService
from app.infrastructure.cache import ExpiringCache
from app.infrastructure.database import get_db


def get_cache(request: Request) -> ExpiringCache:
    """Cache instance owned by the application lifespan"""
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise RuntimeError("Cache not initialized. Check lifespan setup.")
    return cache


async def get_doctor_service(
    db: AsyncSession = Depends(get_db),
    cache: ExpiringCache = Depends(get_cache),
) -> DoctorService:
    return DoctorService(db, cache)
