from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from typing import List
import uuid

from app.api.deps import get_doctor_service
from app.api.v1.doctors.schemas import DoctorCreate, DoctorPage, DoctorUpdate, DoctorView
from app.core.config import settings
from app.core.exceptions import ErrorResponse, ValidationErrorResponse
from app.domain.doctors.service import MAX_PAGE_NUMBER, DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])

_not_found = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}}
_bad_request = {status.HTTP_400_BAD_REQUEST: {"model": ValidationErrorResponse}}


@router.get(
    "",
    response_model=DoctorPage,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
)
async def list_doctors(
    page_number: int = Query(1, alias="pageNumber", ge=1, le=MAX_PAGE_NUMBER),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, alias="pageSize",
                           description=f"Clamped to 1..{settings.MAX_PAGE_SIZE}"),
    service: DoctorService = Depends(get_doctor_service)
):
    """Get doctors ordered by name, one page at a time"""
    return await service.list_doctors(page_number=page_number, page_size=page_size)


@router.get(
    "/{doctor_id}",
    response_model=DoctorView,
    response_model_exclude_none=True,
    responses=_not_found,
)
async def get_doctor(
    doctor_id: uuid.UUID,
    response: Response,
    service: DoctorService = Depends(get_doctor_service)
):
    """Get doctor by ID"""
    doctor = await service.get_doctor(doctor_id)
    response.headers["Cache-Control"] = f"public, max-age={settings.ITEM_RESPONSE_MAX_AGE}"
    return doctor


@router.post(
    "",
    response_model=DoctorView,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={**_bad_request, status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def create_doctor(
    doctor_data: DoctorCreate,
    request: Request,
    response: Response,
    service: DoctorService = Depends(get_doctor_service)
):
    """Create a new doctor"""
    doctor = await service.create_doctor(doctor_data)
    response.headers["Location"] = str(request.url_for("get_doctor", doctor_id=str(doctor.id)))
    return doctor


@router.put(
    "/{doctor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={**_bad_request, **_not_found},
)
async def update_doctor(
    doctor_id: uuid.UUID,
    doctor_data: DoctorUpdate,
    service: DoctorService = Depends(get_doctor_service)
):
    """Update the supplied fields of a doctor; omitted or null fields are kept"""
    await service.update_doctor(doctor_id, doctor_data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{doctor_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_not_found,
)
async def delete_doctor(
    doctor_id: uuid.UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    """Delete a doctor"""
    await service.delete_doctor(doctor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{doctor_id}/availability",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={**_bad_request, **_not_found},
)
async def set_availability(
    doctor_id: uuid.UUID,
    availability: List[str] = Body(..., examples=[["Monday", "Wednesday"]]),
    service: DoctorService = Depends(get_doctor_service)
):
    """Replace a doctor's weekly availability"""
    await service.set_availability(doctor_id, availability)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{doctor_id}/availability",
    response_model=List[str],
    responses={status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}, **_not_found},
)
async def get_availability(
    doctor_id: uuid.UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    """Get a doctor's weekly availability"""
    return await service.get_availability(doctor_id)
