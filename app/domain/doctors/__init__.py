# Doctors domain module
from app.domain.doctors.models import Doctor, AvailabilityList
from app.domain.doctors.validation import VALID_DAYS

__all__ = [
    "Doctor",
    "AvailabilityList",
    "VALID_DAYS",
]
