"""
Validation rules applied on every write path.

Reads never re-validate; the one exception is the availability read, which
treats bad stored data as an integrity problem (see DoctorService).
"""
from typing import Iterable, List, NamedTuple, Optional

from app.core.exceptions import ValidationError

VALID_DAYS = (
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
)
_VALID_DAY_SET = frozenset(VALID_DAYS)

MAX_TEXT_LENGTH = 100
MIN_EXPERIENCE = 0
MAX_EXPERIENCE = 50


class AvailabilityCheck(NamedTuple):
    valid: bool
    invalid_days: List[str]


def check_availability(days: Iterable[str]) -> AvailabilityCheck:
    """Compare day names against the weekday whitelist (exact, case-sensitive)"""
    invalid = []
    for day in days:
        if day not in _VALID_DAY_SET and day not in invalid:
            invalid.append(day)
    return AvailabilityCheck(valid=not invalid, invalid_days=invalid)


def validate_availability(days: Iterable[str]) -> None:
    result = check_availability(days)
    if not result.valid:
        raise ValidationError(
            message=f"Invalid day(s) in availability. Valid days are: {', '.join(VALID_DAYS)}",
            details={"field": "availability", "invalid_days": result.invalid_days},
        )


def _check_text(field: str, value: str, errors: dict) -> None:
    if not value or not value.strip():
        errors[field] = [f"{field} must not be empty"]
    elif len(value) > MAX_TEXT_LENGTH:
        errors[field] = [f"{field} must be at most {MAX_TEXT_LENGTH} characters"]


def validate_doctor_fields(
    name: Optional[str] = None,
    specialization: Optional[str] = None,
    experience: Optional[int] = None,
    availability: Optional[Iterable[str]] = None,
) -> None:
    """
    Validate the fields that are given; None means "not supplied".

    Create passes every field, partial update only the ones present in the
    request. Raises ValidationError listing every failing field.
    """
    errors = {}
    if name is not None:
        _check_text("name", name, errors)
    if specialization is not None:
        _check_text("specialization", specialization, errors)
    if experience is not None and not MIN_EXPERIENCE <= experience <= MAX_EXPERIENCE:
        errors["experience"] = [
            f"experience must be between {MIN_EXPERIENCE} and {MAX_EXPERIENCE}"
        ]
    if availability is not None:
        result = check_availability(availability)
        if not result.valid:
            errors["availability"] = [f"invalid day: {day}" for day in result.invalid_days]

    if errors:
        raise ValidationError(
            message="Doctor data failed validation",
            details={"fields": errors},
        )
