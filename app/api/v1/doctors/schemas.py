from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid


class DoctorCreate(BaseModel):
    """Schema for creating a new doctor"""
    name: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=100)
    experience: int = Field(0, ge=0, le=50, description="Years of experience")
    availability: Optional[List[str]] = Field(
        None,
        description="Weekday names, e.g. Monday. Omitted means no availability."
    )


class DoctorUpdate(BaseModel):
    """
    Schema for a partial doctor update.

    Every field is optional. A field that is absent or null leaves the stored
    value unchanged; it never clears it. Use changes() to get only the
    fields that should be written.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    specialization: Optional[str] = Field(None, min_length=1, max_length=100)
    experience: Optional[int] = Field(None, ge=0, le=50)
    availability: Optional[List[str]] = None

    def changes(self) -> Dict[str, Any]:
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


class DoctorView(BaseModel):
    """Doctor as returned to clients"""
    id: uuid.UUID
    name: str
    specialization: str
    experience: int
    availability: Optional[List[str]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DoctorPage(BaseModel):
    """One page of doctors ordered by name"""
    page_number: int
    page_size: int
    total_pages: int
    total_count: int
    items: List[DoctorView]
