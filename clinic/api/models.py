"""Pydantic models for API request/response validation."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _reject_aware(slot: datetime) -> datetime:
    if slot.utcoffset() is not None:
        raise ValueError("slot must be local clinic time without a timezone offset")
    return slot


class BookingRequest(BaseModel):
    """Request body for POST /appointments."""
    patient_id: str = Field(..., min_length=1, description="Registered patient ID")
    doctor_id: str = Field(..., min_length=1, description="Registered doctor ID")
    slot: datetime = Field(..., description="Slot to book (ISO 8601, no timezone)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "patient_id": "P001",
                "doctor_id": "D001",
                "slot": "2025-01-15T09:00:00"
            }
        }
    )

    @field_validator('slot')
    @classmethod
    def validate_slot(cls, v):
        return _reject_aware(v)


class CompletionRequest(BaseModel):
    """Request body for POST /appointments/<id>/complete."""
    notes: str = Field(..., min_length=1, max_length=2000, description="Doctor's notes")


class SlotRequest(BaseModel):
    """Request body for POST /doctors/<id>/slots."""
    slot: datetime = Field(..., description="Slot to open (ISO 8601, no timezone)")

    @field_validator('slot')
    @classmethod
    def validate_slot(cls, v):
        return _reject_aware(v)


class ErrorResponse(BaseModel):
    """Error response schema."""
    success: bool = False
    error: str = Field(..., description="Error message")
    code: Optional[str] = Field(None, description="Error code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": "Slot 2025-01-15T09:00:00 is not available for doctor 'D001'",
                "code": "SLOT_UNAVAILABLE"
            }
        }
    )
