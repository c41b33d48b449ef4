from pydantic import BaseModel, Field
from typing import List, Optional

from .models import BookingStatus


class CreateAvailabilityRequest(BaseModel):
    start_time: str = Field(examples=["2025-05-18T10:00:00Z"])
    end_time: str = Field(examples=["2025-05-18T14:00:00Z"])


class PainterInfo(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None


class AvailabilityResponse(BaseModel):
    id: str
    painter_id: str
    start_time: str
    end_time: str
    is_booked: bool
    created_at: str
    painter: Optional[PainterInfo] = None


class CreateBookingRequest(BaseModel):
    start_time: str = Field(examples=["2025-05-18T11:00:00Z"])
    end_time: str = Field(examples=["2025-05-18T13:00:00Z"])


class BookAlternativeRequest(BaseModel):
    duration: float = Field(description="Requested duration in milliseconds")


class UpdateBookingStatusRequest(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: str
    customer_id: str
    painter_id: str
    slot_id: Optional[str] = None
    start_time: str
    end_time: str
    status: BookingStatus
    created_at: str
    updated_at: str


class AlternativeSlot(BaseModel):
    id: str
    painter_id: str
    start_time: str
    end_time: str
    painter: Optional[PainterInfo] = None


class CreateBookingResponse(BaseModel):
    booking: Optional[BookingResponse] = None
    alternatives: Optional[List[AlternativeSlot]] = None
