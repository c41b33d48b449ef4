from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy import inspect

from .availability import AvailabilityManager
from .bookings import BookingManager
from .clock import isoformat
from .db import SessionLocal
from .models import AvailabilitySlot, Booking
from .schemas import (
    AlternativeSlot,
    AvailabilityResponse,
    BookAlternativeRequest,
    BookingResponse,
    CreateAvailabilityRequest,
    CreateBookingRequest,
    CreateBookingResponse,
    PainterInfo,
    UpdateBookingStatusRequest,
)
from .scoring import build_responsiveness

router = APIRouter()

_availability_manager = AvailabilityManager(SessionLocal)
_booking_manager = BookingManager(SessionLocal, responsiveness=build_responsiveness())


def get_availability_manager() -> AvailabilityManager:
    return _availability_manager


def get_booking_manager() -> BookingManager:
    return _booking_manager


def get_current_user_id(x_user_sub: str | None = Header(default=None)) -> str:
    # identity is established by the gateway and forwarded as X-User-Sub
    if not x_user_sub:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_sub


def _painter_info(slot: AvailabilitySlot) -> PainterInfo | None:
    if "provider" in inspect(slot).unloaded:
        return None
    painter = slot.provider
    if painter is None:
        return None
    return PainterInfo(
        id=painter.id,
        first_name=painter.first_name,
        last_name=painter.last_name,
        email=painter.email,
    )


def _slot_response(slot: AvailabilitySlot) -> AvailabilityResponse:
    return AvailabilityResponse(
        id=slot.id,
        painter_id=slot.provider_id,
        start_time=isoformat(slot.start_time),
        end_time=isoformat(slot.end_time),
        is_booked=slot.reserved,
        created_at=isoformat(slot.created_at),
        painter=_painter_info(slot),
    )


def _alternative(slot: AvailabilitySlot) -> AlternativeSlot:
    return AlternativeSlot(
        id=slot.id,
        painter_id=slot.provider_id,
        start_time=isoformat(slot.start_time),
        end_time=isoformat(slot.end_time),
        painter=_painter_info(slot),
    )


def _booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        customer_id=booking.customer_id,
        painter_id=booking.provider_id,
        slot_id=booking.slot_id,
        start_time=isoformat(booking.start_time),
        end_time=isoformat(booking.end_time),
        status=booking.status,
        created_at=isoformat(booking.created_at),
        updated_at=isoformat(booking.updated_at),
    )


# ================= AVAILABILITY =================

@router.post("/availability", response_model=AvailabilityResponse)
async def create_availability(
    data: CreateAvailabilityRequest,
    user_id: str = Depends(get_current_user_id),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    slot = await manager.create_availability(user_id, data.start_time, data.end_time)
    return _slot_response(slot)


@router.get("/availability/me", response_model=list[AvailabilityResponse])
async def get_my_availability(
    user_id: str = Depends(get_current_user_id),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    return [_slot_response(s) for s in await manager.find_provider_availability(user_id)]


@router.get("/availability", response_model=list[AvailabilityResponse])
async def get_available_slots(
    start: str | None = None,
    end: str | None = None,
    painter_id: str | None = Query(default=None, alias="painterId"),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    found = await manager.find_available_slots(start=start, end=end, provider_id=painter_id)
    return [_slot_response(s) for s in found]


# ================= BOOKINGS =================

@router.post("/bookings", response_model=CreateBookingResponse, response_model_exclude_none=True)
async def create_booking(
    data: CreateBookingRequest,
    user_id: str = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    result = await manager.create_booking(user_id, data.start_time, data.end_time)
    if result.booked:
        return CreateBookingResponse(booking=_booking_response(result.booking))
    return CreateBookingResponse(alternatives=[_alternative(s) for s in result.alternatives])


@router.get("/bookings/me", response_model=list[BookingResponse])
async def get_my_bookings(
    status: str | None = None,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    bookings = await manager.find_user_bookings(
        user_id, status=status, start_date=start_date, end_date=end_date
    )
    return [_booking_response(b) for b in bookings]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    return _booking_response(await manager.find_booking_by_id(booking_id, user_id))


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    data: UpdateBookingStatusRequest,
    user_id: str = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    booking = await manager.update_status(booking_id, data.status, user_id)
    return _booking_response(booking)


@router.post("/bookings/alternative/{slot_id}", response_model=BookingResponse)
async def book_alternative_slot(
    slot_id: str,
    data: BookAlternativeRequest,
    user_id: str = Depends(get_current_user_id),
    manager: BookingManager = Depends(get_booking_manager),
):
    booking = await manager.book_alternative_slot(user_id, slot_id, data.duration)
    return _booking_response(booking)
