"""
Booking endpoints with concurrency-safe room admission.

Notifications and cache invalidation run after the booking has been
committed; neither can fail the request.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.booking import (
    BookingCreate,
    BookingDeleteResponse,
    BookingDetailResponse,
    BookingListResponse,
    BookingUpdate,
)
from app.services import booking_service
from app.services.cache_service import invalidate_room_schedule
from app.services.interfaces.admission import AdmissionStrategy
from app.services.notification_service import Notifier, get_notifier
from app.services.strategy_factory import get_admission
from app.core.security import CurrentUser, get_current_user

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    admission: AdmissionStrategy = Depends(get_admission),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Book a room for a time window.

    409 if the window overlaps a confirmed booking of the same room.
    Concurrent requests for the same room are admitted one at a time.
    """
    booking = await booking_service.create_booking(db, admission, current_user, booking_data)
    await invalidate_room_schedule(booking.room_id)
    await notifier.booking_created(booking, booking.room.name, current_user.username)
    return booking


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Admins get every booking; users get their own. Latest start first."""
    bookings = await booking_service.list_bookings(db, current_user)
    return BookingListResponse(bookings=bookings, count=len(bookings))


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, current_user, booking_id)


@router.put("/{booking_id}", response_model=BookingDetailResponse)
async def update_booking(
    booking_id: int,
    booking_data: BookingUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    admission: AdmissionStrategy = Depends(get_admission),
    notifier: Notifier = Depends(get_notifier),
):
    """Edit a booking. Time or room changes are re-checked against other bookings."""
    booking, previous_room_id = await booking_service.update_booking(
        db, admission, current_user, booking_id, booking_data
    )
    await invalidate_room_schedule(booking.room_id)
    if previous_room_id != booking.room_id:
        await invalidate_room_schedule(previous_room_id)
    await notifier.booking_updated(
        booking, booking.room.name, current_user.username, previous_room_id=previous_room_id
    )
    return booking


@router.post("/{booking_id}/cancel", response_model=BookingDetailResponse)
async def cancel_booking(
    booking_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    admission: AdmissionStrategy = Depends(get_admission),
    notifier: Notifier = Depends(get_notifier),
):
    """Cancel a booking. The slot is released immediately; the record is kept."""
    booking = await booking_service.cancel_booking(db, admission, current_user, booking_id)
    await invalidate_room_schedule(booking.room_id)
    await notifier.booking_updated(booking, booking.room.name, current_user.username)
    return booking


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_booking(
    booking_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    booking = await booking_service.delete_booking(db, current_user, booking_id)
    await invalidate_room_schedule(booking.room_id)
    await notifier.booking_deleted(
        booking.id, booking.room_id, booking.room.name, current_user.username
    )
    return BookingDeleteResponse(message="Booking has been deleted", booking_id=booking.id)
