"""
Booking service with concurrency-safe room admission.

ADMISSION RULES
===============

A booking occupies the half-open interval [start_time, end_time) of one
room. Two intervals overlap iff

    s1 < e2 AND s2 < e1

so back-to-back bookings (e1 == s2) never conflict. Only `confirmed`
bookings take part; cancelled and completed ones never block. When a booking
is edited, its own row is excluded from the candidate set.

Cheap checks run first, in a fixed order, before anything touches the
bookings table:

  1. end <= start                 -> TimeWindowInvalid
  2. start < now                  -> TimeWindowInvalid
  3. room missing                 -> RoomUnavailable
  4. participants > capacity      -> CapacityExceeded
  5. room inactive                -> RoomUnavailable

CONCURRENCY STRATEGY: Per-room mutual exclusion
===============================================

Problem:
  Two requests for overlapping slots on the same room both run the overlap
  query, both see no conflict, both insert. Result: double booking.

Solution:
  The overlap query, the insert and the COMMIT run inside a per-room guard
  (see services/interfaces). A second admission for the same room waits for
  the first to commit and then sees its row. Admissions for different rooms
  take different guards and proceed in parallel.

  Inside the guard the room row is also read with SELECT ... FOR UPDATE, which
  serializes workers on PostgreSQL even with the in-process guard, and the
  PostgreSQL schema carries an exclusion constraint as the final safety net;
  an insert rejected by it is reported as BookingConflict.

Failure policy:
  Waiting for the guard and the check + write share ADMISSION_TIMEOUT_SECONDS.
  A timeout or a storage error there aborts the attempt with StoreUnavailable.
  Nothing is ever admitted on an inconclusive check. The commit itself is not
  timed: once sent, its own result decides the response.

Edits and cancellations:
  Both take the room guard too. An edit re-reads the stored status after its
  write is flushed, inside the same transaction, so a cancel that committed
  first turns the edit into BookingNotModifiable. A cancel only flips rows
  that are still confirmed.
"""

import asyncio
import time
from contextlib import AsyncExitStack
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import (
    BookingConflict,
    BookingNotModifiable,
    CapacityExceeded,
    Forbidden,
    NotFound,
    RoomUnavailable,
    StoreUnavailable,
    TimeWindowInvalid,
)
from app.core.logging import get_booking_logger, get_logger
from app.core.metrics import admission_latency, record_admission, record_booking_attempt
from app.core.security import CurrentUser
from app.db.base import as_utc
from app.models.booking import Booking
from app.models.room import Room
from app.schemas.booking import BookingCreate, BookingUpdate
from app.services.interfaces.admission import AdmissionStrategy

logger = get_logger(__name__)
booking_log = get_booking_logger()
settings = get_settings()

T = TypeVar("T")

OVERLAP_CONSTRAINT = "excl_bookings_room_no_overlap"


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    """Half-open interval overlap: touching endpoints do not overlap."""
    return s1 < e2 and s2 < e1


def validate_time_window(
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
    check_past: bool = True,
) -> None:
    if end <= start:
        raise TimeWindowInvalid("End time must be after start time")
    if check_past and start < (now or datetime.now(timezone.utc)):
        raise TimeWindowInvalid("Cannot book in the past")


def validate_room_for_booking(room: Room, participants: int, require_active: bool = True) -> None:
    if participants > room.capacity:
        raise CapacityExceeded(
            f"Number of participants ({participants}) exceeds room capacity ({room.capacity})",
            capacity=room.capacity,
            requested=participants,
        )
    if require_active and not room.is_active:
        raise RoomUnavailable("Room is not available for booking")


async def get_room_for_booking(db: AsyncSession, room_id: int) -> Room:
    result = await db.execute(select(Room).where(Room.id == room_id))
    room = result.scalar_one_or_none()
    if not room:
        raise RoomUnavailable(f"Room {room_id} not found")
    return room


async def find_conflicting_booking(
    db: AsyncSession,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> Optional[Booking]:
    """First confirmed booking of the room whose interval overlaps [start, end)."""
    query = select(Booking).where(
        Booking.room_id == room_id,
        Booking.status == "confirmed",
        Booking.start_time < end,
        Booking.end_time > start,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    result = await db.execute(query.order_by(Booking.start_time).limit(1))
    return result.scalars().first()


async def is_room_available(
    db: AsyncSession,
    room_id: int,
    start: datetime,
    end: datetime,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    conflict = await find_conflicting_booking(db, room_id, start, end, exclude_booking_id)
    return conflict is None


async def _lock_room_row(db: AsyncSession, room_id: int) -> None:
    # FOR UPDATE is dropped by SQLite, which serializes writers anyway
    await db.execute(select(Room.id).where(Room.id == room_id).with_for_update())


async def _require_confirmed(db: AsyncSession, booking_id: int) -> None:
    """Re-read the stored status inside the caller's transaction."""
    result = await db.execute(
        select(Booking.status).where(Booking.id == booking_id).with_for_update()
    )
    booking_status = result.scalar_one_or_none()
    if booking_status is None:
        raise NotFound("Booking not found")
    if booking_status != "confirmed":
        raise BookingNotModifiable(f"Booking is {booking_status} and can no longer be modified")


async def _run_guarded(
    db: AsyncSession,
    admission: AdmissionStrategy,
    room_ids: Iterable[int],
    work: Callable[[], Awaitable[T]],
) -> T:
    """
    Take the guard of every room in `room_ids`, run `work`, then commit.

    Guards are taken in ascending room order so two requests touching the
    same pair of rooms cannot deadlock. Acquiring the guards and running
    `work` share ADMISSION_TIMEOUT_SECONDS. The commit is left out of the
    timeout: once it has been sent, only its own outcome says whether the
    write landed.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + settings.ADMISSION_TIMEOUT_SECONDS

    def remaining() -> float:
        return max(deadline - loop.time(), 0)

    async with AsyncExitStack() as stack:
        for room_id in sorted(set(room_ids)):
            await asyncio.wait_for(
                stack.enter_async_context(admission.guard(room_id)), timeout=remaining()
            )
        result = await asyncio.wait_for(work(), timeout=remaining())
        await db.commit()
    return result


async def _admit(
    db: AsyncSession,
    admission: AdmissionStrategy,
    room_id: int,
    start: datetime,
    end: datetime,
    write: Callable[[], Awaitable[Booking]],
    exclude_booking_id: Optional[int] = None,
    also_guard: Optional[int] = None,
) -> Booking:
    """
    Run overlap check + write + commit under the room guard.
    On any failure the session is rolled back and nothing is persisted.
    """

    async def check_and_write() -> Booking:
        await _lock_room_row(db, room_id)
        conflict = await find_conflicting_booking(db, room_id, start, end, exclude_booking_id)
        if conflict is not None:
            raise BookingConflict(conflicting_booking_id=conflict.id)
        return await write()

    room_ids = {room_id} if also_guard is None else {room_id, also_guard}
    started = time.perf_counter()
    try:
        booking = await _run_guarded(db, admission, room_ids, check_and_write)
    except BookingConflict as e:
        await db.rollback()
        record_admission(False)
        record_booking_attempt("conflict")
        logger.info(
            "booking_conflict",
            room_id=room_id,
            start=start.isoformat(),
            end=end.isoformat(),
            conflicting_booking_id=e.detail.get("conflicting_booking_id"),
        )
        raise
    except IntegrityError as e:
        await db.rollback()
        if OVERLAP_CONSTRAINT not in str(e.orig):
            raise
        record_admission(False)
        record_booking_attempt("conflict")
        logger.warning("booking_conflict_constraint", room_id=room_id)
        raise BookingConflict()
    except (asyncio.TimeoutError, OperationalError, InterfaceError) as e:
        await db.rollback()
        record_booking_attempt("unavailable")
        logger.error("admission_store_unavailable", room_id=room_id, error=repr(e))
        raise StoreUnavailable()
    except StoreUnavailable:
        await db.rollback()
        record_booking_attempt("unavailable")
        raise
    except (BookingNotModifiable, NotFound):
        await db.rollback()
        raise

    admission_latency.observe(time.perf_counter() - started)
    record_admission(True)
    record_booking_attempt("admitted")
    return booking


async def _modify(
    db: AsyncSession,
    admission: AdmissionStrategy,
    room_id: int,
    write: Callable[[], Awaitable[None]],
) -> None:
    """Guarded write that needs no overlap check (cancel, purpose edits)."""
    try:
        await _run_guarded(db, admission, {room_id}, write)
    except (asyncio.TimeoutError, OperationalError, InterfaceError) as e:
        await db.rollback()
        logger.error("booking_store_unavailable", room_id=room_id, error=repr(e))
        raise StoreUnavailable()
    except (StoreUnavailable, BookingNotModifiable, NotFound):
        await db.rollback()
        raise


async def _load_booking(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_booking(
    db: AsyncSession,
    admission: AdmissionStrategy,
    current_user: CurrentUser,
    data: BookingCreate,
    now: Optional[datetime] = None,
) -> Booking:
    start = as_utc(data.start_time)
    end = as_utc(data.end_time)

    try:
        validate_time_window(start, end, now)
        room = await get_room_for_booking(db, data.room_id)
        validate_room_for_booking(room, data.number_of_participants)
    except (TimeWindowInvalid, RoomUnavailable, CapacityExceeded) as e:
        record_booking_attempt("rejected")
        logger.info("booking_rejected", reason=e.code, room_id=data.room_id, user_id=current_user.id)
        raise

    async def insert() -> Booking:
        booking = Booking(
            room_id=room.id,
            user_id=current_user.id,
            start_time=start,
            end_time=end,
            purpose=data.purpose,
            number_of_participants=data.number_of_participants,
            status="confirmed",
        )
        db.add(booking)
        await db.flush()
        return booking

    booking = await _admit(db, admission, room.id, start, end, insert)

    booking_log.info(
        "booking_created",
        booking_id=booking.id,
        user_id=current_user.id,
        username=current_user.username,
        room_id=room.id,
        room_name=room.name,
        start=start.isoformat(),
        end=end.isoformat(),
        participants=data.number_of_participants,
    )
    return await _load_booking(db, booking.id)


async def get_booking(db: AsyncSession, current_user: CurrentUser, booking_id: int) -> Booking:
    """Fetch a booking the current user is allowed to see."""
    booking = await _load_booking(db, booking_id)
    if not booking:
        raise NotFound("Booking not found")
    if not current_user.is_admin and booking.user_id != current_user.id:
        raise Forbidden("You do not have permission to access this booking")
    return booking


async def update_booking(
    db: AsyncSession,
    admission: AdmissionStrategy,
    current_user: CurrentUser,
    booking_id: int,
    data: BookingUpdate,
    now: Optional[datetime] = None,
) -> tuple[Booking, int]:
    """
    Apply a partial update. Changing the room or the time window re-runs
    admission with the booking itself excluded from the conflict check.

    Returns the updated booking and the room id it had before the update.
    """
    booking = await get_booking(db, current_user, booking_id)
    if booking.status != "confirmed":
        raise BookingNotModifiable(f"Booking is {booking.status} and can no longer be modified")

    changes = data.model_dump(exclude_unset=True)
    previous_room_id = booking.room_id

    start = as_utc(changes["start_time"]) if changes.get("start_time") else booking.start_time
    end = as_utc(changes["end_time"]) if changes.get("end_time") else booking.end_time
    room_id = changes.get("room_id") or booking.room_id
    participants = changes.get("number_of_participants") or booking.number_of_participants

    start_changed = start != booking.start_time
    window_changed = start_changed or end != booking.end_time
    room_changed = room_id != booking.room_id
    participants_changed = participants != booking.number_of_participants

    if window_changed or room_changed or participants_changed:
        try:
            validate_time_window(start, end, now, check_past=start_changed)
            room = await get_room_for_booking(db, room_id)
            validate_room_for_booking(
                room, participants, require_active=window_changed or room_changed
            )
        except (TimeWindowInvalid, RoomUnavailable, CapacityExceeded) as e:
            record_booking_attempt("rejected")
            logger.info("booking_update_rejected", reason=e.code, booking_id=booking_id)
            raise

    async def write() -> Booking:
        booking.start_time = start
        booking.end_time = end
        booking.room_id = room_id
        booking.number_of_participants = participants
        if "purpose" in changes:
            booking.purpose = changes["purpose"]
        await db.flush()
        # After the flush a concurrent cancel can no longer commit unseen
        await _require_confirmed(db, booking.id)
        return booking

    try:
        if window_changed or room_changed:
            await _admit(
                db, admission, room_id, start, end, write,
                exclude_booking_id=booking.id, also_guard=previous_room_id,
            )
        else:
            await _modify(db, admission, room_id, write)
    except BookingNotModifiable:
        logger.info("booking_update_rejected", reason="booking_not_modifiable", booking_id=booking_id)
        raise

    booking_log.info(
        "booking_updated",
        booking_id=booking.id,
        user_id=current_user.id,
        room_id=room_id,
        start=start.isoformat(),
        end=end.isoformat(),
        readmitted=window_changed or room_changed,
    )
    return await _load_booking(db, booking.id), previous_room_id


async def cancel_booking(
    db: AsyncSession,
    admission: AdmissionStrategy,
    current_user: CurrentUser,
    booking_id: int,
) -> Booking:
    """confirmed -> cancelled. Cancelled bookings are final."""
    booking = await get_booking(db, current_user, booking_id)

    if booking.status == "cancelled":
        raise BookingNotModifiable("Booking is already cancelled")
    if booking.status != "confirmed":
        raise BookingNotModifiable(f"Booking is {booking.status} and cannot be cancelled")

    async def write() -> None:
        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == "confirmed")
            .values(status="cancelled")
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BookingNotModifiable("Booking is already cancelled")

    await _modify(db, admission, booking.room_id, write)

    booking_log.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=current_user.id,
        room_id=booking.room_id,
    )
    return await _load_booking(db, booking.id)


async def delete_booking(db: AsyncSession, current_user: CurrentUser, booking_id: int) -> Booking:
    """Remove a booking. Returns the detached row for notifications."""
    booking = await get_booking(db, current_user, booking_id)

    await db.execute(delete(Booking).where(Booking.id == booking.id))
    await db.commit()

    booking_log.info(
        "booking_deleted",
        booking_id=booking.id,
        user_id=current_user.id,
        room_id=booking.room_id,
    )
    return booking


async def list_bookings_for_user(db: AsyncSession, user_id: int) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.start_time.desc())
    )
    return list(result.scalars().all())


async def list_all_bookings(db: AsyncSession) -> list[Booking]:
    result = await db.execute(select(Booking).order_by(Booking.start_time.desc()))
    return list(result.scalars().all())


async def list_bookings(db: AsyncSession, current_user: CurrentUser) -> list[Booking]:
    """Admins see every booking, everyone else only their own."""
    if current_user.is_admin:
        return await list_all_bookings(db)
    return await list_bookings_for_user(db, current_user.id)


async def get_room_schedule(
    db: AsyncSession,
    room_id: int,
    now: Optional[datetime] = None,
) -> list[Booking]:
    """Confirmed bookings of a room that have not ended yet, earliest first."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(Booking)
        .where(
            Booking.room_id == room_id,
            Booking.status == "confirmed",
            Booking.end_time > now,
        )
        .order_by(Booking.start_time.asc())
    )
    return list(result.scalars().all())
