"""
Admin-side user management: listing, stats, profile edits and deletion.
"""

import math
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden
from app.core.logging import get_logger, get_security_logger
from app.core.security import CurrentUser
from app.models.booking import Booking
from app.models.user import User
from app.schemas.user import UserUpdate
from app.services.auth_service import ensure_unique_identity, get_user
from app.services.booking_service import list_bookings_for_user

logger = get_logger(__name__)
security_log = get_security_logger()


async def list_users(db: AsyncSession, page: int = 1, limit: int = 10) -> tuple[list[User], int, int]:
    """Newest first. Returns (users, total, pages)."""
    total = (await db.execute(select(func.count()).select_from(User))).scalar()
    result = await db.execute(
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total, math.ceil(total / limit)


async def get_user_with_bookings(db: AsyncSession, user_id: int) -> tuple[User, list[Booking]]:
    user = await get_user(db, user_id)
    bookings = await list_bookings_for_user(db, user.id)
    return user, bookings


async def update_user(db: AsyncSession, user_id: int, user_data: UserUpdate) -> User:
    user = await get_user(db, user_id)
    changes = {k: v for k, v in user_data.model_dump(exclude_unset=True).items() if v is not None}

    await ensure_unique_identity(
        db,
        email=changes.get("email"),
        username=changes.get("username"),
        exclude_id=user.id,
    )
    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)

    logger.info("user_updated", user_id=user.id, fields=sorted(changes))
    return user


async def delete_user(db: AsyncSession, current_user: CurrentUser, user_id: int) -> int:
    """
    Delete a user together with all their bookings.
    Returns the number of bookings removed.
    """
    user = await get_user(db, user_id)
    if user.id == current_user.id:
        raise Forbidden("You cannot delete your own account")

    result = await db.execute(delete(Booking).where(Booking.user_id == user.id))
    await db.execute(delete(User).where(User.id == user.id))
    await db.commit()

    security_log.warning(
        "user_deleted",
        user_id=user.id,
        username=user.username,
        deleted_by=current_user.id,
        bookings_removed=result.rowcount,
    )
    return result.rowcount


async def get_user_stats(db: AsyncSession) -> dict[str, int]:
    week_ago = datetime.now(timezone.utc) - timedelta(days=7)

    async def count(*criteria) -> int:
        query = select(func.count()).select_from(User)
        if criteria:
            query = query.where(*criteria)
        return (await db.execute(query)).scalar()

    return {
        "total_users": await count(),
        "total_admins": await count(User.role == "admin"),
        "total_regular_users": await count(User.role == "user"),
        "recent_users": await count(User.created_at >= week_ago),
    }
