"""
Admin-only user management endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import CurrentUser, require_admin
from app.db.session import get_db
from app.schemas.booking import BookingResponse
from app.schemas.room import MessageResponse
from app.schemas.user import UserListResponse, UserResponse, UserStats, UserUpdate
from app.services import user_service

router = APIRouter(prefix="/users", tags=["Users"], dependencies=[Depends(require_admin)])


@router.get("/", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    users, total, pages = await user_service.list_users(db, page, limit)
    return UserListResponse(users=users, count=len(users), total=total, page=page, pages=pages)


@router.get("/stats/overview", response_model=UserStats)
async def user_stats(db: AsyncSession = Depends(get_db)):
    return await user_service.get_user_stats(db)


@router.get("/{user_id}")
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    """A user together with all of their bookings."""
    user, bookings = await user_service.get_user_with_bookings(db, user_id)
    return {
        "user": UserResponse.model_validate(user),
        "bookings": {
            "count": len(bookings),
            "data": [BookingResponse.model_validate(b) for b in bookings],
        },
    }


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, user_data: UserUpdate, db: AsyncSession = Depends(get_db)):
    return await user_service.update_user(db, user_id, user_data)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user and all of their bookings. Admins cannot delete themselves."""
    removed = await user_service.delete_user(db, current_user, user_id)
    return MessageResponse(message=f"User and {removed} booking(s) deleted")
