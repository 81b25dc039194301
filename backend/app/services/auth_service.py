"""
Authentication service handling user registration, login and the default
admin bootstrap.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import DuplicateResource, NotFound, Unauthenticated
from app.models.user import User
from app.schemas.user import UserCreate, UserLogin
from app.core.security import hash_password, verify_password, create_access_token
from app.core.logging import get_logger, get_security_logger

logger = get_logger(__name__)
security_log = get_security_logger()


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role})


async def ensure_unique_identity(
    db: AsyncSession,
    email: Optional[str] = None,
    username: Optional[str] = None,
    exclude_id: Optional[int] = None,
) -> None:
    """Raise 409 if the email or username belongs to another user."""
    if email is not None:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if (await db.execute(query)).first():
            raise DuplicateResource("Email already registered", field="email")

    if username is not None:
        query = select(User.id).where(User.username == username)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        if (await db.execute(query)).first():
            raise DuplicateResource("Username already taken", field="username")


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Self-registration always yields role "user"; admins are promoted by an admin.
    """
    try:
        await ensure_unique_identity(db, email=user_data.email, username=user_data.username)
    except DuplicateResource as e:
        logger.warning("registration_failed", reason=e.detail.get("field"), email=user_data.email)
        raise

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=hash_password(user_data.password),
        role="user",
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin, client_ip: Optional[str] = None) -> User:
    """
    Verify credentials and return the user.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        security_log.warning("login_failed", email=login_data.email, ip=client_ip)
        raise Unauthenticated("Invalid email or password")

    security_log.info("login_succeeded", user_id=user.id, username=user.username, ip=client_ip)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user


async def ensure_default_admin(db: AsyncSession) -> Optional[User]:
    """Create the configured admin account if no admin exists yet."""
    settings = get_settings()
    result = await db.execute(select(User).where(User.role == "admin").limit(1))
    existing = result.scalar_one_or_none()
    if existing:
        logger.info("admin_exists", username=existing.username)
        return None

    admin = User(
        username=settings.ADMIN_USERNAME,
        email=settings.ADMIN_EMAIL.lower(),
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        role="admin",
    )
    db.add(admin)
    await db.commit()
    await db.refresh(admin)

    logger.warning("admin_created", username=admin.username, email=admin.email)
    return admin
