from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import NotFoundError
from .models import User, UserRole


async def resolve_user(db: AsyncSession, user_id: str, role: UserRole | None = None) -> User:
    """
    Identity lookup. A user with the wrong role is reported exactly like a
    missing one.
    """
    stmt = select(User).where(User.id == user_id)
    if role is not None:
        stmt = stmt.where(User.role == role.value)

    res = await db.execute(stmt)
    user = res.scalar_one_or_none()
    if not user:
        label = role.value.capitalize() if role else "User"
        raise NotFoundError(f"{label} not found")
    return user
