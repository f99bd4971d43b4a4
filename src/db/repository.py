"""
Repository layer: async CRUD operations for the cloud ledger.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import User, GeneratedImage


# ========================
# USERS / CREDITS
# ========================


async def get_user(session: AsyncSession, user_id: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_credits(session: AsyncSession, user_id: str) -> Optional[int]:
    """Current credit balance, or None when the user row does not exist."""
    result = await session.execute(select(User.credits).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    user_id: str,
    email: str,
    credits: int,
) -> User:
    user = User(id=user_id, email=email, credits=credits)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def update_user_email(session: AsyncSession, user_id: str, email: str) -> None:
    await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(email=email, updated_at=datetime.now(timezone.utc))
    )
    await session.commit()


async def set_user_credits(session: AsyncSession, user_id: str, credits: int) -> int:
    """Write an absolute balance and return the stored value."""
    result = await session.execute(
        update(User)
        .where(User.id == user_id)
        .values(credits=credits, updated_at=datetime.now(timezone.utc))
        .returning(User.credits)
    )
    stored = result.scalar_one()
    await session.commit()
    return stored


async def delete_user(session: AsyncSession, user_id: str) -> None:
    await session.execute(delete(User).where(User.id == user_id))
    await session.commit()


# ========================
# GENERATED IMAGES
# ========================


async def create_generated_image(
    session: AsyncSession,
    *,
    user_id: str,
    image_url: str,
    prompt: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> GeneratedImage:
    image = GeneratedImage(
        user_id=user_id,
        image_url=image_url,
        prompt=prompt,
        created_at=created_at or datetime.now(timezone.utc),
    )
    session.add(image)
    await session.commit()
    await session.refresh(image)
    return image


async def list_generated_images_for_user(
    session: AsyncSession,
    user_id: str,
    limit: int = 50,
) -> list[GeneratedImage]:
    result = await session.execute(
        select(GeneratedImage)
        .where(GeneratedImage.user_id == user_id)
        .order_by(GeneratedImage.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_image_keys_for_user(session: AsyncSession, user_id: str) -> set[str]:
    """All object keys already indexed for a user (used by the backfill)."""
    result = await session.execute(
        select(GeneratedImage.image_url).where(GeneratedImage.user_id == user_id)
    )
    return set(result.scalars().all())
