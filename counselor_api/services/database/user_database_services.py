# counselor_api/services/database/user_database_services.py
from typing import Optional

from sqlalchemy import exists, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from counselor_api.models.database_models.user import User


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    result = await db.execute(select(User).filter(User.id == user_id))
    return result.scalars().first()


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).filter(User.username == username))
    return result.scalars().first()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).filter(func.lower(User.email) == email.strip().lower()))
    return result.scalars().first()


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    hashed_password: bytes,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    result = await db.execute(select(exists().where(User.username == username)))
    if result.scalar():
        raise ValueError("Username already taken")
    result = await db.execute(select(exists().where(func.lower(User.email) == email.lower())))
    if result.scalar():
        raise ValueError("Email already registered")

    db_user = User(
        username=username,
        email=email.lower(),
        hashed_password=hashed_password,
        first_name=first_name,
        last_name=last_name,
    )
    try:
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        return db_user
    except SQLAlchemyError:
        await db.rollback()
        raise


async def mark_email_verified(db: AsyncSession, user: User) -> User:
    user.email_verified = True
    try:
        await db.commit()
        return user
    except SQLAlchemyError:
        await db.rollback()
        raise
