"""SQLAlchemy database setup"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from typing import AsyncGenerator
from datetime import datetime, timezone

from utils.config import DATABASE_URL

engine = create_async_engine(DATABASE_URL, echo=False)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def init_db():
    """Create all tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a DB session"""
    async with async_session_maker() as session:
        yield session


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the DB"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
