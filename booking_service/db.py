from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from .config import BOOKING_DB, SQL_ECHO

if not BOOKING_DB:
    raise RuntimeError("BOOKING_DB environment variable is not set")

engine = create_async_engine(BOOKING_DB, echo=SQL_ECHO)

SessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)

Base = declarative_base()
