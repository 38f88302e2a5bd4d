"""
Database configuration and session management with SQLAlchemy.

Uses async SQLAlchemy for non-blocking database operations.

Design Decisions:
- AsyncSession for non-blocking operations
- Connection pooling with sensible defaults
- Explicit transaction management
- Session-per-request pattern
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

from sqlalchemy import Date, DateTime, Float, Integer, Numeric, String, Text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from finvoice.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class InvoiceRecord(Base):
    """
    A submitted, priced invoice.

    The manual override reason and OCR confidence are kept for audit.
    """
    __tablename__ = "invoices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    # Draft
    invoice_number: Mapped[str] = mapped_column(String(64), index=True)
    buyer_name: Mapped[str] = mapped_column(String(256))
    description: Mapped[str] = mapped_column(Text, default="")
    amount_inr: Mapped[Decimal] = mapped_column(Numeric(18, 2))
    due_date: Mapped[date] = mapped_column(Date, index=True)

    # Lifecycle and verification
    status: Mapped[str] = mapped_column(String(16), index=True)  # uploaded, tokenized, funded, repaid
    ocr_status: Mapped[str] = mapped_column(String(32))
    ocr_confidence: Mapped[float | None] = mapped_column(Float)
    override_reason: Mapped[str | None] = mapped_column(Text)
    document_hash: Mapped[str | None] = mapped_column(String(128), index=True)

    # Pricing
    risk_score: Mapped[str] = mapped_column(String(16))
    risk_reason: Mapped[str] = mapped_column(Text)
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2))
    token_value: Mapped[int] = mapped_column(Integer, default=0)

    # Ledger
    ledger_tx_hash: Mapped[str | None] = mapped_column(String(128))


# Engine and session factory (initialized lazily)
_engine = None
_session_factory = None


def get_engine():
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            str(settings.database_url),
            echo=settings.debug,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
        )
        hosts = settings.database_url.hosts()
        host_info = hosts[0]["host"] if hosts else "unknown"
        logger.info(f"Database engine created for {host_info}")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory for creating database sessions."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Usage:
        async with get_session() as session:
            session.add(record)
            await session.commit()
    """
    factory = get_session_factory()
    session = factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db() -> None:
    """
    Initialize database tables.

    In production, use Alembic migrations instead.
    """
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def close_db() -> None:
    """Close database connections on shutdown."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
    logger.info("Database connections closed")
