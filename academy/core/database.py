from contextlib import asynccontextmanager
from typing import Optional
from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from .errors import ConstraintError
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def normalize_database_url(database_url: str) -> str:
    """Point plain driver URLs at their async drivers"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


class Store:
    """
    Explicitly constructed handle on the relational store.

    Nothing is opened until init() is awaited; close() disposes the engine.
    Components receive the store (or a session from it) instead of reaching
    for a module level connection.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = normalize_database_url(database_url)
        self.echo = echo
        self.engine = None
        self.session_factory = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def sqlite_path(self) -> Optional[str]:
        if not self.is_sqlite:
            return None
        database = make_url(self.database_url).database
        if not database or database == ":memory:":
            return None
        return database

    async def init(self):
        """Create the engine and the schema (idempotent)"""
        if self.engine is not None:
            return

        self.engine = create_async_engine(
            self.database_url,
            echo=self.echo,
            poolclass=NullPool,
            pool_pre_ping=True,
        )

        if self.is_sqlite:
            @event.listens_for(self.engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=True,
        )

        await self.create_tables()

    async def create_tables(self):
        try:
            async with self.engine.begin() as conn:
                # Import all models to ensure they're registered
                from ..models import (
                    Operator, Batch, Student, Instructor,
                    Course, Exam, Result, Finance
                )

                logger.info("Creating database tables...")
                await conn.run_sync(Base.metadata.create_all)
                logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Error creating database tables: {e}")
            raise

    @asynccontextmanager
    async def session(self):
        if self.session_factory is None:
            raise RuntimeError("Store.init() must be awaited before opening sessions")

        async with self.session_factory() as session:
            try:
                yield session
            except Exception as e:
                logger.error(f"Database session error: {e}")
                await session.rollback()
                raise

    async def close(self):
        """Dispose the engine"""
        if self.engine is None:
            return
        try:
            await self.engine.dispose()
            logger.info("Database engine disposed")
        except Exception as e:
            logger.error(f"Error disposing database engine: {e}")
        finally:
            self.engine = None
            self.session_factory = None


async def get_db(request: Request):
    """Dependency to get a session from the application's store"""
    store: Store = request.app.state.store
    async with store.session() as session:
        yield session


async def commit_or_raise(session: AsyncSession, message: str):
    """Commit, translating store integrity failures into ConstraintError"""
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.warning(f"Integrity error: {e.orig}")
        raise ConstraintError(message) from e
