"""
@file: webinar_sync/core/database.py
@description: Настройка подключения к базе данных PostgreSQL через SQLModel
@dependencies: sqlmodel, sqlalchemy, asyncpg
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy import text
from sqlalchemy.pool import NullPool

from .settings import settings
from .logging import get_logger

logger = get_logger(__name__)

# Асинхронный движок для FastAPI и Celery задач
async_database_url = settings.database.url.replace("postgresql://", "postgresql+asyncpg://")
async_engine = create_async_engine(
    async_database_url,
    echo=False,
    pool_pre_ping=True,
    pool_recycle=300,
)

# Фабрика сессий
async_session_factory = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def create_tables() -> None:
    """
    Создание всех таблиц в базе данных.
    Используется только для начальной инициализации.
    """
    # Импорт регистрирует таблицы в metadata
    from webinar_sync import models  # noqa: F401

    logger.info("Creating database tables...")
    async with async_engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created successfully")


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Получить асинхронную сессию базы данных для FastAPI"""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_database_connection() -> bool:
    """Проверка подключения к базе данных"""
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            logger.info("Database connection successful")
            return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


class DatabaseManager:
    """Менеджер базы данных для управления подключениями"""

    def __init__(self):
        self.async_engine = async_engine
        self.logger = get_logger(self.__class__.__name__)

    async def startup(self) -> None:
        """Инициализация при запуске приложения"""
        self.logger.info("Initializing database connection...")

        max_retries = 10
        retry_delay = 2

        for attempt in range(max_retries):
            self.logger.info(f"Database connection attempt {attempt + 1}/{max_retries}")
            is_connected = await check_database_connection()

            if is_connected:
                await create_tables()
                self.logger.info("Database manager initialized successfully")
                return

            if attempt < max_retries - 1:
                self.logger.warning(f"Database connection failed, retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 1.5, 10)  # Exponential backoff

        self.logger.error("Failed to connect to database after all retries")
        raise ConnectionError("Failed to connect to database after all retries")

    async def shutdown(self) -> None:
        """Закрытие соединений при остановке приложения"""
        self.logger.info("Closing database connections...")
        await self.async_engine.dispose()
        self.logger.info("Database connections closed")


# Глобальный экземпляр менеджера базы данных
db_manager = DatabaseManager()


@asynccontextmanager
async def task_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Сессия для Celery задач.

    Каждая задача выполняется в собственном event loop (asyncio.run), поэтому
    используется отдельный движок без пула соединений.
    """
    engine = create_async_engine(async_database_url, echo=False, poolclass=NullPool)
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session
    finally:
        await engine.dispose()
