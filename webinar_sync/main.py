"""
@file: webinar_sync/main.py
@description: Главное FastAPI приложение
@dependencies: fastapi, uvicorn
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webinar_sync.core.settings import settings
from webinar_sync.core.logging import setup_logging, get_logger
from webinar_sync.core.database import db_manager, check_database_connection
from webinar_sync.api.v1.api import api_router


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    setup_logging()
    logger.info("Starting Webinar Sync service...")

    config_info = settings.log_configuration()
    logger.info("Application configuration loaded", extra={"extra_data": config_info})

    await db_manager.startup()
    logger.info("Service started successfully")

    yield

    logger.info("Shutting down service...")
    await db_manager.shutdown()
    logger.info("Service stopped")


app = FastAPI(
    title="Webinar Sync",
    description="""
    ## Сервис синхронизации вебинаров Zoom

    * **Синхронизация** - один вебинар, полная синхронизация, синхронизация по чанкам
    * **Обогащение** - фактическое время, ведущий, панелисты, детальные настройки
    * **Участники и сессии** - регистранты, посетители, сессии повторяющихся вебинаров
    * **Учетные данные** - сохранение и проверка Server-to-Server OAuth приложения Zoom

    ### Технологии:
    - FastAPI + SQLModel + PostgreSQL
    - Celery + Redis для фоновых задач
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.api.prefix}/openapi.json",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "general",
            "description": "Общие операции: health check",
        },
        {
            "name": "zoom",
            "description": "Командный протокол {action, ...params}",
        },
        {
            "name": "sync",
            "description": "Фоновая синхронизация: запуск, статус, история",
        },
    ]
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене настроить конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["general"], summary="Главная страница API")
async def root():
    return {
        "service": "Webinar Sync",
        "version": "1.0.0",
        "status": "running",
        "docs_url": "/docs",
        "openapi_url": f"{settings.api.prefix}/openapi.json"
    }


@app.get("/health", tags=["general"], summary="Проверка состояния сервиса")
async def health_check():
    """
    Health check endpoint для мониторинга.

    Проверяет доступность базы данных.
    """
    db_status = await check_database_connection()
    return {
        "status": "healthy" if db_status else "unhealthy",
        "database": "connected" if db_status else "disconnected",
        "service": "Webinar Sync",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


app.include_router(api_router, prefix=settings.api.prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "webinar_sync.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.debug,
        log_level=settings.logging.level.lower()
    )
