"""
@file: webinar_sync/api/v1/sync.py
@description: API эндпоинты для фоновой синхронизации вебинаров через Celery
@dependencies: fastapi, pydantic, celery
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from celery.result import AsyncResult
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from webinar_sync.api.dependencies import CurrentUserDep, StorageDep
from webinar_sync.celery_app import celery_app
from webinar_sync.core.auth import CurrentUser
from webinar_sync.core.logging import get_logger
from webinar_sync.exceptions import ValidationHTTPException
from webinar_sync.models import SyncHistoryRead
from webinar_sync.services.storage import SyncStorage
from webinar_sync.services.sync_history_service import SyncHistoryService
from webinar_sync.services.sync_orchestrator import SUPPORTED_DATA_TYPES

logger = get_logger(__name__)
router = APIRouter()


# Pydantic модели для API

class ChunkedSyncTrigger(BaseModel):
    """Параметры фоновой синхронизации по чанкам"""
    data_types: List[str] = Field(..., min_length=1, description="Типы данных: timing, host, panelists, settings, participants, instances")
    webinar_ids: List[str] = Field(..., min_length=1, description="ID вебинаров")
    chunk_size: Optional[int] = Field(None, ge=1, description="Размер чанка")


class ComprehensiveSyncTrigger(BaseModel):
    """Параметры фоновой полной синхронизации"""
    include_timing: bool = True
    include_host: bool = True
    include_panelists: bool = True
    include_settings: bool = False
    include_participants: bool = False
    include_instances: bool = False


# API Endpoints

@router.post("/chunked", response_model=Dict[str, Any], summary="Запустить синхронизацию по чанкам")
async def start_chunked_sync(
    sync_params: ChunkedSyncTrigger,
    current_user: CurrentUser = CurrentUserDep
):
    """
    Запустить синхронизацию по чанкам в фоне через Celery.

    Прогресс доступен через `/sync/status/{task_id}` (состояние PROGRESS).

    **Требует аутентификации через JWT токен.**
    """
    unknown = [data_type for data_type in sync_params.data_types if data_type not in SUPPORTED_DATA_TYPES]
    if unknown:
        raise ValidationHTTPException(detail=f"Unsupported data types: {', '.join(unknown)}")

    from webinar_sync.tasks.sync_tasks import run_chunked_sync_task

    task = run_chunked_sync_task.delay(
        user_id=current_user.user_id,
        data_types=sync_params.data_types,
        webinar_ids=sync_params.webinar_ids,
        chunk_size=sync_params.chunk_size,
    )
    logger.info(f"Celery задача синхронизации по чанкам отправлена: task_id={task.id}")

    return {
        "success": True,
        "task_id": task.id,
        "user_id": current_user.user_id,
        "started_at": datetime.now(timezone.utc).isoformat(),
        "status": "PENDING"
    }


@router.post("/comprehensive", response_model=Dict[str, Any], summary="Запустить полную синхронизацию")
async def start_comprehensive_sync(
    sync_params: ComprehensiveSyncTrigger,
    current_user: CurrentUser = CurrentUserDep
):
    """
    Запустить полную синхронизацию вебинаров пользователя в фоне через Celery.

    **Требует аутентификации через JWT токен.**
    """
    from webinar_sync.tasks.sync_tasks import run_comprehensive_sync_task

    task = run_comprehensive_sync_task.delay(user_id=current_user.user_id, options=sync_params.model_dump())
    logger.info(f"Celery задача полной синхронизации отправлена: task_id={task.id}")

    return {
        "success": True,
        "task_id": task.id,
        "user_id": current_user.user_id,
        "started_at": datetime.now(timezone.utc).isoformat(),
        "status": "PENDING"
    }


@router.get("/status/{task_id}", response_model=Dict[str, Any], summary="Статус задачи Celery")
async def get_task_status(
    task_id: str,
    current_user: CurrentUser = CurrentUserDep
):
    """
    Получить статус задачи синхронизации. Результат из бекенда Celery.

    **Требует аутентификации через JWT токен.**
    """
    try:
        task_result = AsyncResult(task_id, app=celery_app)
        info = task_result.info
        if isinstance(info, Exception):
            info = {"error": str(info)}

        return {
            "task_id": task_id,
            "status": task_result.status,
            "result": task_result.result if task_result.successful() else None,
            "info": info,
            "user_id": current_user.user_id
        }

    except Exception as e:
        logger.error(f"Ошибка получения статуса задачи: {e}")
        raise HTTPException(status_code=500, detail=f"Ошибка получения статуса задачи: {str(e)}")


@router.get("/history", response_model=List[SyncHistoryRead], summary="История синхронизаций")
async def get_sync_history(
    limit: int = Query(50, ge=1, le=500, description="Максимум записей"),
    current_user: CurrentUser = CurrentUserDep,
    storage: SyncStorage = StorageDep
):
    """
    Журнал синхронизаций текущего пользователя, новые записи первыми.

    **Требует аутентификации через JWT токен.**
    """
    return await SyncHistoryService(storage).list_for_user(current_user.user_id, limit=limit)
