"""
@file: webinar_sync/tasks/sync_tasks.py
@description: Celery задачи для фоновой синхронизации вебинаров
@dependencies: celery_app, SyncOrchestrator, SqlStorage
"""
import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional

from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded
from pydantic import ValidationError as PydanticValidationError

from webinar_sync.core.database import task_session
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import BaseAppException, RunTimeout, ValidationError
from webinar_sync.services.chunked_sync_engine import ChunkProgress
from webinar_sync.services.storage import SqlStorage
from webinar_sync.services.sync_orchestrator import ComprehensiveSyncOptions, SyncOrchestrator

logger = logging.getLogger(__name__)


async def _with_timeout(run: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
    """Весь запуск синхронизации ограничен SYNC_BACKGROUND_TIMEOUT_SECONDS"""
    timeout_seconds = settings.sync.background_timeout_seconds
    try:
        return await asyncio.wait_for(run, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise RunTimeout(f"Sync run timed out after {timeout_seconds:g} seconds")


async def _run_comprehensive(user_id: str, options: ComprehensiveSyncOptions) -> Dict[str, Any]:
    async with task_session() as session:
        orchestrator = SyncOrchestrator(SqlStorage(session))
        result = await orchestrator.comprehensive_sync(user_id, options)
        await orchestrator.notifier.drain()
        return result


async def _run_chunked(
    user_id: str,
    data_types: List[str],
    webinar_ids: List[str],
    chunk_size: Optional[int],
    on_progress
) -> Dict[str, Any]:
    async with task_session() as session:
        orchestrator = SyncOrchestrator(SqlStorage(session))
        result = await orchestrator.chunked_sync(
            user_id, data_types, webinar_ids, chunk_size=chunk_size, on_progress=on_progress
        )
        await orchestrator.notifier.drain()
        return result


def _error_result(error: BaseAppException) -> Dict[str, Any]:
    return {"success": False, "statistics": None, "error": str(error), "error_code": error.code}


@shared_task(bind=True, name="run_comprehensive_sync_task")
def run_comprehensive_sync_task(self, user_id: str, options: Optional[Dict[str, Any]] = None):
    """
    Celery задача полной синхронизации вебинаров пользователя.
    Args:
        user_id: ID пользователя
        options: флаги include_* (см. ComprehensiveSyncOptions)
    Returns:
        dict: результат синхронизации
    """
    logger.info(f"[Celery] Запуск полной синхронизации для user_id={user_id}, options={options}")
    try:
        try:
            sync_options = ComprehensiveSyncOptions(**(options or {}))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid sync options: {e}") from e
        result = asyncio.run(_with_timeout(_run_comprehensive(user_id, sync_options)))
    except SoftTimeLimitExceeded:
        logger.error(f"[Celery] Полная синхронизация превысила лимит времени для user_id={user_id}")
        return _error_result(RunTimeout("Sync run exceeded the task time limit"))
    except BaseAppException as e:
        logger.error(f"[Celery] Ошибка полной синхронизации: {e.code}: {e}")
        return _error_result(e)

    logger.info(f"[Celery] Полная синхронизация завершена для user_id={user_id}")
    return {"success": result.get("success", True), "statistics": result, "error": result.get("error")}


@shared_task(bind=True, name="run_chunked_sync_task")
def run_chunked_sync_task(
    self,
    user_id: str,
    data_types: List[str],
    webinar_ids: List[str],
    chunk_size: Optional[int] = None
):
    """
    Celery задача синхронизации по чанкам.

    После каждого чанка состояние задачи обновляется на PROGRESS с текущим прогрессом.
    Args:
        user_id: ID пользователя
        data_types: типы данных для синхронизации
        webinar_ids: ID вебинаров
        chunk_size: размер чанка (по умолчанию из настроек)
    Returns:
        dict: результат синхронизации
    """
    def on_progress(progress: ChunkProgress) -> None:
        self.update_state(state="PROGRESS", meta=progress.to_payload())

    logger.info(
        f"[Celery] Запуск синхронизации по чанкам для user_id={user_id}, "
        f"data_types={data_types}, webinars={len(webinar_ids)}"
    )
    try:
        result = asyncio.run(_with_timeout(
            _run_chunked(user_id, data_types, webinar_ids, chunk_size, on_progress)
        ))
    except SoftTimeLimitExceeded:
        logger.error(f"[Celery] Синхронизация по чанкам превысила лимит времени для user_id={user_id}")
        return _error_result(RunTimeout("Sync run exceeded the task time limit"))
    except BaseAppException as e:
        logger.error(f"[Celery] Ошибка синхронизации по чанкам: {e.code}: {e}")
        return _error_result(e)

    logger.info(f"[Celery] Синхронизация по чанкам завершена для user_id={user_id}: {result['errors']} ошибок")
    return {"success": True, "statistics": result, "error": None}
