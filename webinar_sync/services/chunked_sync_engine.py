"""
@file: webinar_sync/services/chunked_sync_engine.py
@description: Последовательная обработка списка вебинаров чанками по типам данных
@dependencies: asyncio, pydantic, InvalidationNotifier
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import ChunkFailure, SyncFatalError, ValidationError
from webinar_sync.services.invalidation import InvalidationNotifier, query_keys_for

logger = get_logger(__name__)

ChunkHandler = Callable[[str, List[str]], Awaitable[Optional[Dict[str, Any]]]]
ProgressCallback = Callable[["ChunkProgress"], Any]


class ChunkProgress(BaseModel):
    """Прогресс после очередного чанка. Сериализуется в camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data_type: str
    current_chunk: int
    total_chunks: int
    processed_webinars: int
    total_webinars: int
    is_complete: bool
    errors: int

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ChunkedSyncResult(BaseModel):
    success: bool
    data_types: List[str]
    total_webinars: int
    chunks_processed: int = 0
    chunk_errors: int = 0
    webinar_errors: int = 0
    error_details: List[str] = []
    progress: List[Dict[str, Any]] = []
    chunk_results: List[Dict[str, Any]] = []

    @property
    def total_errors(self) -> int:
        return self.chunk_errors + self.webinar_errors


def partition(webinar_ids: List[str], chunk_size: int) -> List[List[str]]:
    """Упорядоченные чанки фиксированного размера"""
    if chunk_size < 1:
        raise ValidationError("chunk_size must be a positive integer")
    return [webinar_ids[i:i + chunk_size] for i in range(0, len(webinar_ids), chunk_size)]


class ChunkedSyncEngine:
    """
    Чанки выполняются строго последовательно, типы данных - один за другим.

    Ошибка чанка учитывается в errors и не прерывает запуск. Фатальные ошибки
    (учетные данные, таймаут) пробрасываются. После завершения всех чанков
    отправляется один сигнал инвалидации кэша.
    """

    def __init__(
        self,
        user_id: str,
        chunk_handler: ChunkHandler,
        notifier: Optional[InvalidationNotifier] = None,
        chunk_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.user_id = user_id
        self.chunk_handler = chunk_handler
        self.notifier = notifier
        self.chunk_delay_seconds = (
            settings.sync.chunk_delay_seconds if chunk_delay_seconds is None else chunk_delay_seconds
        )
        self._sleep = sleep

    async def _emit(self, on_progress: Optional[ProgressCallback], progress: ChunkProgress) -> None:
        if on_progress is None:
            return
        outcome = on_progress(progress)
        if inspect.isawaitable(outcome):
            await outcome

    async def run(
        self,
        data_types: List[str],
        webinar_ids: List[str],
        chunk_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> ChunkedSyncResult:
        chunk_size = chunk_size or settings.sync.chunk_size
        webinar_ids = [str(webinar_id) for webinar_id in webinar_ids]
        chunks = partition(webinar_ids, chunk_size)

        result = ChunkedSyncResult(success=True, data_types=list(data_types), total_webinars=len(webinar_ids))
        logger.info(
            f"🚀 Chunked sync for user {self.user_id}: types={data_types}, "
            f"{len(webinar_ids)} webinars, {len(chunks)} chunks of {chunk_size}"
        )

        first_chunk = True
        for data_type in data_types:
            processed = 0
            errors = 0

            for index, chunk in enumerate(chunks):
                if not first_chunk and self.chunk_delay_seconds > 0:
                    await self._sleep(self.chunk_delay_seconds)
                first_chunk = False

                logger.info(f"📦 {data_type}: chunk {index + 1}/{len(chunks)} ({len(chunk)} webinars)")
                try:
                    chunk_result = await self.chunk_handler(data_type, chunk) or {}
                except SyncFatalError:
                    raise
                except Exception as e:
                    failure = ChunkFailure(f"{data_type} chunk {index + 1}/{len(chunks)} failed: {e}")
                    logger.error(f"❌ {failure}")
                    errors += 1
                    result.chunk_errors += 1
                    result.error_details.append(str(failure))
                else:
                    result.webinar_errors += int(chunk_result.get("errors") or 0)
                    result.chunk_results.append({"data_type": data_type, "chunk": index + 1, **chunk_result})

                processed += len(chunk)
                result.chunks_processed += 1

                progress = ChunkProgress(
                    data_type=data_type,
                    current_chunk=index + 1,
                    total_chunks=len(chunks),
                    processed_webinars=processed,
                    total_webinars=len(webinar_ids),
                    is_complete=index == len(chunks) - 1,
                    errors=errors,
                )
                result.progress.append(progress.to_payload())
                await self._emit(on_progress, progress)

        if self.notifier is not None:
            self.notifier.notify(self.user_id, query_keys_for(list(data_types)))

        result.success = result.chunk_errors == 0
        logger.info(
            f"🎉 Chunked sync finished for user {self.user_id}: {result.chunks_processed} chunks, "
            f"{result.chunk_errors} chunk errors, {result.webinar_errors} webinar errors"
        )
        return result
