"""
@file: webinar_sync/services/sync_orchestrator.py
@description: Оркестратор синхронизации: один вебинар, полная синхронизация, чанки и отдельные проходы
@dependencies: CredentialsResolver, TokenManager, ZoomApiClient, EnhancementProcessors,
               ParticipantSyncer, InstanceSyncer, ChunkedSyncEngine, SyncHistoryService
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel

from webinar_sync.core.logging import get_logger
from webinar_sync.exceptions import ValidationError, ZoomApiError
from webinar_sync.models import WebinarTimingRead
from webinar_sync.services.chunked_sync_engine import ChunkedSyncEngine, ProgressCallback
from webinar_sync.services.completion_detector import detect_webinar_completion
from webinar_sync.services.credentials_service import CredentialsResolver
from webinar_sync.services.enhancement import (
    EnhancementProcessor,
    HostResolver,
    PanelistResolver,
    SettingsEnhancer,
    TimingEnhancer,
    lift_settings_fields,
    summarize,
    unwrap,
)
from webinar_sync.services.invalidation import InvalidationNotifier, get_invalidation_notifier, query_keys_for
from webinar_sync.services.instance_upserter import InstanceSyncer
from webinar_sync.services.participant_syncer import ParticipantSyncer
from webinar_sync.services.past_event_fetcher import PastEventDataFetcher
from webinar_sync.services.storage import SyncStorage
from webinar_sync.services.sync_history_service import SyncHistoryService, status_for
from webinar_sync.services.token_service import TokenManager
from webinar_sync.services.webinar_service import WebinarService
from webinar_sync.services.zoom_client import ZoomApiClient
from webinar_sync.utils.webinar_records import get_webinar_id

logger = get_logger(__name__)

ENHANCEMENT_TYPES = ("timing", "host", "panelists", "settings")
SUPPORTED_DATA_TYPES = ENHANCEMENT_TYPES + ("participants", "instances")


class ComprehensiveSyncOptions(BaseModel):
    """Какие категории данных включать в полную синхронизацию"""
    include_timing: bool = True
    include_host: bool = True
    include_panelists: bool = True
    include_settings: bool = False
    include_participants: bool = False
    include_instances: bool = False


class SyncOrchestrator:
    """
    Точка входа пайплайна синхронизации.

    Наружу пробрасываются только фатальные ошибки (учетные данные, обмен токена)
    и ошибки валидации запроса. Остальные ошибки отражаются в счетчиках результата.
    """

    def __init__(
        self,
        storage: SyncStorage,
        token_manager: Optional[TokenManager] = None,
        client_factory: Callable[[str], ZoomApiClient] = ZoomApiClient,
        notifier: Optional[InvalidationNotifier] = None,
        now: Optional[datetime] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.storage = storage
        self.credentials = CredentialsResolver(storage)
        self.token_manager = token_manager or TokenManager()
        self.client_factory = client_factory
        self.notifier = notifier or get_invalidation_notifier()
        self.webinars = WebinarService(storage)
        self.history = SyncHistoryService(storage)
        self.now = now
        self._sleep = sleep

    async def open_client(self, user_id: str) -> ZoomApiClient:
        """Учетные данные -> токен -> клиент. Успешный обмен выставляет флаг проверки."""
        credentials = await self.credentials.resolve(user_id)
        token = await self.token_manager.get_token(credentials)
        if credentials.source == "user" and not credentials.is_verified:
            await self.credentials.mark_verified(user_id)
        return self.client_factory(token)

    def _processor(self, data_type: str, client: ZoomApiClient) -> EnhancementProcessor:
        if data_type == "timing":
            return TimingEnhancer(client, now=self.now)
        if data_type == "host":
            return HostResolver(client)
        if data_type == "panelists":
            return PanelistResolver(client)
        if data_type == "settings":
            return SettingsEnhancer(client, sleep=self._sleep)
        raise ValidationError(f"Unknown enhancement type: {data_type}")

    async def _enhance(
        self,
        data_type: str,
        client: ZoomApiClient,
        records: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        results = await self._processor(data_type, client).enhance(records)
        return {"records": unwrap(results), "summary": summarize(results)}

    # Один вебинар

    async def sync_single_webinar(self, user_id: str, webinar_id: str) -> Dict[str, Any]:
        if not webinar_id:
            raise ValidationError("webinar_id is required")
        webinar_id = str(webinar_id)

        client = await self.open_client(user_id)
        logger.info(f"🔄 Single webinar sync {webinar_id} for user {user_id}")

        try:
            webinar = lift_settings_fields(await client.get_webinar(webinar_id))
        except ZoomApiError as e:
            webinar = await self.webinars.get_webinar(user_id, webinar_id)
            if webinar is None:
                await self.history.record(user_id, "single-webinar", status_for(1, 0), 0, str(e))
                return {"success": False, "webinar_id": webinar_id, "error": str(e)}
            logger.warning(f"⚠️ Webinar {webinar_id} detail unavailable, using stored record: {e}")

        completion = detect_webinar_completion(webinar, now=self.now)
        logger.info(f"Webinar {webinar_id}: {completion.stage.value} ({completion.reason})")

        timing: Dict[str, Any] = {"attempted": False, "success": False, "error": None}
        if completion.should_fetch_actual_data:
            past = await PastEventDataFetcher(client).fetch(webinar, completion)
            timing = {"attempted": True, "success": past.success, "error": past.error}
            if past.success:
                webinar = {**webinar, **past.as_webinar_fields()}

        errors = 0 if not timing["attempted"] or timing["success"] else 1

        host = await self._enhance("host", client, [webinar])
        panelists = await self._enhance("panelists", client, [host["records"][0]])
        webinar = panelists["records"][0]
        errors += host["summary"]["failed"] + panelists["summary"]["failed"]

        await self.webinars.upsert_webinars(user_id, [webinar])

        instances = await InstanceSyncer(client, self.storage, now=self.now).sync_webinar(user_id, webinar)

        await self.history.record(
            user_id,
            "single-webinar",
            status_for(errors, 1),
            1 + instances.upserted,
            f"Webinar {webinar_id} synced: stage={completion.stage.value}, {instances.upserted} instances"
        )
        self.notifier.notify(user_id, query_keys_for(["webinars", "instances"]))

        return {
            "success": True,
            "webinar_id": webinar_id,
            "completion": completion.model_dump(mode="json"),
            "timing": timing,
            "host": host["summary"],
            "panelists": panelists["summary"],
            "instances": {"count": instances.upserted, "synthesized": instances.synthesized},
            "errors": errors,
            "api_calls_made": client.calls_made,
        }

    # Полная синхронизация

    async def comprehensive_sync(
        self,
        user_id: str,
        options: Optional[ComprehensiveSyncOptions] = None
    ) -> Dict[str, Any]:
        options = options or ComprehensiveSyncOptions()
        client = await self.open_client(user_id)
        logger.info(f"🚀 Comprehensive sync for user {user_id}: {options.model_dump()}")

        try:
            webinars = await client.list_webinars()
        except ZoomApiError as e:
            await self.history.record(user_id, "comprehensive", status_for(1, 0), 0, f"Webinar list failed: {e}")
            return {"success": False, "error": f"Failed to list webinars: {e}"}

        result: Dict[str, Any] = {"success": True, "webinars": {"fetched": len(webinars)}}
        errors = 0
        query_keys = ["webinars"]

        enabled = {
            "timing": options.include_timing,
            "host": options.include_host,
            "panelists": options.include_panelists,
            "settings": options.include_settings,
        }
        for data_type in ENHANCEMENT_TYPES:
            if not enabled[data_type] or not webinars:
                continue
            enhanced = await self._enhance(data_type, client, webinars)
            webinars = enhanced["records"]
            result[data_type] = enhanced["summary"]
            errors += enhanced["summary"]["failed"]

        result["webinars"]["upserted"] = await self.webinars.upsert_webinars(user_id, webinars)

        if options.include_participants:
            participants = await self._sync_participants(client, user_id, webinars)
            result["participants"] = participants
            errors += participants["errors"]
            query_keys.append("participants")

        if options.include_instances:
            instances = await self._sync_instances(client, user_id, webinars)
            result["instances"] = instances
            errors += instances["errors"]
            query_keys.append("instances")

        items_updated = result["webinars"]["upserted"]
        await self.history.record(
            user_id,
            "comprehensive",
            status_for(errors, items_updated),
            items_updated,
            f"Comprehensive sync: {len(webinars)} webinars, {errors} errors"
        )
        self.notifier.notify(user_id, query_keys_for(query_keys))

        result["errors"] = errors
        result["api_calls_made"] = client.calls_made
        logger.info(f"🎉 Comprehensive sync finished for user {user_id}: {items_updated} webinars, {errors} errors")
        return result

    async def _sync_participants(
        self,
        client: ZoomApiClient,
        user_id: str,
        webinars: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        syncer = ParticipantSyncer(client, self.storage)
        summary = {"webinars": 0, "registrants": 0, "attendees": 0, "errors": 0}
        for webinar in webinars:
            webinar_id = get_webinar_id(webinar)
            if not detect_webinar_completion(webinar, now=self.now).should_fetch_actual_data:
                continue
            results = await syncer.sync_all(user_id, webinar_id)
            summary["webinars"] += 1
            summary["registrants"] += results["registrants"].count
            summary["attendees"] += results["attendees"].count
            summary["errors"] += sum(1 for item in results.values() if not item.success)
        return summary

    async def _sync_instances(
        self,
        client: ZoomApiClient,
        user_id: str,
        webinars: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        syncer = InstanceSyncer(client, self.storage, now=self.now)
        summary = {"webinars": 0, "instances": 0, "errors": 0}
        for webinar in webinars:
            try:
                instances = await syncer.sync_webinar(user_id, webinar)
            except ValidationError as e:
                logger.warning(f"⚠️ Instances of webinar {get_webinar_id(webinar)} rejected: {e}")
                summary["errors"] += 1
                continue
            summary["webinars"] += 1
            summary["instances"] += instances.upserted
            summary["errors"] += len(instances.instances) - instances.upserted
        return summary

    # Чанки

    async def _load_records(
        self,
        client: ZoomApiClient,
        user_id: str,
        webinar_ids: List[str]
    ) -> Dict[str, Any]:
        """Сохраненные записи; отсутствующие в БД запрашиваются из API"""
        records = {get_webinar_id(row): row for row in await self.webinars.get_webinars(user_id, webinar_ids)}
        missing = 0
        for webinar_id in webinar_ids:
            if webinar_id in records:
                continue
            try:
                records[webinar_id] = lift_settings_fields(await client.get_webinar(webinar_id))
            except ZoomApiError as e:
                logger.warning(f"⚠️ Webinar {webinar_id} not found locally or in Zoom: {e}")
                missing += 1
        ordered = [records[webinar_id] for webinar_id in webinar_ids if webinar_id in records]
        return {"records": ordered, "missing": missing}

    def _chunk_handler(self, client: ZoomApiClient, user_id: str):
        async def handle(data_type: str, webinar_ids: List[str]) -> Dict[str, Any]:
            loaded = await self._load_records(client, user_id, webinar_ids)
            records = loaded["records"]
            errors = loaded["missing"]

            if data_type in ENHANCEMENT_TYPES:
                enhanced = await self._enhance(data_type, client, records)
                await self.webinars.upsert_webinars(user_id, enhanced["records"])
                errors += enhanced["summary"]["failed"]
            elif data_type == "participants":
                errors += (await self._sync_participants(client, user_id, records))["errors"]
            elif data_type == "instances":
                errors += (await self._sync_instances(client, user_id, records))["errors"]

            return {
                "processed": len(webinar_ids),
                "successful": len(webinar_ids) - errors,
                "errors": errors,
            }

        return handle

    async def chunked_sync(
        self,
        user_id: str,
        data_types: List[str],
        webinar_ids: List[str],
        chunk_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> Dict[str, Any]:
        if not data_types:
            raise ValidationError("data_types must not be empty")
        unknown = [data_type for data_type in data_types if data_type not in SUPPORTED_DATA_TYPES]
        if unknown:
            raise ValidationError(f"Unsupported data types: {', '.join(unknown)}")
        if not webinar_ids:
            raise ValidationError("webinar_ids must not be empty")

        client = await self.open_client(user_id)
        engine = ChunkedSyncEngine(
            user_id,
            self._chunk_handler(client, user_id),
            notifier=self.notifier,
            sleep=self._sleep,
        )
        result = await engine.run(
            list(data_types),
            [str(webinar_id) for webinar_id in webinar_ids],
            chunk_size=chunk_size,
            on_progress=on_progress,
        )

        succeeded = sum(item.get("successful", 0) for item in result.chunk_results)
        await self.history.record(
            user_id,
            f"chunked-{'+'.join(data_types)}",
            status_for(result.total_errors, succeeded),
            succeeded,
            f"{result.chunks_processed} chunks, {result.chunk_errors} failed chunks, "
            f"{result.webinar_errors} webinar errors"
        )

        payload = result.model_dump()
        payload["errors"] = result.total_errors
        payload["api_calls_made"] = client.calls_made
        return payload

    # Отдельные проходы по сохраненным вебинарам

    async def _stored_records(self, user_id: str, webinar_ids: Optional[List[str]]) -> List[Dict[str, Any]]:
        if webinar_ids:
            return await self.webinars.get_webinars(user_id, [str(webinar_id) for webinar_id in webinar_ids])
        return await self.webinars.list_webinars(user_id)

    async def enhance_stored(
        self,
        user_id: str,
        data_type: str,
        webinar_ids: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """Один процессор дополнения над сохраненными вебинарами"""
        if data_type not in ENHANCEMENT_TYPES:
            raise ValidationError(f"Unknown enhancement type: {data_type}")

        client = await self.open_client(user_id)
        records = await self._stored_records(user_id, webinar_ids)
        if not records:
            return {"success": True, "message": "No webinars to process", "total": 0}

        enhanced = await self._enhance(data_type, client, records)
        summary = enhanced["summary"]
        await self.webinars.upsert_webinars(user_id, enhanced["records"])

        await self.history.record(
            user_id,
            f"enhance-{data_type}",
            status_for(summary["failed"], summary["enhanced"] + summary["skipped"]),
            summary["enhanced"],
            f"{summary['enhanced']} enhanced, {summary['failed']} failed, {summary['skipped']} skipped"
        )
        self.notifier.notify(user_id, query_keys_for([data_type]))

        return {"success": True, **summary, "api_calls_made": client.calls_made}

    async def fetch_timing_data(self, user_id: str, webinar_ids: Optional[List[str]] = None) -> Dict[str, Any]:
        return await self.enhance_stored(user_id, "timing", webinar_ids)

    async def get_actual_timing_data(self, user_id: str, webinar_id: str) -> Dict[str, Any]:
        if not webinar_id:
            raise ValidationError("webinar_id is required")

        row = await self.webinars.get_webinar(user_id, str(webinar_id))
        if row is None:
            return {"success": False, "error": f"Webinar {webinar_id} not found"}

        timing = WebinarTimingRead.model_validate(row)
        return {"success": True, "timing": timing.model_dump(mode="json")}

    async def get_webinar_instances(self, user_id: str, webinar_id: str) -> Dict[str, Any]:
        if not webinar_id:
            raise ValidationError("webinar_id is required")

        client = await self.open_client(user_id)
        loaded = await self._load_records(client, user_id, [str(webinar_id)])
        if not loaded["records"]:
            return {"success": False, "error": f"Webinar {webinar_id} not found"}

        result = await InstanceSyncer(client, self.storage, now=self.now).sync_webinar(user_id, loaded["records"][0])
        self.notifier.notify(user_id, query_keys_for(["instances"]))
        return {
            "success": True,
            "webinar_id": str(webinar_id),
            "instances": result.instances,
            "count": result.upserted,
            "synthesized": result.synthesized,
            "api_calls_made": client.calls_made,
        }

    async def get_instance_participants(self, user_id: str, webinar_id: str, instance_id: str) -> Dict[str, Any]:
        if not webinar_id or not instance_id:
            raise ValidationError("webinar_id and instance_id are required")

        client = await self.open_client(user_id)
        syncer = ParticipantSyncer(client, self.storage)
        try:
            participants = await syncer.fetch_instance_attendees(instance_id)
        except ZoomApiError as e:
            return {"success": False, "error": str(e), "participants": []}

        return {
            "success": True,
            "webinar_id": str(webinar_id),
            "instance_id": instance_id,
            "participants": participants,
            "total": len(participants),
        }

    async def sync_webinar_participants(self, user_id: str, webinar_id: str) -> Dict[str, Any]:
        if not webinar_id:
            raise ValidationError("webinar_id is required")

        client = await self.open_client(user_id)
        results = await ParticipantSyncer(client, self.storage).sync_all(user_id, str(webinar_id))
        errors = sum(1 for item in results.values() if not item.success)
        count = sum(item.count for item in results.values())

        await self.history.record(
            user_id,
            "participants",
            status_for(errors, count),
            count,
            f"Webinar {webinar_id}: {results['registrants'].count} registrants, "
            f"{results['attendees'].count} attendees"
        )
        self.notifier.notify(user_id, query_keys_for(["participants"]))

        return {
            "success": True,
            "webinar_id": str(webinar_id),
            "registrants": results["registrants"].model_dump(),
            "attendees": results["attendees"].model_dump(),
            "errors": errors,
        }
