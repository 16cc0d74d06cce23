"""
@file: webinar_sync/services/action_dispatcher.py
@description: Командный протокол {action, ...params}: выбор обработчика, бюджет времени, структурированные ошибки
@dependencies: SyncOrchestrator, CredentialsService, asyncio
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from fastapi import status
from pydantic import BaseModel, PositiveInt
from pydantic import ValidationError as PydanticValidationError

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import BaseAppException, RunTimeout, UnknownActionError, ValidationError
from webinar_sync.services.credentials_service import CredentialsService
from webinar_sync.services.storage import SyncStorage
from webinar_sync.services.sync_orchestrator import ComprehensiveSyncOptions, SyncOrchestrator

logger = get_logger(__name__)

Handler = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]
ParamsModel = TypeVar("ParamsModel", bound=BaseModel)


class DispatchResult(BaseModel):
    status_code: int = status.HTTP_200_OK
    body: Dict[str, Any]


class ChunkedSyncParams(BaseModel):
    data_types: List[str] = []
    webinar_ids: List[str] = []
    chunk_size: Optional[PositiveInt] = None


def get_param(params: Dict[str, Any], *names: str, default: Any = None) -> Any:
    """Значение параметра по первому найденному имени (snake_case или camelCase)"""
    for name in names:
        if params.get(name) is not None:
            return params[name]
    return default


def validate_params(model: Type[ParamsModel], values: Dict[str, Any]) -> ParamsModel:
    """Проверяет параметры действия; ошибки pydantic превращаются в ValidationError (400)"""
    try:
        return model.model_validate({key: value for key, value in values.items() if value is not None})
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise ValidationError(f"Invalid parameters: {details}") from e


def get_list_param(params: Dict[str, Any], *names: str) -> Optional[List[str]]:
    value = get_param(params, *names)
    if value is None:
        return None
    if isinstance(value, (str, int)):
        return [str(value)]
    if not isinstance(value, list):
        raise ValidationError(f"Parameter {names[0]} must be a list")
    return [str(item) for item in value]


class ActionDispatcher:
    """Единая точка входа для действий синхронизации"""

    def __init__(
        self,
        storage: SyncStorage,
        orchestrator: Optional[SyncOrchestrator] = None,
        credentials_service: Optional[CredentialsService] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.orchestrator = orchestrator or SyncOrchestrator(storage)
        self.credentials_service = credentials_service or CredentialsService(
            storage,
            token_manager=self.orchestrator.token_manager,
            client_factory=self.orchestrator.client_factory,
        )
        self.timeout_seconds = timeout_seconds or settings.sync.operation_timeout_seconds

        self.handlers: Dict[str, Handler] = {
            "sync-single-webinar": self._sync_single_webinar,
            "comprehensive-sync": self._comprehensive_sync,
            "chunked-sync": self._chunked_sync,
            "enhance-host-details": self._enhancer("host"),
            "enhance-panelist-details": self._enhancer("panelists"),
            "enhance-settings": self._enhancer("settings"),
            "enhance-timing": self._enhancer("timing"),
            "get-webinar-instances": self._get_webinar_instances,
            "get-instance-participants": self._get_instance_participants,
            "sync-webinar-participants": self._sync_webinar_participants,
            "fetch-timing-data": self._fetch_timing_data,
            "get-actual-timing-data": self._get_actual_timing_data,
            "save-credentials": self.credentials_service.save_credentials,
            "verify-credentials": self._verify_credentials,
            "check-credentials-status": self._check_credentials_status,
        }

    @property
    def actions(self) -> List[str]:
        return sorted(self.handlers)

    async def dispatch(self, user_id: str, payload: Dict[str, Any]) -> DispatchResult:
        """
        Выполняет действие в пределах бюджета времени.

        Ошибки приложения превращаются в {success: false, error, error_code} с HTTP статусом ошибки.
        """
        action = payload.get("action") if isinstance(payload, dict) else None
        params = {key: value for key, value in (payload or {}).items() if key != "action"}
        log_extra = {"user_id": user_id, "action": action}

        try:
            if not action:
                raise ValidationError("Missing required field: action")
            handler = self.handlers.get(action)
            if handler is None:
                raise UnknownActionError(f"Unknown action: {action}")

            logger.info(f"▶️ Action {action} started", extra=log_extra)
            try:
                body = await asyncio.wait_for(handler(user_id, params), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                raise RunTimeout(f"Operation timed out after {self.timeout_seconds:g} seconds")

        except BaseAppException as e:
            level = logger.warning if e.http_status < 500 else logger.error
            level(f"Action {action} failed: {e.code}: {e}", extra=log_extra)
            return DispatchResult(
                status_code=e.http_status,
                body={"success": False, "error": str(e), "error_code": e.code},
            )

        logger.info(f"✅ Action {action} finished", extra=log_extra)
        return DispatchResult(body=body)

    async def _sync_single_webinar(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.orchestrator.sync_single_webinar(user_id, get_param(params, "webinar_id", "webinarId", "id"))

    async def _comprehensive_sync(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        options = validate_params(ComprehensiveSyncOptions, {
            "include_timing": get_param(params, "include_timing", "includeTiming"),
            "include_host": get_param(params, "include_host", "includeHost"),
            "include_panelists": get_param(params, "include_panelists", "includePanelists"),
            "include_settings": get_param(params, "include_settings", "includeSettings"),
            "include_participants": get_param(params, "include_participants", "includeParticipants"),
            "include_instances": get_param(params, "include_instances", "includeInstances"),
        })
        return await self.orchestrator.comprehensive_sync(user_id, options)

    async def _chunked_sync(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        chunked = validate_params(ChunkedSyncParams, {
            "data_types": get_list_param(params, "data_types", "dataTypes", "data_type", "dataType"),
            "webinar_ids": get_list_param(params, "webinar_ids", "webinarIds"),
            "chunk_size": get_param(params, "chunk_size", "chunkSize", "batch_size", "batchSize"),
        })
        return await self.orchestrator.chunked_sync(
            user_id, chunked.data_types, chunked.webinar_ids, chunk_size=chunked.chunk_size
        )

    def _enhancer(self, data_type: str) -> Handler:
        async def handle(user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
            webinar_ids = get_list_param(params, "webinar_ids", "webinarIds", "webinar_id", "webinarId")
            return await self.orchestrator.enhance_stored(user_id, data_type, webinar_ids)
        return handle

    async def _get_webinar_instances(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.orchestrator.get_webinar_instances(user_id, get_param(params, "webinar_id", "webinarId", "id"))

    async def _get_instance_participants(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.orchestrator.get_instance_participants(
            user_id,
            get_param(params, "webinar_id", "webinarId", "id"),
            get_param(params, "instance_id", "instanceId"),
        )

    async def _sync_webinar_participants(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.orchestrator.sync_webinar_participants(
            user_id, get_param(params, "webinar_id", "webinarId", "id")
        )

    async def _fetch_timing_data(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        webinar_ids = get_list_param(params, "webinar_ids", "webinarIds", "webinar_id", "webinarId")
        return await self.orchestrator.fetch_timing_data(user_id, webinar_ids)

    async def _get_actual_timing_data(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.orchestrator.get_actual_timing_data(
            user_id, get_param(params, "webinar_id", "webinarId", "id")
        )

    async def _verify_credentials(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.credentials_service.verify_credentials(user_id)

    async def _check_credentials_status(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.credentials_service.check_status(user_id)
