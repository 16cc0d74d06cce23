"""
@file: webinar_sync/api/v1/zoom.py
@description: Эндпоинт командного протокола {action, ...params}
@dependencies: fastapi
"""

from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from webinar_sync.api.dependencies import CurrentUserDep, DispatcherDep
from webinar_sync.core.auth import CurrentUser
from webinar_sync.core.logging import get_logger
from webinar_sync.services.action_dispatcher import ActionDispatcher

logger = get_logger(__name__)
router = APIRouter()


@router.post("/zoom-api", summary="Выполнить действие синхронизации")
async def zoom_api(
    payload: Dict[str, Any] = Body(..., examples=[{"action": "sync-single-webinar", "webinar_id": "81234567890"}]),
    current_user: CurrentUser = CurrentUserDep,
    dispatcher: ActionDispatcher = DispatcherDep
):
    """
    Единая точка входа для действий синхронизации вебинаров.

    Поле `action` выбирает операцию, остальные поля передаются ей как параметры.
    Ошибки возвращаются как `{success: false, error, error_code}` с соответствующим HTTP статусом.

    **Требует аутентификации через JWT токен.**
    """
    result = await dispatcher.dispatch(current_user.user_id, payload)
    return JSONResponse(status_code=result.status_code, content=jsonable_encoder(result.body))


@router.get("/zoom-api/actions", summary="Список поддерживаемых действий")
async def list_actions(
    current_user: CurrentUser = CurrentUserDep,
    dispatcher: ActionDispatcher = DispatcherDep
):
    return {"actions": dispatcher.actions}
