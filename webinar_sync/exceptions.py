"""
@file: webinar_sync/exceptions.py
@description: Кастомные исключения пайплайна синхронизации вебинаров
@dependencies: fastapi
"""

from fastapi import HTTPException, status


class BaseAppException(Exception):
    """Базовое исключение приложения"""

    code: str = "internal_error"
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class ValidationError(BaseAppException):
    """Ошибка валидации данных (фатальна для одной записи или запроса)"""

    code = "validation_error"
    http_status = status.HTTP_400_BAD_REQUEST


class UnknownActionError(ValidationError):
    """Неизвестное действие в командном протоколе"""

    code = "unknown_action"


class StorageError(BaseAppException):
    """Ошибка хранилища"""

    code = "storage_error"


# Фатальные ошибки: прерывают весь запуск синхронизации

class SyncFatalError(BaseAppException):
    """Фатальная ошибка синхронизации, возвращается вызывающей стороне"""


class CredentialsMissing(SyncFatalError):
    """Не найдены учетные данные ни у пользователя, ни в настройках процесса"""

    code = "credentials_missing"
    http_status = status.HTTP_401_UNAUTHORIZED


class BadCredentials(SyncFatalError):
    """Неверные client_id / client_secret"""

    code = "bad_credentials"
    http_status = status.HTTP_401_UNAUTHORIZED


class InsufficientPermissions(SyncFatalError):
    """Неверный account_id или недостаточно прав приложения"""

    code = "insufficient_permissions"
    http_status = status.HTTP_403_FORBIDDEN


class TokenExchangeFailed(SyncFatalError):
    """Любая другая ошибка обмена учетных данных на токен"""

    code = "token_exchange_failed"
    http_status = status.HTTP_502_BAD_GATEWAY


class RunTimeout(SyncFatalError):
    """Превышен бюджет времени на операцию"""

    code = "run_timeout"
    http_status = status.HTTP_504_GATEWAY_TIMEOUT


# Мягкие ошибки: поглощаются на границе компонента

class SoftFetchFailure(BaseAppException):
    """Не удалось получить дополнительные данные для одной записи"""

    code = "soft_fetch_failure"
    http_status = status.HTTP_502_BAD_GATEWAY


class ZoomApiError(SoftFetchFailure):
    """Ошибка вызова Zoom API (не-2xx ответ или сетевая ошибка)"""

    code = "zoom_api_error"

    def __init__(self, message: str, status_code: int = None, payload: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}


class ChunkFailure(BaseAppException):
    """Ошибка обработки одного чанка"""

    code = "chunk_failure"


# HTTP исключения для FastAPI

class ValidationHTTPException(HTTPException):
    """HTTP исключение - ошибка валидации"""
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
