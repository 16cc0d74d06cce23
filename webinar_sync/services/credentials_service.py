"""
@file: webinar_sync/services/credentials_service.py
@description: Загрузка, проверка и сохранение учетных данных Zoom пользователя
@dependencies: CredentialsResolver, TokenManager, ZoomApiClient, SyncStorage
"""

from typing import Any, Callable, Dict, Optional

from webinar_sync.core.logging import get_logger
from webinar_sync.core.settings import settings
from webinar_sync.exceptions import CredentialsMissing, ValidationError, ZoomApiError
from webinar_sync.models import CREDENTIALS_TABLE, CredentialsStatus, ZoomCredentials
from webinar_sync.services.storage import SyncStorage
from webinar_sync.services.token_service import TokenManager
from webinar_sync.services.zoom_client import ZoomApiClient
from webinar_sync.utils.datetime_utils import utc_now

logger = get_logger(__name__)

# Код ошибки Zoom при отсутствии нужных OAuth scopes
MISSING_SCOPES_CODE = 4711


class CredentialsResolver:
    """
    Определяет учетные данные для пользователя.

    Сначала ищет сохраненные учетные данные пользователя, затем берет
    учетные данные процесса из настроек (операторские / тестовые аккаунты).
    """

    def __init__(self, storage: SyncStorage, zoom_settings=None):
        self.storage = storage
        self.zoom_settings = zoom_settings or settings.zoom

    async def _load_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        rows = await self.storage.select(CREDENTIALS_TABLE, {"user_id": user_id})
        return rows[0] if rows else None

    async def resolve(self, user_id: str) -> ZoomCredentials:
        """
        Raises:
            CredentialsMissing: Ни один источник не дал полную тройку
        """
        row = await self._load_row(user_id)
        if row:
            credentials = ZoomCredentials(
                account_id=row.get("account_id") or "",
                client_id=row.get("client_id") or "",
                client_secret=row.get("client_secret") or "",
                is_verified=bool(row.get("is_verified")),
                source="user",
            )
            if credentials.is_complete:
                return credentials
            logger.warning(f"Stored credentials for user {user_id} are incomplete, trying defaults")

        defaults = ZoomCredentials(
            account_id=self.zoom_settings.account_id,
            client_id=self.zoom_settings.client_id,
            client_secret=self.zoom_settings.client_secret,
            source="default",
        )
        if defaults.is_complete:
            logger.info(f"Using process-wide Zoom credentials for user {user_id}")
            return defaults

        raise CredentialsMissing("Zoom credentials not found. Please connect your Zoom account first.")

    async def is_verified(self, user_id: str) -> bool:
        """Флаг справочный: ошибка обмена на токен все равно приоритетнее"""
        row = await self._load_row(user_id)
        return bool(row and row.get("is_verified"))

    async def mark_verified(self, user_id: str) -> None:
        row = await self._load_row(user_id)
        if not row:
            return
        await self.storage.upsert(
            CREDENTIALS_TABLE,
            [{
                "user_id": user_id,
                "account_id": row["account_id"],
                "client_id": row["client_id"],
                "client_secret": row["client_secret"],
                "is_verified": True,
                "last_verified_at": utc_now(),
            }],
            conflict_columns=["user_id"]
        )

    async def save(self, user_id: str, credentials: ZoomCredentials, verified: bool = False) -> None:
        await self.storage.upsert(
            CREDENTIALS_TABLE,
            [{
                "user_id": user_id,
                "account_id": credentials.account_id,
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "is_verified": verified,
                "last_verified_at": utc_now() if verified else None,
            }],
            conflict_columns=["user_id"]
        )

    async def status(self, user_id: str) -> CredentialsStatus:
        row = await self._load_row(user_id)
        return CredentialsStatus(
            has_credentials=row is not None,
            is_verified=bool(row and row.get("is_verified")),
            last_verified_at=row.get("last_verified_at") if row else None,
        )


class CredentialsService:
    """Действия save / verify / status над учетными данными"""

    def __init__(
        self,
        storage: SyncStorage,
        token_manager: Optional[TokenManager] = None,
        client_factory: Callable[[str], ZoomApiClient] = ZoomApiClient
    ):
        self.resolver = CredentialsResolver(storage)
        self.token_manager = token_manager or TokenManager()
        self.client_factory = client_factory

    async def _probe(self, credentials: ZoomCredentials) -> Dict[str, Any]:
        """Обмен на токен и проверка scopes через /users/me"""
        token = await self.token_manager.get_token(credentials)
        client = self.client_factory(token)
        try:
            return await client.get_current_user()
        except ZoomApiError as e:
            if e.payload.get("code") == MISSING_SCOPES_CODE or "scopes" in (e.payload.get("message") or ""):
                raise ValidationError("Missing required OAuth scopes in your Zoom App.") from e
            raise ValidationError(f"API scope test failed: {e}") from e

    async def save_credentials(self, user_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        credentials = ZoomCredentials(
            account_id=(params.get("account_id") or "").strip(),
            client_id=(params.get("client_id") or "").strip(),
            client_secret=(params.get("client_secret") or "").strip(),
        )
        if not credentials.is_complete:
            raise ValidationError(
                "Missing required credentials: account_id, client_id, and client_secret are required"
            )

        me = await self._probe(credentials)
        await self.resolver.save(user_id, credentials, verified=True)
        logger.info(f"✅ Zoom credentials verified and saved for user {user_id}")

        return {
            "success": True,
            "message": "Zoom credentials verified and saved successfully",
            "user_email": me.get("email"),
        }

    async def verify_credentials(self, user_id: str) -> Dict[str, Any]:
        credentials = await self.resolver.resolve(user_id)
        me = await self._probe(credentials)
        if credentials.source == "user":
            await self.resolver.mark_verified(user_id)

        return {
            "success": True,
            "message": "Zoom API credentials and scopes validated successfully",
            "user": {
                "email": me.get("email"),
                "account_id": me.get("account_id"),
            },
        }

    async def check_status(self, user_id: str) -> Dict[str, Any]:
        status = await self.resolver.status(user_id)
        return {
            "hasCredentials": status.has_credentials,
            "isVerified": status.is_verified,
            "lastVerified": status.last_verified_at.isoformat() if status.last_verified_at else None,
        }
