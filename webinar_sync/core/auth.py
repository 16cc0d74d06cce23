"""
@file: webinar_sync/core/auth.py
@description: JWT аутентификация и модель текущего пользователя
@dependencies: jose, fastapi, pydantic
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict

from webinar_sync.core.settings import settings
from webinar_sync.core.logging import get_logger

# Security scheme для Bearer токенов
security = HTTPBearer()

logger = get_logger(__name__)


class CurrentUser(BaseModel):
    """Модель текущего пользователя из JWT токена"""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    username: Optional[str] = None
    is_active: bool = True


class TokenPayload(BaseModel):
    """Модель payload JWT токена"""
    user_id: str
    username: Optional[str] = None
    exp: Optional[datetime] = None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создает JWT access token

    Args:
        data: Данные для включения в токен
        expires_delta: Время жизни токена

    Returns:
        JWT токен в виде строки
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.api.jwt_access_token_expire_minutes
        )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.api.jwt_secret_key,
        algorithm=settings.api.jwt_algorithm
    )


def verify_token(token: str) -> TokenPayload:
    """
    Проверяет и декодирует JWT токен

    Raises:
        HTTPException: При невалидном токене
    """
    try:
        payload = jwt.decode(
            token,
            settings.api.jwt_secret_key,
            algorithms=[settings.api.jwt_algorithm]
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("user_id") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenPayload(**payload)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """
    Dependency для получения текущего пользователя из JWT токена

    Raises:
        HTTPException: При невалидном токене
    """
    try:
        token_payload = verify_token(credentials.credentials)
        logger.debug(f"JWT токен успешно декодирован: user_id={token_payload.user_id}")

        return CurrentUser(
            user_id=token_payload.user_id,
            username=token_payload.username,
            is_active=True
        )

    except HTTPException:
        logger.warning("JWT токен невалиден")
        raise


async def get_current_active_user(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """Dependency для получения активного пользователя"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )
    return current_user
