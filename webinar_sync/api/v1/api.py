"""
@file: webinar_sync/api/v1/api.py
@description: Основной API роутер v1
@dependencies: fastapi
"""

from fastapi import APIRouter

from webinar_sync.api.v1 import zoom, sync

# Основной роутер для API v1
api_router = APIRouter()

api_router.include_router(
    zoom.router,
    tags=["zoom"],
)

api_router.include_router(
    sync.router,
    prefix="/sync",
    tags=["sync"],
)
