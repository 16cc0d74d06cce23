"""
@file: webinar_sync/api/__init__.py
@description: HTTP API сервиса
"""
