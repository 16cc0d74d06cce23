"""
@file: webinar_sync/utils/__init__.py
@description: Вспомогательные функции
"""
