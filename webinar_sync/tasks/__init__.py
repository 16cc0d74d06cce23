"""
@file: webinar_sync/tasks/__init__.py
@description: Celery задачи
"""
