"""
@file: webinar_sync/services/__init__.py
@description: Компоненты пайплайна синхронизации вебинаров
"""
