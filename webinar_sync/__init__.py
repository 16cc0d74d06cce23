"""
@file: webinar_sync/__init__.py
@description: Пайплайн синхронизации и обогащения вебинаров Zoom
"""

__version__ = "1.0.0"
