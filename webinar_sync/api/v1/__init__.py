"""
@file: webinar_sync/api/v1/__init__.py
@description: API v1
"""
