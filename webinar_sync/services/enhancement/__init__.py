"""
@file: webinar_sync/services/enhancement/__init__.py
@description: Процессоры дополнения записей вебинаров (host, panelists, settings, timing)
"""

from .result import Enhanced, EnhancementStatus, summarize, unwrap
from .base import EnhancementProcessor
from .host_resolver import HostResolver
from .panelist_resolver import PanelistResolver
from .settings_enhancer import SettingsEnhancer, lift_settings_fields
from .timing_enhancer import TimingEnhancer

__all__ = [
    "Enhanced",
    "EnhancementStatus",
    "summarize",
    "unwrap",
    "EnhancementProcessor",
    "HostResolver",
    "PanelistResolver",
    "SettingsEnhancer",
    "lift_settings_fields",
    "TimingEnhancer",
]
