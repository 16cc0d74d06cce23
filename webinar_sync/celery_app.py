"""
@file: webinar_sync/celery_app.py
@description: Конфигурация Celery приложения
@dependencies: celery, redis
"""

from celery import Celery

from webinar_sync.core.settings import settings
from webinar_sync.core.logging import setup_logging, get_logger

# Инициализация логирования
setup_logging()
logger = get_logger(__name__)

logger.info("Initializing Celery application...")
config_info = settings.log_configuration()

logger.info("Celery configuration:", extra={
    "extra_data": {
        "broker_url": config_info["celery"]["broker_url"],
        "result_backend": config_info["celery"]["result_backend"],
        "timezone": config_info["celery"]["timezone"],
        "environment_variables": {
            k: v for k, v in config_info["environment_variables"].items()
            if k.startswith('CELERY_')
        }
    }
})

# Создание Celery приложения
celery_app = Celery(
    "webinar_sync",
    broker=settings.celery.broker_url,
    backend=settings.celery.result_backend,
    include=[
        "webinar_sync.tasks.sync_tasks",
    ]
)

# Конфигурация Celery
celery_app.conf.update(
    task_serializer=settings.celery.task_serializer,
    result_serializer=settings.celery.result_serializer,
    accept_content=settings.celery.accept_content,
    timezone=settings.celery.timezone,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 минут
    task_soft_time_limit=25 * 60,  # 25 минут
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_send_task_events=True,
    task_send_sent_event=True,
)

logger.info("Celery application configured successfully")
