from datetime import timedelta

from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "cms_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.sla_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

celery_app.conf.beat_schedule = {
    "monitor-complaint-sla": {
        "task": "app.workers.sla_tasks.monitor_sla",
        "schedule": timedelta(minutes=settings.SLA_MONITOR_INTERVAL_MINUTES),
    },
}
