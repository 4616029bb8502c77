"""Celery application configuration."""

from celery import Celery

from filevault.core.config import settings

# Create Celery instance
celery_app = Celery(
    "filevault",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["filevault.tasks.cleanup_tasks"],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

# Configure Celery Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    "purge-expired-files": {
        "task": "filevault.tasks.cleanup_tasks.purge_expired_files_task",
        "schedule": float(settings.expiry_sweep_interval_seconds),
        # A sweep that waited longer than one interval is superseded by the next one
        "options": {"expires": settings.expiry_sweep_interval_seconds},
    },
}

celery_app.conf.task_routes = {
    "filevault.tasks.cleanup_tasks.*": {"queue": "cleanup"},
}
