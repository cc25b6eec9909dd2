"""
Celery application running the scheduled league jobs
"""

from celery import Celery

from app.core.config import settings

celery = Celery(
    "betteam",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.jobs", "app.tasks.scheduler"]
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.timezone,
    enable_utc=False,
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    result_expires=3600,
    worker_concurrency=settings.celery_worker_concurrency,
    task_routes={
        "app.tasks.jobs.process_due_payments_task": {"queue": "payments"},
        "app.tasks.jobs.close_expired_challenges_task": {"queue": "challenges"},
    },
    task_default_queue="default",
)

# Jobs run inline in tests
if settings.app_env == "testing":
    celery.conf.task_always_eager = True
    celery.conf.task_eager_propagates = True

if __name__ == "__main__":
    celery.start()
