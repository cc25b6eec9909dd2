"""
Celery Beat schedule for the league jobs
"""

from celery.schedules import crontab

from app.celery_app import celery
from app.core.config import settings

celery.conf.beat_schedule = {
    "process-due-payments": {
        "task": "app.tasks.jobs.process_due_payments_task",
        "schedule": crontab(hour=settings.payments_job_hour, minute=settings.payments_job_minute),
    },
    # A sweep that misses its slot is superseded by the next one
    "close-expired-challenges": {
        "task": "app.tasks.jobs.close_expired_challenges_task",
        "schedule": float(settings.challenge_sweep_seconds),
        "options": {"expires": settings.challenge_sweep_seconds},
    },
}
