"""
Engine options, the Beat schedule and the rate-limit Redis switch
"""

from celery.schedules import crontab

from app.core.config import settings
from app.core.redis_client import get_rate_limit_redis
from app.db.session import engine_options
from app.tasks.scheduler import celery


def test_sqlite_gets_no_pool_sizing():
    assert engine_options("sqlite+aiosqlite:///:memory:") == {}


def test_postgres_pool_options():
    options = engine_options("postgresql+asyncpg://user:pw@db:5432/betteam")

    assert options["pool_size"] == settings.db_pool_size
    assert options["max_overflow"] == settings.db_max_overflow
    assert options["pool_pre_ping"] is True


def test_beat_schedule():
    schedule = celery.conf.beat_schedule

    payments = schedule["process-due-payments"]
    assert payments["task"] == "app.tasks.jobs.process_due_payments_task"
    assert payments["schedule"] == crontab(hour=0, minute=5)

    sweep = schedule["close-expired-challenges"]
    assert sweep["task"] == "app.tasks.jobs.close_expired_challenges_task"
    assert sweep["schedule"] == 60.0


def test_rate_limit_redis_disabled():
    """Tests run with RATE_LIMIT_ENABLED=false"""
    assert settings.rate_limit_enabled is False
    assert get_rate_limit_redis() is None
