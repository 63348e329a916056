"""
Celery application configuration for scheduled tasks.
"""
import os
from celery import Celery
from celery.schedules import crontab

# Redis URL for broker and backend
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Create Celery app
celery_app = Celery(
    "fintrack_tasks",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["tasks.recurrence_tasks"],
)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, lower: int, upper: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    return max(lower, min(upper, value))


def _build_beat_schedule() -> dict:
    schedule = {}

    if _env_bool("RECURRENCE_DAILY_ENABLED", default=False):
        hour_utc = _env_int("RECURRENCE_DAILY_HOUR_UTC", 3, 0, 23)
        minute_utc = _env_int("RECURRENCE_DAILY_MINUTE_UTC", 0, 0, 59)
        schedule["recurrence-daily"] = {
            "task": "tasks.recurrence_tasks.process_all_recurring_transactions",
            "schedule": crontab(minute=minute_utc, hour=hour_utc),
        }

    return schedule

# Celery configuration
celery_app.conf.update(
    # Task result settings
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task settings
    task_track_started=True,
    task_time_limit=3600,  # 1 hour max per task
    task_soft_time_limit=3300,  # Soft limit at 55 minutes

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=int(os.getenv("CELERY_WORKER_CONCURRENCY", "4")),

    # Beat schedule for periodic tasks
    beat_schedule=_build_beat_schedule(),
)


if __name__ == "__main__":
    celery_app.start()
