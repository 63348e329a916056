"""Celery tasks materializing recurring transaction templates."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import OperationalError

from celery_app import celery_app
from fintrack.database import SessionLocal
from fintrack.models import Transaction
from fintrack.services.event_publisher import EventPublisher
from fintrack.services.recurrence_service import RecurrenceService

logger = logging.getLogger(__name__)

RETRY_COUNTDOWN_SECONDS = 60


def _resolve_target_date(target_date: Optional[str]) -> date:
    # Task arguments travel as JSON, so dates arrive as ISO strings
    if not target_date:
        return date.today()
    return date.fromisoformat(target_date[:10])


def _run_for_user(user_id: str, target: date, publisher: EventPublisher) -> int:
    session = SessionLocal()
    try:
        created_count = RecurrenceService.for_session(session).process_recurring_transactions(user_id, target)
    finally:
        session.close()

    publisher.publish_recurrence_processed(user_id, created_count, target.isoformat())
    return created_count


@celery_app.task(bind=True, max_retries=2, name="tasks.recurrence_tasks.process_recurring_transactions_for_user")
def process_recurring_transactions_for_user(
    self,
    user_id: str,
    target_date: Optional[str] = None,
) -> dict:
    """Materialize the missing occurrences of one user's templates."""
    target = _resolve_target_date(target_date)
    publisher = EventPublisher()
    try:
        created_count = _run_for_user(user_id, target, publisher)
    except OperationalError as exc:
        # Committed templates are kept and re-runs skip them
        logger.warning("[RECURRENCE_TASK] Database unavailable for user=%s, retrying: %s", user_id, exc)
        raise self.retry(exc=exc, countdown=RETRY_COUNTDOWN_SECONDS)
    except Exception as exc:  # noqa: BLE001
        logger.exception("[RECURRENCE_TASK] Failed recurrence run for user=%s: %s", user_id, exc)
        raise
    finally:
        publisher.close()

    logger.info(
        "[RECURRENCE_TASK] Completed run for user=%s target_date=%s created=%s",
        user_id,
        target.isoformat(),
        created_count,
    )
    return {
        "user_id": user_id,
        "created_count": created_count,
        "target_date": target.isoformat(),
    }


@celery_app.task(name="tasks.recurrence_tasks.process_all_recurring_transactions")
def process_all_recurring_transactions(target_date: Optional[str] = None) -> dict:
    """Daily run over every user that owns at least one recurring template."""
    target = _resolve_target_date(target_date)

    session = SessionLocal()
    try:
        user_ids = [
            row[0]
            for row in session.query(Transaction.user_id)
            .filter(Transaction.is_recurring == True)  # noqa: E712
            .distinct()
            .order_by(Transaction.user_id)
            .all()
        ]
    finally:
        session.close()

    summary = {
        "target_date": target.isoformat(),
        "users_processed": 0,
        "users_failed": 0,
        "transactions_created": 0,
    }
    publisher = EventPublisher()
    try:
        for user_id in user_ids:
            try:
                created_count = _run_for_user(user_id, target, publisher)
            except Exception as exc:  # noqa: BLE001
                logger.exception("[RECURRENCE_TASK] Failed recurrence run for user=%s: %s", user_id, exc)
                summary["users_failed"] += 1
                continue

            summary["users_processed"] += 1
            summary["transactions_created"] += created_count
    finally:
        publisher.close()

    logger.info(
        "[RECURRENCE_TASK] Daily run target_date=%s users=%s failed=%s created=%s",
        summary["target_date"],
        summary["users_processed"],
        summary["users_failed"],
        summary["transactions_created"],
    )
    return summary
