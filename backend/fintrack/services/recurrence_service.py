"""
Service for materializing recurring transaction templates.
Handles:
1. Computing the occurrences each template owes up to a target date
2. Skipping occurrences that already have a transaction
3. Creating the missing ones as independent, unpaid transactions
"""
from datetime import date
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
import logging

from fintrack.models import Transaction
from fintrack.services.recurrence_calculator import DateLike, as_calendar_date, calculate_occurrences
from fintrack.services.transaction_store import (
    MaterializedTransaction,
    SqlTransactionStore,
    TransactionStore,
)

logger = logging.getLogger(__name__)


class RecurrenceService:
    """Materializes recurring templates into concrete transactions."""

    def __init__(self, store: TransactionStore):
        self.store = store

    @classmethod
    def for_session(cls, db: Session) -> "RecurrenceService":
        return cls(SqlTransactionStore(db))

    def list_templates(self, user_id: str) -> List[Transaction]:
        return self.store.list_recurring_templates(user_id)

    def preview_occurrences(self, template: Transaction, target_date: Optional[DateLike] = None) -> Tuple[date, ...]:
        """Occurrences of template up to target_date that have no transaction yet."""
        target = as_calendar_date(target_date) if target_date is not None else date.today()
        return tuple(
            occurrence
            for occurrence in calculate_occurrences(template, target)
            if not self.store.occurrence_exists(template, occurrence)
        )

    def process_recurring_transactions(self, user_id: str, target_date: Optional[DateLike] = None) -> int:
        """
        Create the missing occurrences of every recurring template of a user.

        Each template is its own unit of work: its rows are committed before the
        next template is processed. A persistence error rolls back the failing
        template's pending rows and is re-raised; earlier templates stay committed.

        Args:
            user_id: Owner of the templates
            target_date: Last day (inclusive) to materialize; defaults to today

        Returns:
            Number of transactions created
        """
        target = as_calendar_date(target_date) if target_date is not None else date.today()

        with self.store.serialize_user(user_id):
            templates = self.store.list_recurring_templates(user_id)
            if not templates:
                logger.info(f"[RECURRENCE] No recurring templates for user {user_id}")
                return 0

            created_count = 0
            for template in templates:
                template_id = template.id
                try:
                    with self.store.unit_of_work(user_id):
                        created_count += self._materialize_template(template, target)
                except Exception:
                    logger.exception(
                        f"[RECURRENCE] Failed materializing template {template_id} for user {user_id}"
                    )
                    raise

        logger.info(
            f"[RECURRENCE] Processed {len(templates)} template(s) for user {user_id} "
            f"through {target.isoformat()}: {created_count} created"
        )
        return created_count

    def _materialize_template(self, template: Transaction, target: date) -> int:
        created = 0
        for occurrence in calculate_occurrences(template, target):
            if self.store.occurrence_exists(template, occurrence):
                logger.debug(f"[RECURRENCE] {template.title!r} already present on {occurrence}")
                continue

            fields = MaterializedTransaction.from_template(template, occurrence)
            if self.store.create_transaction(fields) is not None:
                logger.debug(f"[RECURRENCE] Created {template.title!r} on {occurrence}")
                created += 1
        return created
