"""
Persistence collaborator for recurrence materialization.

TransactionStore is the interface the recurrence service depends on;
SqlTransactionStore implements it on a SQLAlchemy session.
"""
import logging
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterator, List, Optional, Protocol
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fintrack.models import RECURRENCE_NONE, STATUS_UNPAID, Transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterializedTransaction:
    """Field set for a transaction generated from a recurring template."""

    user_id: str
    category_id: Optional[UUID]
    title: str
    amount: Decimal
    notes: Optional[str]
    date: datetime
    recurrence_source_id: Optional[UUID] = None
    status: str = STATUS_UNPAID
    recurrence_type: str = RECURRENCE_NONE
    recurrence_day: Optional[int] = None
    is_recurring: bool = False

    @classmethod
    def from_template(cls, template: Transaction, occurrence: date) -> "MaterializedTransaction":
        return cls(
            user_id=template.user_id,
            category_id=template.category_id or None,
            title=template.title,
            amount=template.amount,
            notes=template.notes or None,
            date=datetime.combine(occurrence, time.min),
            recurrence_source_id=template.id,
        )


class TransactionStore(Protocol):
    """Storage operations needed to materialize recurring templates."""

    def list_recurring_templates(self, user_id: str) -> List[Transaction]:
        """Rows flagged as recurring templates for the user."""
        ...

    def exists_transaction(
        self,
        user_id: str,
        title: str,
        category_id: Optional[UUID],
        on_date: date,
    ) -> bool:
        """Whether a transaction with this match key exists on the calendar day."""
        ...

    def occurrence_exists(self, template: Transaction, on_date: date) -> bool:
        """Whether the template's occurrence on on_date is already covered,
        by the match key or by a row generated from the template."""
        ...

    def create_transaction(self, fields: MaterializedTransaction) -> Optional[Transaction]:
        """Persist a generated transaction; None if it already exists."""
        ...

    def serialize_user(self, user_id: str):
        """Context manager holding the user's materialization lock."""
        ...

    def unit_of_work(self, user_id: str):
        """Context manager committing on success and rolling back on error."""
        ...


# Entries disappear once no run holds the lock
_user_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def _lock_for_user(user_id: str) -> threading.Lock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _user_locks[user_id] = lock
        return lock


class SqlTransactionStore:
    """TransactionStore backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    @property
    def _is_postgres(self) -> bool:
        bind = self.db.get_bind()
        return bind.dialect.name == "postgresql"

    def list_recurring_templates(self, user_id: str) -> List[Transaction]:
        return (
            self.db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.is_recurring == True,  # noqa: E712
            )
            .order_by(Transaction.created_at.desc())
            .all()
        )

    def exists_transaction(
        self,
        user_id: str,
        title: str,
        category_id: Optional[UUID],
        on_date: date,
    ) -> bool:
        day_start = datetime.combine(on_date, time.min)
        next_day_start = day_start + timedelta(days=1)
        query = self.db.query(Transaction.id).filter(
            Transaction.user_id == user_id,
            Transaction.title == title,
            Transaction.date >= day_start,
            Transaction.date < next_day_start,
        )
        if category_id:
            query = query.filter(Transaction.category_id == category_id)
        return query.first() is not None

    def occurrence_exists(self, template: Transaction, on_date: date) -> bool:
        if self.exists_transaction(template.user_id, template.title, template.category_id, on_date):
            return True
        return self._linked_occurrence_exists(template.id, datetime.combine(on_date, time.min))

    def _linked_occurrence_exists(self, source_id: Optional[UUID], on: datetime) -> bool:
        if source_id is None:
            return False
        return (
            self.db.query(Transaction.id)
            .filter(
                Transaction.recurrence_source_id == source_id,
                Transaction.date == on,
            )
            .first()
            is not None
        )

    def create_transaction(self, fields: MaterializedTransaction) -> Optional[Transaction]:
        if self._linked_occurrence_exists(fields.recurrence_source_id, fields.date):
            logger.info(
                f"[RECURRENCE] Occurrence {fields.date.date()} of template "
                f"{fields.recurrence_source_id} already materialized"
            )
            return None

        transaction = Transaction(
            user_id=fields.user_id,
            category_id=fields.category_id,
            title=fields.title,
            amount=fields.amount,
            notes=fields.notes,
            date=fields.date,
            status=fields.status,
            recurrence_type=fields.recurrence_type,
            recurrence_day=fields.recurrence_day,
            is_recurring=fields.is_recurring,
            recurrence_source_id=fields.recurrence_source_id,
        )
        if not self._is_postgres:
            # No SAVEPOINT on pysqlite; writers are serialized by the user lock.
            self.db.add(transaction)
            self.db.flush()
            return transaction

        try:
            with self.db.begin_nested():
                self.db.add(transaction)
        except IntegrityError:
            # Unique (recurrence_source_id, date) taken by a concurrent run
            logger.info(
                f"[RECURRENCE] Occurrence {fields.date.date()} of template "
                f"{fields.recurrence_source_id} already materialized"
            )
            return None
        return transaction

    @contextmanager
    def serialize_user(self, user_id: str) -> Iterator[None]:
        with _lock_for_user(user_id):
            yield

    @contextmanager
    def unit_of_work(self, user_id: str) -> Iterator[None]:
        try:
            if self._is_postgres:
                self.db.execute(
                    text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                    {"key": f"recurrence:{user_id}"},
                )
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
