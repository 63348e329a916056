from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID
import logging

from fintrack.database import get_db
from fintrack.models import Category, Transaction
from fintrack.db_helpers import get_user_id
from fintrack.schemas import (
    OccurrencePreviewResponse,
    ProcessRecurrenceRequest,
    ProcessRecurrenceResponse,
    TransactionCreate,
    TransactionFilters,
    TransactionResponse,
    TransactionUpdate,
)
from fintrack.services.recurrence_calculator import as_calendar_date
from fintrack.services.recurrence_service import RecurrenceService

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_transaction(db: Session, transaction_id: UUID, user_id: str) -> Transaction:
    transaction = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.user_id == user_id
    ).first()
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


def _ensure_category_owned(db: Session, category_id: Optional[UUID], user_id: str) -> None:
    if category_id is None:
        return
    owned = db.query(Category.id).filter(
        Category.id == category_id,
        Category.user_id == user_id
    ).first()
    if not owned:
        raise HTTPException(status_code=404, detail="Category not found")


@router.get("/", response_model=List[TransactionResponse])
def list_transactions(
    filters: TransactionFilters = Depends(),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    List transactions for the current user, most recent first.

    Args:
        filters: Optional category, status and inclusive date bounds
        user_id: User ID (optional, must match the signed identity)
    """
    user_id = get_user_id(user_id)
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    if filters.category_id:
        query = query.filter(Transaction.category_id == filters.category_id)
    if filters.status:
        query = query.filter(Transaction.status == filters.status)
    if filters.start_date:
        query = query.filter(Transaction.date >= datetime.combine(filters.start_date, time.min))
    if filters.end_date:
        query = query.filter(Transaction.date < datetime.combine(filters.end_date, time.min) + timedelta(days=1))

    return query.order_by(Transaction.date.desc(), Transaction.created_at.desc()).all()


@router.get("/recurring", response_model=List[TransactionResponse])
def list_recurring_templates(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List the recurring templates of the current user."""
    user_id = get_user_id(user_id)
    return RecurrenceService.for_session(db).list_templates(user_id)


@router.get("/recurring/{transaction_id}/occurrences", response_model=OccurrencePreviewResponse)
def preview_recurring_occurrences(
    transaction_id: UUID,
    target_date: Optional[date] = Query(None, description="Last day to include (defaults to today)"),
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Show which occurrences of a template would be created up to target_date."""
    user_id = get_user_id(user_id)
    template = _get_user_transaction(db, transaction_id, user_id)
    if not template.is_recurring:
        raise HTTPException(status_code=404, detail="Recurring transaction not found")

    target = target_date or date.today()
    missing = RecurrenceService.for_session(db).preview_occurrences(template, target)
    return OccurrencePreviewResponse(
        template_id=template.id,
        target_date=target,
        missing_occurrences=list(missing),
    )


@router.post("/process-recurrence", response_model=ProcessRecurrenceResponse)
def process_recurrence(
    payload: Optional[ProcessRecurrenceRequest] = None,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Materialize the missing occurrences of every recurring template of the
    current user, through target_date (defaults to today).
    """
    user_id = get_user_id(user_id)
    target = date.today()
    if payload is not None and payload.target_date is not None:
        target = as_calendar_date(payload.target_date)

    try:
        created_count = RecurrenceService.for_session(db).process_recurring_transactions(user_id, target)
    except SQLAlchemyError:
        logger.exception(f"[RECURRENCE] Database error processing recurrences for user {user_id}")
        raise HTTPException(status_code=500, detail="Failed to process recurring transactions")
    except Exception:
        logger.exception(f"[RECURRENCE] Unexpected error processing recurrences for user {user_id}")
        raise HTTPException(status_code=500, detail="Failed to process recurring transactions")

    return ProcessRecurrenceResponse(
        success=True,
        created_count=created_count,
        message=f"{created_count} transaction(s) created from recurring templates",
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Get a specific transaction by ID."""
    user_id = get_user_id(user_id)
    return _get_user_transaction(db, transaction_id, user_id)


@router.post("/", response_model=TransactionResponse, status_code=201)
def create_transaction(
    transaction: TransactionCreate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Create a transaction, or a recurring template when recurrence_type is set."""
    user_id = get_user_id(user_id)
    _ensure_category_owned(db, transaction.category_id, user_id)

    transaction_data = transaction.model_dump()
    transaction_data["user_id"] = user_id
    db_transaction = Transaction(**transaction_data)
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)

    if db_transaction.is_recurring:
        logger.info(
            f"[RECURRENCE] Created {db_transaction.recurrence_type} template "
            f"{db_transaction.id} for user {user_id}"
        )
    return db_transaction


@router.patch("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: UUID,
    updates: TransactionUpdate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Update a transaction. Recurrence settings are not editable."""
    user_id = get_user_id(user_id)
    transaction = _get_user_transaction(db, transaction_id, user_id)

    update_data = updates.model_dump(exclude_unset=True)
    if "category_id" in update_data:
        _ensure_category_owned(db, update_data["category_id"], user_id)

    new_date = update_data.get("date")
    if transaction.recurrence_source_id is not None and new_date is not None and new_date != transaction.date:
        # A generated row moved to another day belongs to the user, not the template
        transaction.recurrence_source_id = None

    for field, value in update_data.items():
        if value is None and field in ("title", "amount", "date", "status"):
            continue
        setattr(transaction, field, value)

    db.commit()
    db.refresh(transaction)
    return transaction


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Delete a transaction. Rows generated from it are kept and unlinked."""
    user_id = get_user_id(user_id)
    transaction = _get_user_transaction(db, transaction_id, user_id)

    db.query(Transaction).filter(
        Transaction.recurrence_source_id == transaction.id
    ).update({"recurrence_source_id": None}, synchronize_session=False)

    db.delete(transaction)
    db.commit()
    return None
