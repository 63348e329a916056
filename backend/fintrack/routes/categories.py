from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from fintrack.database import get_db
from fintrack.models import DEFAULT_CATEGORIES, Category, Transaction
from fintrack.db_helpers import get_user_id
from fintrack.schemas import CategoryCreate, CategoryResponse, CategoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_category(db: Session, category_id: UUID, user_id: str) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.user_id == user_id
    ).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.get("/", response_model=List[CategoryResponse])
def list_categories(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List all categories for the current user, newest first."""
    user_id = get_user_id(user_id)
    return (
        db.query(Category)
        .filter(Category.user_id == user_id)
        .order_by(Category.created_at.desc())
        .all()
    )


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Get a specific category by ID."""
    user_id = get_user_id(user_id)
    return _get_user_category(db, category_id, user_id)


@router.post("/", response_model=CategoryResponse, status_code=201)
def create_category(
    category: CategoryCreate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Create a new category."""
    user_id = get_user_id(user_id)
    category_data = category.model_dump()
    category_data["user_id"] = user_id
    db_category = Category(**category_data)
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category


@router.post("/defaults", response_model=List[CategoryResponse], status_code=201)
def create_default_categories(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Seed the default category set for the current user.

    Does nothing when the user already has default categories, so calling it
    again returns an empty list.
    """
    user_id = get_user_id(user_id)
    has_defaults = db.query(Category.id).filter(
        Category.user_id == user_id,
        Category.is_default == True  # noqa: E712
    ).first()
    if has_defaults:
        return []

    created = [
        Category(user_id=user_id, is_default=True, **default)
        for default in DEFAULT_CATEGORIES
    ]
    db.add_all(created)
    db.commit()
    for category in created:
        db.refresh(category)

    logger.info(f"[CATEGORIES] Created {len(created)} default categories for user {user_id}")
    return created


@router.patch("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: UUID,
    updates: CategoryUpdate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Update a category."""
    user_id = get_user_id(user_id)
    category = _get_user_category(db, category_id, user_id)

    update_data = updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(category, field, value)

    db.commit()
    db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=204)
def delete_category(
    category_id: UUID,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Delete a category. Default categories cannot be deleted."""
    user_id = get_user_id(user_id)
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.user_id == user_id,
        Category.is_default == False  # noqa: E712
    ).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    # Detach transactions using this category
    db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.category_id == category_id
    ).update({"category_id": None}, synchronize_session=False)

    db.delete(category)
    db.commit()
    return None
