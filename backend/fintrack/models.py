"""
SQLAlchemy models for users, categories and transactions.
A transaction row is either a recurring template or a concrete entry; the
recurrence columns tell them apart.
"""
import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    Numeric,
    Text,
    Integer,
    ForeignKey,
    Index,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from fintrack.database import Base


RECURRENCE_NONE = "none"
RECURRENCE_MONTHLY = "monthly"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_BIWEEKLY = "biweekly"
RECURRENCE_MONTHLY_VARIABLE = "monthly_variable"

RECURRENCE_TYPES = (
    RECURRENCE_NONE,
    RECURRENCE_MONTHLY,
    RECURRENCE_WEEKLY,
    RECURRENCE_BIWEEKLY,
    RECURRENCE_MONTHLY_VARIABLE,
)

STATUS_PAID = "paid"
STATUS_UNPAID = "unpaid"

DEFAULT_CATEGORY_COLOR = "#10B981"

# Seeded for a user on request; these cannot be deleted.
DEFAULT_CATEGORIES = (
    {"name": "Gasto Fixo", "color": "#3B82F6", "icon": "Home"},
    {"name": "Folha de Pagamento", "color": "#8B5CF6", "icon": "Users"},
    {"name": "Assinaturas", "color": "#EC4899", "icon": "CreditCard"},
    {"name": "Contas Recorrentes", "color": "#F59E0B", "icon": "Calendar"},
    {"name": "Alimentação", "color": "#10B981", "icon": "UtensilsCrossed"},
    {"name": "Transporte", "color": "#06B6D4", "icon": "Car"},
    {"name": "Saúde", "color": "#EF4444", "icon": "Heart"},
    {"name": "Educação", "color": "#6366F1", "icon": "GraduationCap"},
    {"name": "Lazer", "color": "#F97316", "icon": "Smile"},
    {"name": "Outros", "color": "#64748B", "icon": "MoreHorizontal"},
)


class User(Base):
    """
    User record provisioned by the identity provider.
    Minimal model for foreign key relationships.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String(255), unique=True, nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    profile_image_url = Column(Text, nullable=True)
    account_type = Column(String(20), default="personal", nullable=False)  # personal, business
    company_name = Column(String(255), nullable=True)
    cnpj = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    categories = relationship("Category", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")


class Category(Base):
    """
    Category model.
    Default categories are created in bulk for a user and cannot be deleted.
    """
    __tablename__ = "categories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    color = Column(String(7), default=DEFAULT_CATEGORY_COLOR)  # Hex color
    icon = Column(String(50), nullable=True)  # lucide icon name
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="categories")
    transactions = relationship("Transaction", back_populates="category")

    __table_args__ = (
        Index("idx_categories_user", "user_id"),
    )


class Transaction(Base):
    """
    Transaction model.

    Templates carry is_recurring=True and a recurrence_type other than "none".
    Rows generated from a template point back to it through
    recurrence_source_id; the link is cleared if the template is deleted.
    """
    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    status = Column(String(10), default=STATUS_UNPAID, nullable=False)  # paid, unpaid
    notes = Column(Text, nullable=True)
    recurrence_type = Column(String(20), default=RECURRENCE_NONE, nullable=False)
    recurrence_day = Column(Integer, nullable=True)  # Day of month (1-31) or day of week (0-6, Sunday first)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_source_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")

    __table_args__ = (
        Index("idx_transactions_user", "user_id"),
        Index("idx_transactions_user_date", "user_id", "date"),
        Index("idx_transactions_recurring", "user_id", "is_recurring"),
        UniqueConstraint("recurrence_source_id", "date", name="transactions_recurrence_source_date"),
    )
