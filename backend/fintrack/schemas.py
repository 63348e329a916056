from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional, Union
from uuid import UUID


RecurrenceType = Literal["none", "monthly", "weekly", "biweekly", "monthly_variable"]
TransactionStatus = Literal["paid", "unpaid"]


def _check_recurrence_day(recurrence_type: Optional[str], recurrence_day: Optional[int]) -> None:
    if recurrence_day is None or recurrence_type is None:
        return
    if recurrence_type in ("monthly", "monthly_variable") and not 1 <= recurrence_day <= 31:
        raise ValueError("recurrence_day must be between 1 and 31 for monthly recurrences")
    if recurrence_type in ("weekly", "biweekly") and not 0 <= recurrence_day <= 6:
        raise ValueError("recurrence_day must be between 0 (Sunday) and 6 (Saturday) for weekly recurrences")


# Category Schemas
class CategoryBase(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    color: Optional[str] = "#10B981"
    icon: Optional[str] = None


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    color: Optional[str] = None
    icon: Optional[str] = None


class CategoryResponse(CategoryBase):
    id: UUID
    is_default: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Transaction Schemas
class TransactionBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    date: datetime
    category_id: Optional[UUID] = None
    status: TransactionStatus = "unpaid"
    notes: Optional[str] = None


class TransactionCreate(TransactionBase):
    recurrence_type: RecurrenceType = "none"
    recurrence_day: Optional[int] = None
    is_recurring: Optional[bool] = None

    @model_validator(mode="after")
    def _sync_recurrence_flags(self):
        """Keep is_recurring consistent with recurrence_type."""
        templated = self.recurrence_type != "none"
        if self.is_recurring is None:
            self.is_recurring = templated
        elif self.is_recurring != templated:
            raise ValueError("is_recurring must match recurrence_type ('none' means not recurring)")
        if not templated and self.recurrence_day is not None:
            raise ValueError("recurrence_day requires a recurrence_type")
        _check_recurrence_day(self.recurrence_type, self.recurrence_day)
        return self


class TransactionUpdate(BaseModel):
    """Partial update. Recurrence settings are fixed once a transaction exists."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    date: Optional[datetime] = None
    category_id: Optional[UUID] = None
    status: Optional[TransactionStatus] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class TransactionResponse(TransactionBase):
    id: UUID
    recurrence_type: RecurrenceType
    recurrence_day: Optional[int] = None
    is_recurring: bool
    recurrence_source_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionFilters(BaseModel):
    """Query filters for listing transactions. Date bounds are inclusive calendar days."""
    category_id: Optional[UUID] = None
    status: Optional[TransactionStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# Recurrence Schemas
class ProcessRecurrenceRequest(BaseModel):
    target_date: Optional[Union[datetime, date]] = None


class ProcessRecurrenceResponse(BaseModel):
    success: bool
    created_count: int
    message: str


class OccurrencePreviewResponse(BaseModel):
    template_id: UUID
    target_date: date
    missing_occurrences: list[date]


# Account Schemas
AccountType = Literal["personal", "business"]


class AccountSettingsUpdate(BaseModel):
    account_type: AccountType
    company_name: Optional[str] = Field(default=None, max_length=255)
    cnpj: Optional[str] = Field(default=None, max_length=32)


class AccountSettingsResponse(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    account_type: AccountType
    company_name: Optional[str] = None
    cnpj: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
