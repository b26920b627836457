from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, field_validator

from utils.validation import EXPENSE_CATEGORIES, EXPENSE_PAYMENT_METHODS


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

class UserCreate(UserBase):
    password: str

class User(UserBase):
    id: int
    is_active: bool

    class Config:
        from_attributes = True

class UserProfile(User):
    phone_number: Optional[str] = None
    upi_id: Optional[str] = None

class ProfileUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    upi_id: Optional[str] = None  # empty string clears it

class Token(BaseModel):
    access_token: str
    token_type: str


class GroupBase(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not 2 <= len(v) <= 50:
            raise ValueError('Group name must be between 2 and 50 characters')
        return v

class GroupCreate(GroupBase):
    pass

class Group(GroupBase):
    id: int
    created_by_id: int

    class Config:
        from_attributes = True

class GroupMemberAdd(BaseModel):
    email: str

class GroupMember(BaseModel):
    id: int
    user_id: int
    full_name: str
    email: str
    role: str
    joined_at: Optional[datetime] = None

class GroupWithMembers(Group):
    members: list[GroupMember]


def _check_category(v):
    if v not in EXPENSE_CATEGORIES:
        raise ValueError(f'Category must be one of {EXPENSE_CATEGORIES}')
    return v


class SplitCreate(BaseModel):
    user_id: int
    amount: int

class ExpenseSplit(BaseModel):
    id: int
    expense_id: int
    user_id: int
    amount_owed: int
    paid: bool = False

    class Config:
        from_attributes = True

class ExpenseCreate(BaseModel):
    amount: int  # In paise
    description: str
    category: str
    date: Optional[str] = None
    payment_method: str = "Cash"
    notes: Optional[str] = None

    @field_validator('category')
    @classmethod
    def validate_category(cls, v):
        return _check_category(v)

    @field_validator('payment_method')
    @classmethod
    def validate_payment_method(cls, v):
        if v not in EXPENSE_PAYMENT_METHODS:
            raise ValueError(f'Payment method must be one of {EXPENSE_PAYMENT_METHODS}')
        return v

class ExpenseUpdate(ExpenseCreate):
    pass

class GroupExpenseCreate(ExpenseCreate):
    splits: Optional[list[SplitCreate]] = None  # omitted -> equal split over all members

class Expense(BaseModel):
    id: int
    amount: int
    description: str
    category: str
    date: str
    payment_method: str
    notes: Optional[str] = None
    payer_id: int
    group_id: Optional[int] = None

    class Config:
        from_attributes = True

class ExpenseWithSplits(Expense):
    splits: list[ExpenseSplit] = []


class IncomeCreate(BaseModel):
    amount: int
    source: str
    description: str
    date: Optional[str] = None

class Income(BaseModel):
    id: int
    amount: int
    source: str
    description: str
    date: str

    class Config:
        from_attributes = True


class BudgetCreate(BaseModel):
    category: str
    limit: int  # In paise
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=2000, le=9999)

    @field_validator('category')
    @classmethod
    def validate_category(cls, v):
        return _check_category(v)

class Budget(BaseModel):
    id: int
    category: str
    limit: int
    month: int
    year: int

    class Config:
        from_attributes = True

class BudgetWithSpent(Budget):
    spent: int
    remaining: int
    percentage: float


class AnalyticsSummary(BaseModel):
    """One month of the caller's income and spending. Amounts in paise."""
    month: int
    year: int
    total_income: int
    total_expense: int
    balance: int
    prev_month_expense: int
    change_percent: float
    category_breakdown: dict[str, int]
    payment_method_breakdown: dict[str, int]
    daily_spending: dict[int, int]  # day of month -> paise
    expense_count: int
    income_count: int


class GroupBalance(BaseModel):
    """A member's net position. Positive means others owe them."""
    user_id: int
    user_name: str
    user_email: str
    balance: int
    status: Literal["owed", "owes", "settled"]


class SettlementRequest(BaseModel):
    group_id: int
    to_user_id: int
    amount: int  # In paise

class SettlementPay(BaseModel):
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None

class PaymentReminderRequest(BaseModel):
    user_id: int

class Settlement(BaseModel):
    id: int
    group_id: int
    from_user_id: int
    from_user_name: str
    from_user_email: str
    to_user_id: int
    to_user_name: str
    to_user_email: str
    amount: int
    status: Literal["pending", "paid", "cancelled"]
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class UpiLink(BaseModel):
    upi_link: str
    qr_data: str
    amount: int
    payee_name: str
    payee_upi_id: str
    settlement_id: int


class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str
    category: Optional[str] = None
    budget_limit: Optional[int] = None
    current_spent: Optional[int] = None
    percentage: Optional[float] = None
    group_id: Optional[int] = None
    settlement_id: Optional[int] = None
    amount: Optional[int] = None
    from_user_id: Optional[int] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True

class UnreadCount(BaseModel):
    count: int


# Real-time payloads, one shape per notification kind
class BudgetAlertEvent(BaseModel):
    type: Literal["budget_warning", "budget_critical", "budget_exceeded"]
    id: int
    title: str
    message: str
    category: str
    budget_limit: int
    current_spent: int
    percentage: float
    timestamp: datetime

class PaymentRequestEvent(BaseModel):
    type: Literal["payment_request"]
    id: int
    title: str
    message: str
    group_id: int
    settlement_id: int
    amount: int
    from_user: str
    timestamp: datetime

class PaymentReceivedEvent(BaseModel):
    type: Literal["payment_received"]
    id: int
    title: str
    message: str
    group_id: int
    settlement_id: int
    amount: int
    from_user: str
    timestamp: datetime

class PaymentReminderEvent(BaseModel):
    type: Literal["payment_reminder"]
    id: int
    title: str
    message: str
    group_id: int
    amount: int
    creditor_name: str
    timestamp: datetime

NotificationEvent = Annotated[
    Union[BudgetAlertEvent, PaymentRequestEvent, PaymentReceivedEvent, PaymentReminderEvent],
    Field(discriminator="type")
]

notification_event_adapter = TypeAdapter(NotificationEvent)
