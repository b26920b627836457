"""Validation utilities for group membership, access control, and ledger input."""

import re
from typing import Optional

from sqlalchemy.orm import Session

import models
from errors import AuthorizationError, NotFoundError, ValidationError


MAX_AMOUNT = 99_999_999  # 999,999.99 in paise

EXPENSE_CATEGORIES = [
    'Food', 'Travel', 'Rent', 'Bills', 'Shopping',
    'Entertainment', 'Health', 'Education', 'Other'
]
EXPENSE_PAYMENT_METHODS = ['Cash', 'UPI', 'Card', 'Net Banking', 'Wallet']
SETTLEMENT_PAYMENT_METHODS = ['UPI', 'Cash', 'Bank Transfer', 'Card']

TRANSACTION_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,50}$')
UPI_ID_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+$')


def get_user_by_email(db: Session, email: str):
    """Get a user by their email address."""
    return db.query(models.User).filter(models.User.email == email).first()


def get_user_or_404(db: Session, user_id: int):
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_group_or_404(db: Session, group_id: int):
    """Get a group by ID or raise NotFoundError."""
    group = db.query(models.Group).filter(models.Group.id == group_id).first()
    if not group:
        raise NotFoundError("Group not found")
    return group


def get_membership(db: Session, group_id: int, user_id: int) -> Optional[models.GroupMember]:
    return db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first()


def verify_group_membership(db: Session, group_id: int, user_id: int):
    """Verify that a user is a member of a group, raise AuthorizationError if not."""
    member = get_membership(db, group_id, user_id)
    if not member:
        raise AuthorizationError("You are not a member of this group")
    return member


def verify_group_admin(db: Session, group_id: int, user_id: int):
    """Verify that a user is an admin of a group."""
    member = verify_group_membership(db, group_id, user_id)
    if member.role != "admin":
        raise AuthorizationError("Only group admins can perform this action")
    return member


def validate_amount(amount, field: str = "amount") -> int:
    """Amounts are integer paise between 1 and 99,999,999."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("Amount must be a whole number of paise", field=field)
    if amount <= 0 or amount > MAX_AMOUNT:
        raise ValidationError("Amount must be between ₹0.01 and ₹999,999.99", field=field)
    return amount


def validate_transaction_id(transaction_id: Optional[str]) -> str:
    """Trim and check a transaction id: letters, digits, hyphen, underscore, 1-50 chars."""
    value = (transaction_id or "").strip()
    if not value:
        raise ValidationError("Transaction ID is required", field="transaction_id")
    if not TRANSACTION_ID_PATTERN.match(value):
        raise ValidationError(
            "Transaction ID must be 1-50 characters of letters, numbers, hyphens or underscores",
            field="transaction_id"
        )
    return value


def validate_settlement_payment_method(payment_method: Optional[str]) -> str:
    if payment_method not in SETTLEMENT_PAYMENT_METHODS:
        raise ValidationError(
            f"Payment method must be one of {SETTLEMENT_PAYMENT_METHODS}",
            field="payment_method"
        )
    return payment_method


def normalize_upi_id(upi_id: Optional[str]) -> Optional[str]:
    """Trim a UPI id, keeping the case the user typed. Empty clears it."""
    if upi_id is None:
        return None
    value = upi_id.strip()
    if not value:
        return None
    if not UPI_ID_PATTERN.match(value):
        raise ValidationError("Invalid UPI ID format. Use format: name@bank", field="upi_id")
    return value


def validate_split_total(amount: int, split_amounts: list[int]) -> None:
    """Splits of an expense must add up to the expense amount exactly."""
    total_split = sum(split_amounts)
    if total_split != amount:
        raise ValidationError(
            f"Split amounts do not sum to total expense amount. Total: {amount}, Sum: {total_split}",
            field="splits"
        )
