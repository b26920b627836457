"""Expenses router: personal expenses and split group expenses."""

import logging
from datetime import date, datetime
from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user, get_notification_service, get_today
from errors import ConflictError, NotFoundError, ValidationError
from utils.notifications import NotificationService
from utils.splits import calculate_equal_splits
from utils.validation import (
    get_group_or_404,
    validate_amount,
    validate_split_total,
    verify_group_membership,
)

logger = logging.getLogger(__name__)


router = APIRouter(tags=["expenses"])


def normalize_date(date_str: Optional[str], today: date) -> str:
    """
    Normalize a date string to zero-padded YYYY-MM-DD.

    Month filters match on the "YYYY-MM-" prefix, so anything stored must be
    a real calendar date in exactly this form. Accepts a time component
    (e.g., 2025-12-27T00:00:00.000Z) and unpadded parts (2026-3-14).
    """
    if not date_str or not date_str.strip():
        return today.isoformat()
    # Drop the time component, if any
    day_part = date_str.strip().split('T')[0]
    try:
        return datetime.strptime(day_part, "%Y-%m-%d").date().isoformat()
    except ValueError:
        raise ValidationError("Invalid date, expected YYYY-MM-DD", field="date")


def get_own_expense_or_404(db: Session, expense_id: int, user_id: int) -> models.Expense:
    expense = db.query(models.Expense).filter(
        models.Expense.id == expense_id,
        models.Expense.payer_id == user_id
    ).first()
    if not expense:
        raise NotFoundError("Expense not found")
    return expense


def ensure_not_split(db: Session, expense: models.Expense) -> None:
    """Expenses that splits point at are frozen; balances are derived from them."""
    has_splits = db.query(models.ExpenseSplit).filter(
        models.ExpenseSplit.expense_id == expense.id
    ).first()
    if has_splits:
        raise ConflictError("This expense is shared in a group and can no longer be changed")


@router.get("/expenses", response_model=list[schemas.ExpenseWithSplits])
def read_expenses(
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db)
):
    expenses = db.query(models.Expense).filter(
        models.Expense.payer_id == current_user.id
    ).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()

    expense_ids = [e.id for e in expenses]
    splits_by_expense = {}
    if expense_ids:
        splits = db.query(models.ExpenseSplit).filter(
            models.ExpenseSplit.expense_id.in_(expense_ids)
        ).all()
        for split in splits:
            splits_by_expense.setdefault(split.expense_id, []).append(split)

    return [
        schemas.ExpenseWithSplits(
            **schemas.Expense.model_validate(expense).model_dump(),
            splits=[schemas.ExpenseSplit.model_validate(s) for s in splits_by_expense.get(expense.id, [])]
        )
        for expense in expenses
    ]


@router.post("/expenses", response_model=schemas.Expense)
def create_expense(
    expense: schemas.ExpenseCreate, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
    today: date = Depends(get_today)
):
    validate_amount(expense.amount)

    db_expense = models.Expense(
        amount=expense.amount,
        description=expense.description,
        category=expense.category,
        date=normalize_date(expense.date, today),
        payment_method=expense.payment_method,
        notes=expense.notes,
        payer_id=current_user.id
    )
    db.add(db_expense)
    db.commit()
    db.refresh(db_expense)
    result = schemas.Expense.model_validate(db_expense)

    # Best effort; never fails the expense
    notifier.check_budget_and_notify(db, current_user.id, db_expense.category)
    return result


@router.put("/expenses/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: int,
    expense_update: schemas.ExpenseUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    expense = get_own_expense_or_404(db, expense_id, current_user.id)
    ensure_not_split(db, expense)
    validate_amount(expense_update.amount)

    expense.amount = expense_update.amount
    expense.description = expense_update.description
    expense.category = expense_update.category
    expense.date = normalize_date(expense_update.date, today)
    expense.payment_method = expense_update.payment_method
    expense.notes = expense_update.notes
    db.commit()
    db.refresh(expense)
    return expense


@router.delete("/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_own_expense_or_404(db, expense_id, current_user.id)
    ensure_not_split(db, expense)
    db.delete(expense)
    db.commit()
    return {"message": "Expense deleted"}


@router.post("/groups/{group_id}/expenses", response_model=schemas.ExpenseWithSplits)
def create_group_expense(
    group_id: int,
    expense: schemas.GroupExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
    today: date = Depends(get_today)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    validate_amount(expense.amount)

    member_ids = [
        m.user_id for m in db.query(models.GroupMember).filter(
            models.GroupMember.group_id == group_id
        ).order_by(models.GroupMember.joined_at, models.GroupMember.id).all()
    ]

    if expense.splits:
        seen = set()
        for split in expense.splits:
            if split.user_id not in member_ids:
                raise ValidationError(f"User {split.user_id} is not a member of this group", field="splits")
            if split.user_id in seen:
                raise ValidationError(f"User {split.user_id} appears more than once in splits", field="splits")
            seen.add(split.user_id)
            validate_amount(split.amount, field="splits")
        splits = expense.splits
    else:
        splits = calculate_equal_splits(expense.amount, member_ids)

    validate_split_total(expense.amount, [s.amount for s in splits])

    db_expense = models.Expense(
        amount=expense.amount,
        description=expense.description,
        category=expense.category,
        date=normalize_date(expense.date, today),
        payment_method=expense.payment_method,
        notes=expense.notes,
        payer_id=current_user.id,
        group_id=group_id
    )
    db.add(db_expense)
    db.flush()

    db_splits = [
        models.ExpenseSplit(expense_id=db_expense.id, user_id=s.user_id, amount_owed=s.amount)
        for s in splits
    ]
    db.add_all(db_splits)
    db.commit()
    db.refresh(db_expense)
    logger.info(f"Group expense {db_expense.id} created in group {group_id} with {len(db_splits)} splits")

    result = schemas.ExpenseWithSplits(
        **schemas.Expense.model_validate(db_expense).model_dump(),
        splits=[schemas.ExpenseSplit.model_validate(s) for s in db_splits]
    )

    notifier.check_budget_and_notify(db, current_user.id, db_expense.category)
    return result
