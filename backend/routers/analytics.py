"""Analytics router: monthly income and spending summary."""

from collections import defaultdict
from datetime import date
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user, get_today
from utils.notifications import month_prefix


router = APIRouter(prefix="/analytics", tags=["analytics"])


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def expenses_in_month(db: Session, user_id: int, year: int, month: int) -> list[models.Expense]:
    return db.query(models.Expense).filter(
        models.Expense.payer_id == user_id,
        models.Expense.date.like(f"{month_prefix(year, month)}%")
    ).all()


@router.get("/summary", response_model=schemas.AnalyticsSummary)
def get_summary(
    current_user: Annotated[models.User, Depends(get_current_user)],
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=9999),
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    """
    Totals, breakdowns and the daily trend for one month, defaulting to the current one.

    Expenses count for the user who paid them, group expenses included.
    change_percent compares total spend with the previous month and is 0
    when the previous month had no spend.
    """
    month = month or today.month
    year = year or today.year

    expenses = expenses_in_month(db, current_user.id, year, month)
    incomes = db.query(models.Income).filter(
        models.Income.user_id == current_user.id,
        models.Income.date.like(f"{month_prefix(year, month)}%")
    ).all()
    prev_expenses = expenses_in_month(db, current_user.id, *previous_month(year, month))

    total_expense = sum(e.amount for e in expenses)
    total_income = sum(i.amount for i in incomes)
    prev_total_expense = sum(e.amount for e in prev_expenses)

    category_breakdown = defaultdict(int)
    payment_method_breakdown = defaultdict(int)
    daily_spending = defaultdict(int)
    for expense in expenses:
        category_breakdown[expense.category] += expense.amount
        payment_method_breakdown[expense.payment_method] += expense.amount
        # Stored dates are YYYY-MM-DD
        daily_spending[int(expense.date[8:10])] += expense.amount

    change_percent = 0.0
    if prev_total_expense > 0:
        change_percent = round((total_expense - prev_total_expense) * 100 / prev_total_expense, 1)

    return schemas.AnalyticsSummary(
        month=month,
        year=year,
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
        prev_month_expense=prev_total_expense,
        change_percent=change_percent,
        category_breakdown=dict(category_breakdown),
        payment_method_breakdown=dict(payment_method_breakdown),
        daily_spending=dict(sorted(daily_spending.items())),
        expense_count=len(expenses),
        income_count=len(incomes)
    )
