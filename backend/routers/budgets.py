"""Budgets router: monthly category limits and how much of each is spent."""

from datetime import date
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user, get_today
from errors import NotFoundError
from utils.notifications import monthly_category_spend
from utils.validation import validate_amount


router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=list[schemas.BudgetWithSpent])
def read_budgets(
    current_user: Annotated[models.User, Depends(get_current_user)],
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=9999),
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    month = month or today.month
    year = year or today.year

    budgets = db.query(models.Budget).filter(
        models.Budget.user_id == current_user.id,
        models.Budget.month == month,
        models.Budget.year == year
    ).order_by(models.Budget.category).all()

    result = []
    for budget in budgets:
        spent = monthly_category_spend(db, current_user.id, budget.category, year, month)
        percentage = spent * 100 / budget.limit if budget.limit else 0.0
        result.append(schemas.BudgetWithSpent(
            id=budget.id,
            category=budget.category,
            limit=budget.limit,
            month=budget.month,
            year=budget.year,
            spent=spent,
            remaining=budget.limit - spent,
            percentage=min(round(percentage, 1), 100.0)
        ))
    return result


@router.post("", response_model=schemas.Budget)
def set_budget(
    budget: schemas.BudgetCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    """Create or replace the limit for a category and month."""
    validate_amount(budget.limit, field="limit")
    month = budget.month or today.month
    year = budget.year or today.year

    db_budget = db.query(models.Budget).filter(
        models.Budget.user_id == current_user.id,
        models.Budget.category == budget.category,
        models.Budget.month == month,
        models.Budget.year == year
    ).first()
    if db_budget:
        db_budget.limit = budget.limit
    else:
        db_budget = models.Budget(
            user_id=current_user.id,
            category=budget.category,
            limit=budget.limit,
            month=month,
            year=year
        )
        db.add(db_budget)
    db.commit()
    db.refresh(db_budget)
    return db_budget


@router.delete("/{budget_id}")
def delete_budget(
    budget_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    budget = db.query(models.Budget).filter(
        models.Budget.id == budget_id,
        models.Budget.user_id == current_user.id
    ).first()
    if not budget:
        raise NotFoundError("Budget not found")
    db.delete(budget)
    db.commit()
    return {"message": "Budget deleted"}
