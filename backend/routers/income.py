"""Income router: list, record and delete income."""

from datetime import date
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user, get_today
from errors import NotFoundError
from routers.expenses import normalize_date
from utils.validation import validate_amount


router = APIRouter(prefix="/income", tags=["income"])


@router.get("", response_model=list[schemas.Income])
def read_income(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return db.query(models.Income).filter(
        models.Income.user_id == current_user.id
    ).order_by(models.Income.date.desc(), models.Income.id.desc()).all()


@router.post("", response_model=schemas.Income)
def create_income(
    income: schemas.IncomeCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    today: date = Depends(get_today)
):
    validate_amount(income.amount)
    db_income = models.Income(
        amount=income.amount,
        source=income.source,
        description=income.description,
        date=normalize_date(income.date, today),
        user_id=current_user.id
    )
    db.add(db_income)
    db.commit()
    db.refresh(db_income)
    return db_income


@router.delete("/{income_id}")
def delete_income(
    income_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    income = db.query(models.Income).filter(
        models.Income.id == income_id,
        models.Income.user_id == current_user.id
    ).first()
    if not income:
        raise NotFoundError("Income not found")
    db.delete(income)
    db.commit()
    return {"message": "Income deleted"}
