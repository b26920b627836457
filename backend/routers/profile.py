"""Profile router: contact details and the UPI id other members pay into."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.validation import normalize_upi_id


router = APIRouter(tags=["profile"])


@router.get("/users/me/profile", response_model=schemas.UserProfile)
def get_profile(current_user: Annotated[models.User, Depends(get_current_user)]):
    return current_user


@router.put("/users/me/profile", response_model=schemas.UserProfile)
def update_profile(
    profile_data: schemas.ProfileUpdateRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """
    Update the caller's profile. Fields left out are unchanged;
    an empty upi_id removes it.
    """
    if profile_data.full_name is not None:
        current_user.full_name = profile_data.full_name.strip() or current_user.full_name
    if profile_data.phone_number is not None:
        current_user.phone_number = profile_data.phone_number.strip() or None
    if profile_data.upi_id is not None:
        current_user.upi_id = normalize_upi_id(profile_data.upi_id)

    db.commit()
    db.refresh(current_user)
    return current_user
