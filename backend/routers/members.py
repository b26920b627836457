"""Members router: add and remove group members."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from errors import ConflictError, NotFoundError, ValidationError
from utils.balances import calculate_net_balances
from utils.currency import format_currency
from utils.validation import get_group_or_404, get_membership, get_user_by_email, verify_group_admin


router = APIRouter(prefix="/groups/{group_id}", tags=["members"])


@router.post("/members", response_model=schemas.GroupMember)
def add_group_member(
    group_id: int, 
    member_add: schemas.GroupMemberAdd, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_admin(db, group_id, current_user.id)

    user = get_user_by_email(db, member_add.email.strip())
    if not user:
        raise NotFoundError("User not found with this email")

    if get_membership(db, group_id, user.id):
        raise ConflictError("User is already a member of this group")

    new_member = models.GroupMember(group_id=group_id, user_id=user.id, role="member")
    db.add(new_member)
    db.commit()
    db.refresh(new_member)

    return schemas.GroupMember(
        id=new_member.id,
        user_id=user.id,
        full_name=user.full_name or user.email,
        email=user.email,
        role=new_member.role,
        joined_at=new_member.joined_at
    )


@router.delete("/members/{user_id}")
def remove_group_member(
    group_id: int, 
    user_id: int, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_admin(db, group_id, current_user.id)

    member = get_membership(db, group_id, user_id)
    if not member:
        raise NotFoundError("Member not found in group")

    if member.role == "admin":
        admin_count = db.query(models.GroupMember).filter(
            models.GroupMember.group_id == group_id,
            models.GroupMember.role == "admin"
        ).count()
        if admin_count == 1:
            raise ValidationError("Cannot remove the last admin from the group", field="user_id")

    # Only members with a zero balance can leave
    balance = calculate_net_balances(db, group_id).get(user_id, 0)
    if balance != 0:
        raise ConflictError(
            f"Member still has an outstanding balance of {format_currency(abs(balance))} in this group"
        )

    db.delete(member)
    db.commit()

    return {"message": "Member removed successfully"}
