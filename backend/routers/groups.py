"""Groups router: create and read groups."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.validation import get_group_or_404, verify_group_membership


router = APIRouter(prefix="/groups", tags=["groups"])


def group_members(db: Session, group_id: int) -> list[schemas.GroupMember]:
    """Members with user details, in join order."""
    members_query = db.query(models.GroupMember, models.User).join(
        models.User, models.GroupMember.user_id == models.User.id
    ).filter(
        models.GroupMember.group_id == group_id
    ).order_by(models.GroupMember.joined_at, models.GroupMember.id).all()

    return [
        schemas.GroupMember(
            id=gm.id,
            user_id=user.id,
            full_name=user.full_name or user.email,
            email=user.email,
            role=gm.role,
            joined_at=gm.joined_at
        )
        for gm, user in members_query
    ]


@router.post("", response_model=schemas.Group)
def create_group(
    group: schemas.GroupCreate, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db)
):
    db_group = models.Group(
        name=group.name,
        description=group.description,
        created_by_id=current_user.id
    )
    db.add(db_group)
    db.commit()
    db.refresh(db_group)

    # Creator is the first admin
    db_member = models.GroupMember(group_id=db_group.id, user_id=current_user.id, role="admin")
    db.add(db_member)
    db.commit()

    return db_group


@router.get("", response_model=list[schemas.Group])
def read_groups(
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db)
):
    # Get groups where user is a member
    user_groups = db.query(models.Group).join(
        models.GroupMember, 
        models.Group.id == models.GroupMember.group_id
    ).filter(models.GroupMember.user_id == current_user.id).all()
    return user_groups


@router.get("/{group_id}", response_model=schemas.GroupWithMembers)
def get_group(
    group_id: int, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    db: Session = Depends(get_db)
):
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    return schemas.GroupWithMembers(
        id=group.id,
        name=group.name,
        description=group.description,
        created_by_id=group.created_by_id,
        members=group_members(db, group_id)
    )
