"""Settlements router: group balances, settling up, and UPI payment links."""

from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user, get_notification_service
from errors import ValidationError
from utils.balances import calculate_group_balances, calculate_net_balances
from utils.notifications import NotificationService
from utils.settlements import (
    cancel_settlement,
    generate_payment_link,
    list_settlements,
    mark_as_paid,
    request_settlement,
    to_settlement_schema,
)
from utils.validation import get_group_or_404, get_membership, verify_group_membership


router = APIRouter(prefix="/settlements", tags=["settlements"])


def _name(user: models.User) -> str:
    return user.full_name or user.email


@router.get("/group/{group_id}/balances", response_model=list[schemas.GroupBalance])
def get_group_balances(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    return calculate_group_balances(db, group_id)


@router.get("/group/{group_id}", response_model=list[schemas.Settlement])
def get_group_settlements(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    return list_settlements(db, group_id)


@router.post("/request", response_model=schemas.Settlement)
def create_settlement_request(
    request: schemas.SettlementRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    settlement = request_settlement(
        db,
        group_id=request.group_id,
        from_user_id=current_user.id,
        to_user_id=request.to_user_id,
        amount=request.amount
    )
    result = to_settlement_schema(db, settlement)

    group = get_group_or_404(db, request.group_id)
    notifier.send_payment_request(db, settlement, group.name, _name(current_user))
    return result


@router.post("/{settlement_id}/pay", response_model=schemas.Settlement)
def pay_settlement(
    settlement_id: int,
    payment: schemas.SettlementPay,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    settlement = mark_as_paid(
        db,
        settlement_id,
        requesting_user_id=current_user.id,
        payment_method=payment.payment_method,
        transaction_id=payment.transaction_id
    )
    result = to_settlement_schema(db, settlement)

    group = get_group_or_404(db, settlement.group_id)
    notifier.send_payment_received(db, settlement, group.name, _name(current_user))
    return result


@router.post("/{settlement_id}/cancel", response_model=schemas.Settlement)
def cancel_settlement_request(
    settlement_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    settlement = cancel_settlement(db, settlement_id, current_user.id)
    return to_settlement_schema(db, settlement)


@router.post("/{settlement_id}/upi-link", response_model=schemas.UpiLink)
def get_upi_link(
    settlement_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    return generate_payment_link(db, settlement_id, current_user.id)


@router.post("/group/{group_id}/remind")
def send_payment_reminder(
    group_id: int,
    reminder: schemas.PaymentReminderRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service)
):
    """Remind a member who owes money. The caller must be owed money in the group."""
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)
    if reminder.user_id == current_user.id:
        raise ValidationError("You cannot remind yourself", field="user_id")
    if not get_membership(db, group_id, reminder.user_id):
        raise ValidationError("User is not a member of this group", field="user_id")

    balances = calculate_net_balances(db, group_id)
    owed_to_me = balances.get(current_user.id, 0)
    they_owe = -balances.get(reminder.user_id, 0)
    if owed_to_me <= 0:
        raise ValidationError("You are not owed any money in this group", field="user_id")
    if they_owe <= 0:
        raise ValidationError("This member does not owe any money", field="user_id")

    amount = min(owed_to_me, they_owe)
    notification = notifier.send_payment_reminder(
        db,
        user_id=reminder.user_id,
        group_id=group_id,
        amount=amount,
        group_name=group.name,
        creditor_id=current_user.id,
        creditor_name=_name(current_user)
    )
    return {"message": "Reminder sent", "amount": amount, "sent": notification is not None}
