"""
Settlement lifecycle: request, pay, cancel, list, and payment links.

    pending --mark_as_paid--> paid
    pending --cancel--------> cancelled

paid and cancelled are terminal. Transitions out of pending are a single
conditional UPDATE ... WHERE status = 'pending', so two concurrent callers
cannot both succeed.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models
import schemas
from errors import (
    AuthorizationError,
    ConflictError,
    ExternalDependencyError,
    NotFoundError,
    ValidationError,
)
from utils.upi import build_upi_link
from utils.validation import (
    get_group_or_404,
    get_membership,
    validate_amount,
    validate_settlement_payment_method,
    validate_transaction_id,
)

logger = logging.getLogger(__name__)


def get_settlement_or_404(db: Session, settlement_id: int) -> models.Settlement:
    settlement = db.query(models.Settlement).filter(models.Settlement.id == settlement_id).first()
    if not settlement:
        raise NotFoundError("Settlement not found")
    return settlement


def find_pending_settlement(
    db: Session, group_id: int, from_user_id: int, to_user_id: int
) -> Optional[models.Settlement]:
    return db.query(models.Settlement).filter(
        models.Settlement.group_id == group_id,
        models.Settlement.from_user_id == from_user_id,
        models.Settlement.to_user_id == to_user_id,
        models.Settlement.status == "pending"
    ).first()


def request_settlement(
    db: Session, group_id: int, from_user_id: int, to_user_id: int, amount: int
) -> models.Settlement:
    """
    Open a pending settlement from a debtor to a creditor.

    Raises:
        ValidationError: self-payment or an amount outside 1..99,999,999 paise
        NotFoundError: the group does not exist
        AuthorizationError: either user is not a member of the group
        ConflictError: a pending settlement already exists for this pair;
            its id is carried on the error
    """
    if from_user_id == to_user_id:
        raise ValidationError("You cannot settle a payment with yourself", field="to_user_id")
    validate_amount(amount)

    get_group_or_404(db, group_id)
    if not get_membership(db, group_id, from_user_id):
        raise AuthorizationError("You are not a member of this group")
    if not get_membership(db, group_id, to_user_id):
        raise AuthorizationError("The payee is not a member of this group")

    existing = find_pending_settlement(db, group_id, from_user_id, to_user_id)
    if existing:
        raise ConflictError(
            "A pending settlement already exists for this payee",
            settlement_id=existing.id
        )

    settlement = models.Settlement(
        group_id=group_id,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        amount=amount,
        status="pending"
    )
    db.add(settlement)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent request for the same pair
        db.rollback()
        existing = find_pending_settlement(db, group_id, from_user_id, to_user_id)
        raise ConflictError(
            "A pending settlement already exists for this payee",
            settlement_id=existing.id if existing else None
        )
    db.refresh(settlement)
    logger.info(
        f"Settlement {settlement.id} requested in group {group_id}: "
        f"user {from_user_id} -> user {to_user_id}, {amount} paise"
    )
    return settlement


def _transition_from_pending(db: Session, settlement_id: int, values: dict) -> bool:
    """Compare-and-swap on status. True if this call moved the row out of pending."""
    values = {**values, "updated_at": datetime.utcnow()}
    updated = db.query(models.Settlement).filter(
        models.Settlement.id == settlement_id,
        models.Settlement.status == "pending"
    ).update(values, synchronize_session=False)
    db.commit()
    return updated == 1


def mark_as_paid(
    db: Session,
    settlement_id: int,
    requesting_user_id: int,
    payment_method: Optional[str],
    transaction_id: Optional[str],
    paid_at: Optional[datetime] = None
) -> models.Settlement:
    """
    Record that the debtor paid. Only the debtor may call this, and only once.

    Raises:
        NotFoundError, AuthorizationError, ValidationError, ConflictError
    """
    settlement = get_settlement_or_404(db, settlement_id)
    if settlement.from_user_id != requesting_user_id:
        raise AuthorizationError("Only the payer can mark this settlement as paid")

    payment_method = validate_settlement_payment_method(payment_method)
    transaction_id = validate_transaction_id(transaction_id)

    if settlement.status != "pending":
        raise ConflictError(f"Settlement is already {settlement.status}", settlement_id=settlement.id)

    moved = _transition_from_pending(db, settlement_id, {
        "status": "paid",
        "payment_method": payment_method,
        "transaction_id": transaction_id,
        "paid_at": paid_at or datetime.utcnow(),
    })
    db.refresh(settlement)
    if not moved:
        raise ConflictError(f"Settlement is already {settlement.status}", settlement_id=settlement.id)

    logger.info(f"Settlement {settlement.id} marked paid via {payment_method} ({transaction_id})")
    return settlement


def cancel_settlement(db: Session, settlement_id: int, requesting_user_id: int) -> models.Settlement:
    """Either party may cancel a settlement while it is still pending."""
    settlement = get_settlement_or_404(db, settlement_id)
    if requesting_user_id not in (settlement.from_user_id, settlement.to_user_id):
        raise AuthorizationError("Only the payer or payee can cancel this settlement")

    if settlement.status != "pending":
        raise ConflictError(f"Settlement is already {settlement.status}", settlement_id=settlement.id)

    moved = _transition_from_pending(db, settlement_id, {"status": "cancelled"})
    db.refresh(settlement)
    if not moved:
        raise ConflictError(f"Settlement is already {settlement.status}", settlement_id=settlement.id)

    logger.info(f"Settlement {settlement.id} cancelled by user {requesting_user_id}")
    return settlement


def _display_name(user: Optional[models.User], fallback: str) -> str:
    if not user:
        return fallback
    return user.full_name or user.email


def to_settlement_schema(db: Session, settlement: models.Settlement, users: dict = None) -> schemas.Settlement:
    """Resolve debtor and creditor names at read time."""
    if users is None:
        users = {
            u.id: u for u in db.query(models.User).filter(
                models.User.id.in_([settlement.from_user_id, settlement.to_user_id])
            ).all()
        }
    payer = users.get(settlement.from_user_id)
    payee = users.get(settlement.to_user_id)
    return schemas.Settlement(
        id=settlement.id,
        group_id=settlement.group_id,
        from_user_id=settlement.from_user_id,
        from_user_name=_display_name(payer, "Unknown User"),
        from_user_email=payer.email if payer else "No email",
        to_user_id=settlement.to_user_id,
        to_user_name=_display_name(payee, "Unknown User"),
        to_user_email=payee.email if payee else "No email",
        amount=settlement.amount,
        status=settlement.status,
        payment_method=settlement.payment_method,
        transaction_id=settlement.transaction_id,
        paid_at=settlement.paid_at,
        created_at=settlement.created_at
    )


def list_settlements(db: Session, group_id: int) -> list[schemas.Settlement]:
    """All settlements of a group, newest first."""
    settlements = db.query(models.Settlement).filter(
        models.Settlement.group_id == group_id
    ).order_by(models.Settlement.created_at.desc(), models.Settlement.id.desc()).all()

    user_ids = {s.from_user_id for s in settlements} | {s.to_user_id for s in settlements}
    users = {}
    if user_ids:
        users = {u.id: u for u in db.query(models.User).filter(models.User.id.in_(user_ids)).all()}

    return [to_settlement_schema(db, s, users) for s in settlements]


def generate_payment_link(db: Session, settlement_id: int, requesting_user_id: int) -> schemas.UpiLink:
    """
    Build the UPI link the debtor opens in their payment app.

    Raises:
        ExternalDependencyError: the creditor has no UPI id on their profile
    """
    settlement = get_settlement_or_404(db, settlement_id)
    if requesting_user_id not in (settlement.from_user_id, settlement.to_user_id):
        raise AuthorizationError("Only the payer or payee can view this payment link")

    payee = db.query(models.User).filter(models.User.id == settlement.to_user_id).first()
    if not payee or not (payee.upi_id or "").strip():
        raise ExternalDependencyError(
            "Payee has not set up their UPI ID. Please ask them to add it in their profile settings."
        )

    payer = db.query(models.User).filter(models.User.id == settlement.from_user_id).first()
    upi_id = payee.upi_id.strip()
    payee_name = _display_name(payee, "Payee")
    note = f"Payment from {_display_name(payer, 'Group Member')}"

    upi_link = build_upi_link(upi_id, payee_name, settlement.amount, note)
    return schemas.UpiLink(
        upi_link=upi_link,
        qr_data=upi_link,
        amount=settlement.amount,
        payee_name=payee_name,
        payee_upi_id=upi_id,
        settlement_id=settlement.id
    )
