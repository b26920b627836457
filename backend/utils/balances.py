"""Balance calculation for group members."""

from typing import Dict

from sqlalchemy.orm import Session

import models
import schemas


def balance_status(balance: int) -> str:
    """'owed' if others owe this member, 'owes' if the member owes, else 'settled'."""
    if balance > 0:
        return "owed"
    if balance < 0:
        return "owes"
    return "settled"


def calculate_net_balances(db: Session, group_id: int) -> Dict[int, int]:
    """
    Calculate net balances for everyone involved in a group.

    balance = (sum of expenses the user paid) - (sum of splits assigned to them),
    adjusted by paid settlements: the debtor gains the settled amount and the
    creditor gives it up. Every member starts at zero, as does anyone who shows
    up as a payer or split assignee without being a member (e.g. a removed member).

    Returns:
        Dictionary mapping user_id to net balance in paise, in member join order.
    """
    members = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id
    ).order_by(models.GroupMember.joined_at, models.GroupMember.id).all()

    net_balances: Dict[int, int] = {m.user_id: 0 for m in members}

    expenses = db.query(models.Expense).filter(models.Expense.group_id == group_id).all()
    expense_ids = [e.id for e in expenses]

    for expense in expenses:
        net_balances[expense.payer_id] = net_balances.get(expense.payer_id, 0) + expense.amount

    if expense_ids:
        splits = db.query(models.ExpenseSplit).filter(
            models.ExpenseSplit.expense_id.in_(expense_ids)
        ).all()
        for split in splits:
            net_balances[split.user_id] = net_balances.get(split.user_id, 0) - split.amount_owed

    paid_settlements = db.query(models.Settlement).filter(
        models.Settlement.group_id == group_id,
        models.Settlement.status == "paid"
    ).all()
    for settlement in paid_settlements:
        net_balances[settlement.from_user_id] = net_balances.get(settlement.from_user_id, 0) + settlement.amount
        net_balances[settlement.to_user_id] = net_balances.get(settlement.to_user_id, 0) - settlement.amount

    return net_balances


def calculate_group_balances(db: Session, group_id: int) -> list[schemas.GroupBalance]:
    """Net balances resolved with each user's display name and email."""
    net_balances = calculate_net_balances(db, group_id)

    users = {}
    if net_balances:
        users = {
            u.id: u for u in db.query(models.User).filter(
                models.User.id.in_(list(net_balances.keys()))
            ).all()
        }

    result = []
    for user_id, balance in net_balances.items():
        user = users.get(user_id)
        result.append(schemas.GroupBalance(
            user_id=user_id,
            user_name=(user.full_name or user.email) if user else "Unknown User",
            user_email=user.email if user else "No email",
            balance=balance,
            status=balance_status(balance)
        ))
    return result
