"""
Budget and payment notifications.

NotificationService is built once in main.py and handed to routes through
dependencies.get_notification_service. Every notify method persists a
Notification row and then pushes it to the user's real-time room. These are
side effects of an operation that has already been committed, so failures
are logged and swallowed here rather than raised to the caller.

The service is synchronous and is called from plain `def` routes, which
FastAPI runs in its threadpool; pushes cross back to the event loop
through ConnectionManager.send.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

import models
import schemas
from errors import NotFoundError, SecondaryEffectError
from utils.currency import format_currency
from utils.realtime import ConnectionManager

logger = logging.getLogger(__name__)


BUDGET_EVENT = "budget_notification"

# Highest tier first so only one fires per check
BUDGET_THRESHOLDS = [
    (100, "budget_exceeded"),
    (90, "budget_critical"),
    (75, "budget_warning"),
]


@dataclass
class BudgetCheckResult:
    notification_type: str
    title: str
    message: str
    percentage: float


def month_prefix(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}-"


def monthly_category_spend(db: Session, user_id: int, category: str, year: int, month: int) -> int:
    """Total paise the user paid in a category during one calendar month."""
    expenses = db.query(models.Expense).filter(
        models.Expense.payer_id == user_id,
        models.Expense.category == category,
        models.Expense.date.like(f"{month_prefix(year, month)}%")
    ).all()
    return sum(e.amount for e in expenses)


def determine_budget_status(spent: int, limit: int, category: str) -> Optional[BudgetCheckResult]:
    """Classify spend against a limit into a threshold tier, or None below 75%."""
    if limit <= 0:
        return None

    percentage = spent * 100 / limit
    for threshold, notification_type in BUDGET_THRESHOLDS:
        # Integer comparison keeps exact boundaries exact
        if spent * 100 >= limit * threshold:
            break
    else:
        return None

    if notification_type == "budget_exceeded":
        return BudgetCheckResult(
            notification_type=notification_type,
            title="Budget Exceeded!",
            message=(
                f"You've exceeded your {category} budget by {format_currency(spent - limit)}. "
                f"Consider reducing spending in this category."
            ),
            percentage=percentage
        )
    if notification_type == "budget_critical":
        return BudgetCheckResult(
            notification_type=notification_type,
            title="Budget Almost Exceeded!",
            message=(
                f"You've used {percentage:.1f}% of your {category} budget. "
                f"Only {format_currency(limit - spent)} remaining."
            ),
            percentage=percentage
        )
    return BudgetCheckResult(
        notification_type=notification_type,
        title="Budget Warning",
        message=(
            f"You've used {percentage:.1f}% of your {category} budget. "
            f"{format_currency(limit - spent)} remaining."
        ),
        percentage=percentage
    )


class NotificationService:
    def __init__(
        self,
        connections: ConnectionManager,
        cooldown_minutes: int = 60,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.connections = connections
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.clock = clock

    def check_budget_and_notify(
        self, db: Session, user_id: int, category: str
    ) -> Optional[models.Notification]:
        """
        Re-evaluate the user's current-month budget for a category after a new expense.

        The expense must already be committed; it is counted in the spend.
        Returns the notification that was sent, or None if there was no budget,
        spend is under 75%, the same tier fired within the cooldown, or
        something went wrong.
        """
        try:
            return self._check_budget(db, user_id, category)
        except Exception:
            db.rollback()
            logger.exception(f"Budget check failed for user {user_id}, category {category}")
            return None

    def _check_budget(self, db: Session, user_id: int, category: str):
        now = self.clock()
        budget = db.query(models.Budget).filter(
            models.Budget.user_id == user_id,
            models.Budget.category == category,
            models.Budget.month == now.month,
            models.Budget.year == now.year
        ).first()
        if not budget:
            return None

        spent = monthly_category_spend(db, user_id, category, now.year, now.month)
        result = determine_budget_status(spent, budget.limit, category)
        if result is None:
            return None

        if self._recently_notified(db, user_id, result.notification_type, category, now):
            logger.info(
                f"Suppressed {result.notification_type} for user {user_id} ({category}): "
                f"already sent within {self.cooldown}"
            )
            return None

        notification = models.Notification(
            user_id=user_id,
            type=result.notification_type,
            title=result.title,
            message=result.message,
            category=category,
            budget_limit=budget.limit,
            current_spent=spent,
            percentage=result.percentage,
            created_at=now
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)

        self._push(user_id, BUDGET_EVENT, {
            "type": notification.type,
            "id": notification.id,
            "title": notification.title,
            "message": notification.message,
            "category": category,
            "budget_limit": budget.limit,
            "current_spent": spent,
            "percentage": round(result.percentage, 1),
            "timestamp": notification.created_at,
        })
        logger.info(f"Budget notification sent to user {user_id}: {result.title}")
        return notification

    def _recently_notified(
        self, db: Session, user_id: int, notification_type: str, category: str, now: datetime
    ) -> bool:
        existing = db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.type == notification_type,
            models.Notification.category == category,
            models.Notification.created_at >= now - self.cooldown
        ).first()
        return existing is not None

    def _push(self, user_id: int, event_name: str, payload: dict) -> None:
        """Validate the payload against its kind and emit it to the user's room."""
        event = schemas.notification_event_adapter.validate_python(payload)
        try:
            self.connections.send(user_id, event_name, event.model_dump(mode="json"))
        except Exception as e:
            raise SecondaryEffectError(f"Real-time delivery to user {user_id} failed") from e

    def _create_and_push(self, db: Session, user_id: int, fields: dict, extra: dict):
        notification = models.Notification(user_id=user_id, created_at=self.clock(), **fields)
        db.add(notification)
        db.commit()
        db.refresh(notification)

        payload = {
            "type": notification.type,
            "id": notification.id,
            "title": notification.title,
            "message": notification.message,
            "timestamp": notification.created_at,
            **extra,
        }
        self._push(user_id, notification.type, payload)
        return notification

    def send_payment_request(
        self, db: Session, settlement: models.Settlement, group_name: str, requester_name: str
    ) -> Optional[models.Notification]:
        """Tell the creditor that a debtor has started settling up with them."""
        try:
            return self._create_and_push(
                db,
                settlement.to_user_id,
                {
                    "type": "payment_request",
                    "title": "Payment Request",
                    "message": (
                        f"{requester_name} wants to settle {format_currency(settlement.amount)} "
                        f"with you in group \"{group_name}\"."
                    ),
                    "group_id": settlement.group_id,
                    "settlement_id": settlement.id,
                    "amount": settlement.amount,
                    "from_user_id": settlement.from_user_id,
                },
                {
                    "group_id": settlement.group_id,
                    "settlement_id": settlement.id,
                    "amount": settlement.amount,
                    "from_user": requester_name,
                }
            )
        except Exception:
            db.rollback()
            logger.exception(f"Error sending payment request for settlement {settlement.id}")
            return None

    def send_payment_received(
        self, db: Session, settlement: models.Settlement, group_name: str, payer_name: str
    ) -> Optional[models.Notification]:
        try:
            return self._create_and_push(
                db,
                settlement.to_user_id,
                {
                    "type": "payment_received",
                    "title": "Payment Received",
                    "message": (
                        f"You received {format_currency(settlement.amount)} from {payer_name} "
                        f"in group \"{group_name}\"."
                    ),
                    "group_id": settlement.group_id,
                    "settlement_id": settlement.id,
                    "amount": settlement.amount,
                    "from_user_id": settlement.from_user_id,
                },
                {
                    "group_id": settlement.group_id,
                    "settlement_id": settlement.id,
                    "amount": settlement.amount,
                    "from_user": payer_name,
                }
            )
        except Exception:
            db.rollback()
            logger.exception(f"Error sending payment received for settlement {settlement.id}")
            return None

    def send_payment_reminder(
        self,
        db: Session,
        user_id: int,
        group_id: int,
        amount: int,
        group_name: str,
        creditor_id: int,
        creditor_name: str
    ) -> Optional[models.Notification]:
        try:
            return self._create_and_push(
                db,
                user_id,
                {
                    "type": "payment_reminder",
                    "title": "Payment Reminder",
                    "message": (
                        f"You owe {format_currency(amount)} to {creditor_name} in group "
                        f"\"{group_name}\". Please settle your payment."
                    ),
                    "group_id": group_id,
                    "amount": amount,
                    "from_user_id": creditor_id,
                },
                {
                    "group_id": group_id,
                    "amount": amount,
                    "creditor_name": creditor_name,
                }
            )
        except Exception:
            db.rollback()
            logger.exception(f"Error sending payment reminder to user {user_id}")
            return None

    def get_notifications(self, db: Session, user_id: int, limit: int = 20) -> list[models.Notification]:
        return db.query(models.Notification).filter(
            models.Notification.user_id == user_id
        ).order_by(
            models.Notification.created_at.desc(), models.Notification.id.desc()
        ).limit(limit).all()

    def unread_count(self, db: Session, user_id: int) -> int:
        return db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read == False
        ).count()

    def mark_as_read(self, db: Session, user_id: int, notification_id: int) -> models.Notification:
        notification = db.query(models.Notification).filter(
            models.Notification.id == notification_id,
            models.Notification.user_id == user_id
        ).first()
        if not notification:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        db.commit()
        db.refresh(notification)
        return notification

    def mark_all_as_read(self, db: Session, user_id: int) -> int:
        updated = db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            models.Notification.is_read == False
        ).update({"is_read": True}, synchronize_session=False)
        db.commit()
        return updated
