from datetime import timedelta

from models import Notification
from conftest import FROZEN_NOW


def _notify(db_session, user, **fields):
    notification = Notification(
        user_id=user.id,
        type=fields.get("type", "budget_warning"),
        title=fields.get("title", "Budget Warning"),
        message=fields.get("message", "You've used 80.0% of your Food budget."),
        category="Food",
        is_read=fields.get("is_read", False),
        created_at=fields.get("created_at", FROZEN_NOW)
    )
    db_session.add(notification)
    db_session.commit()
    db_session.refresh(notification)
    return notification

def test_list_newest_first_and_limited(client, db_session, auth_headers, test_user, other_user):
    older = _notify(db_session, test_user, created_at=FROZEN_NOW - timedelta(hours=2))
    newer = _notify(db_session, test_user, type="budget_exceeded")
    _notify(db_session, other_user)

    response = client.get("/notifications", headers=auth_headers)
    assert response.status_code == 200
    assert [n["id"] for n in response.json()] == [newer.id, older.id]

    limited = client.get("/notifications?limit=1", headers=auth_headers).json()
    assert [n["id"] for n in limited] == [newer.id]

def test_mark_read_and_unread_count(client, db_session, auth_headers, test_user):
    first = _notify(db_session, test_user)
    _notify(db_session, test_user)
    assert client.get("/notifications/unread-count", headers=auth_headers).json() == {"count": 2}

    response = client.put(f"/notifications/{first.id}/read", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert client.get("/notifications/unread-count", headers=auth_headers).json() == {"count": 1}

    response = client.put("/notifications/read-all", headers=auth_headers)
    assert response.json()["updated"] == 1
    assert client.get("/notifications/unread-count", headers=auth_headers).json() == {"count": 0}

def test_cannot_read_someone_elses_notification(client, db_session, auth_headers, other_user):
    theirs = _notify(db_session, other_user)
    response = client.put(f"/notifications/{theirs.id}/read", headers=auth_headers)
    assert response.status_code == 404
    db_session.refresh(theirs)
    assert theirs.is_read is False

def test_settlement_request_and_payment_notify_creditor(client, db_session, other_headers, group_of_three, test_user, other_user):
    settlement = client.post("/settlements/request", headers=other_headers, json={
        "group_id": group_of_three, "to_user_id": test_user.id, "amount": 3000
    }).json()
    client.post(f"/settlements/{settlement['id']}/pay", headers=other_headers, json={
        "payment_method": "Cash", "transaction_id": "CASH-001"
    })

    notifications = db_session.query(Notification).filter(
        Notification.user_id == test_user.id
    ).order_by(Notification.id).all()
    assert [n.type for n in notifications] == ["payment_request", "payment_received"]
    assert all(n.settlement_id == settlement["id"] for n in notifications)
    assert all(n.from_user_id == other_user.id for n in notifications)
    assert "₹30.00" in notifications[1].message
    assert "Other User" in notifications[1].message

    # Debtor gets nothing
    assert db_session.query(Notification).filter(Notification.user_id == other_user.id).count() == 0

def test_payment_reminder(client, db_session, auth_headers, group_of_three, test_user, other_user):
    client.post(f"/groups/{group_of_three}/expenses", headers=auth_headers, json={
        "amount": 9000, "description": "Hotel", "category": "Travel", "date": "2026-03-10"
    })

    response = client.post(f"/settlements/group/{group_of_three}/remind", headers=auth_headers, json={
        "user_id": other_user.id
    })
    assert response.status_code == 200
    assert response.json()["amount"] == 3000
    assert response.json()["sent"] is True

    reminder = db_session.query(Notification).filter(Notification.user_id == other_user.id).one()
    assert reminder.type == "payment_reminder"
    assert reminder.amount == 3000
    assert "Test User" in reminder.message

def test_reminder_requires_creditor_and_debtor(client, auth_headers, other_headers, group_of_three, test_user, other_user, third_user):
    client.post(f"/groups/{group_of_three}/expenses", headers=auth_headers, json={
        "amount": 9000, "description": "Hotel", "category": "Travel", "date": "2026-03-10"
    })

    # Other User owes, so cannot remind anyone
    response = client.post(f"/settlements/group/{group_of_three}/remind", headers=other_headers, json={
        "user_id": third_user.id
    })
    assert response.status_code == 400

    response = client.post(f"/settlements/group/{group_of_three}/remind", headers=auth_headers, json={
        "user_id": test_user.id
    })
    assert response.status_code == 400
