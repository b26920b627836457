from models import Settlement
from utils.balances import balance_status, calculate_net_balances

def _add_group_expense(client, headers, group_id, amount, splits=None, category="Food"):
    payload = {
        "amount": amount,
        "description": "Dinner",
        "category": category,
        "date": "2026-03-10",
        "payment_method": "UPI",
    }
    if splits is not None:
        payload["splits"] = splits
    resp = client.post(f"/groups/{group_id}/expenses", headers=headers, json=payload)
    assert resp.status_code == 200, resp.json()
    return resp.json()

def test_equal_split_three_members(client, auth_headers, group_of_three, test_user, other_user, third_user):
    # Test User pays 90.00 split three ways: owed 60, the others owe 30 each
    _add_group_expense(client, auth_headers, group_of_three, 9000)

    response = client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers)
    assert response.status_code == 200
    balances = {b["user_id"]: b for b in response.json()}

    assert balances[test_user.id]["balance"] == 6000
    assert balances[test_user.id]["status"] == "owed"
    assert balances[other_user.id]["balance"] == -3000
    assert balances[other_user.id]["status"] == "owes"
    assert balances[third_user.id]["balance"] == -3000
    assert balances[third_user.id]["user_name"] == "Third User"
    assert balances[third_user.id]["user_email"] == "third@example.com"
    assert sum(b["balance"] for b in balances.values()) == 0

def test_custom_splits_and_multiple_payers(client, auth_headers, other_headers, group_of_three, test_user, other_user, third_user):
    _add_group_expense(client, auth_headers, group_of_three, 10000, splits=[
        {"user_id": test_user.id, "amount": 2000},
        {"user_id": other_user.id, "amount": 5000},
        {"user_id": third_user.id, "amount": 3000},
    ])
    _add_group_expense(client, other_headers, group_of_three, 4500)

    balances = {
        b["user_id"]: b["balance"]
        for b in client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers).json()
    }
    # test: +10000 - 2000 - 1500; other: +4500 - 5000 - 1500; third: -3000 - 1500
    assert balances[test_user.id] == 6500
    assert balances[other_user.id] == -2000
    assert balances[third_user.id] == -4500
    assert sum(balances.values()) == 0

def test_uneven_equal_split_conserves_money(client, auth_headers, group_of_three, test_user, other_user, third_user):
    expense = _add_group_expense(client, auth_headers, group_of_three, 10000)
    owed = {s["user_id"]: s["amount_owed"] for s in expense["splits"]}
    # Leftover paisa goes to the first member in join order
    assert owed == {test_user.id: 3334, other_user.id: 3333, third_user.id: 3333}

    balances = client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers).json()
    assert sum(b["balance"] for b in balances) == 0

def test_members_without_activity_are_settled(client, auth_headers, group_of_three):
    balances = client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers).json()
    assert len(balances) == 3
    assert all(b["balance"] == 0 and b["status"] == "settled" for b in balances)

def test_paid_settlement_moves_both_parties(client, auth_headers, other_headers, group_of_three, test_user, other_user, third_user):
    _add_group_expense(client, auth_headers, group_of_three, 9000)

    settlement = client.post("/settlements/request", headers=other_headers, json={
        "group_id": group_of_three, "to_user_id": test_user.id, "amount": 3000
    }).json()

    # Pending settlements do not count
    balances = {b["user_id"]: b for b in client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers).json()}
    assert balances[other_user.id]["balance"] == -3000

    client.post(f"/settlements/{settlement['id']}/pay", headers=other_headers, json={
        "payment_method": "UPI", "transaction_id": "TXN123"
    })

    balances = {b["user_id"]: b for b in client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers).json()}
    assert balances[other_user.id]["balance"] == 0
    assert balances[other_user.id]["status"] == "settled"
    assert balances[test_user.id]["balance"] == 3000
    assert balances[third_user.id]["balance"] == -3000
    assert sum(b["balance"] for b in balances.values()) == 0

def test_cancelled_settlement_has_no_effect(db_session, client, auth_headers, group_of_three, test_user, other_user):
    _add_group_expense(client, auth_headers, group_of_three, 9000)
    db_session.add(Settlement(
        group_id=group_of_three, from_user_id=other_user.id, to_user_id=test_user.id,
        amount=3000, status="cancelled"
    ))
    db_session.commit()

    net = calculate_net_balances(db_session, group_of_three)
    assert net[other_user.id] == -3000
    assert net[test_user.id] == 6000

def test_removed_member_keeps_balance(client, auth_headers, group_of_three, third_user):
    _add_group_expense(client, auth_headers, group_of_three, 9000)
    client.delete(f"/groups/{group_of_three}/members/{third_user.id}", headers=auth_headers)

    balances = {b["user_id"]: b["balance"] for b in client.get(f"/settlements/group/{group_of_three}/balances", headers=auth_headers).json()}
    assert balances[third_user.id] == -3000
    assert sum(balances.values()) == 0

def test_balances_require_membership(client, auth_headers, group_of_three, make_user):
    from conftest import headers_for
    outsider = make_user("outsider@example.com", "Outsider")
    response = client.get(f"/settlements/group/{group_of_three}/balances", headers=headers_for(outsider))
    assert response.status_code == 403

def test_balances_unknown_group(client, auth_headers):
    response = client.get("/settlements/group/999/balances", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "Group not found"

def test_balance_status():
    assert balance_status(1) == "owed"
    assert balance_status(-1) == "owes"
    assert balance_status(0) == "settled"
