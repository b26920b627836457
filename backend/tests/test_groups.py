from conftest import headers_for


def test_create_group_makes_creator_admin(client, auth_headers, test_user):
    response = client.post("/groups", headers=auth_headers, json={"name": "  Flatmates  ", "description": "Rent and bills"})
    assert response.status_code == 200
    group = response.json()
    assert group["name"] == "Flatmates"
    assert group["created_by_id"] == test_user.id

    detail = client.get(f"/groups/{group['id']}", headers=auth_headers).json()
    assert [(m["user_id"], m["role"]) for m in detail["members"]] == [(test_user.id, "admin")]

def test_group_name_length(client, auth_headers):
    assert client.post("/groups", headers=auth_headers, json={"name": "A"}).status_code == 422
    assert client.post("/groups", headers=auth_headers, json={"name": "x" * 51}).status_code == 422

def test_members_listed_in_join_order(client, auth_headers, group_of_three, test_user, other_user, third_user):
    detail = client.get(f"/groups/{group_of_three}", headers=auth_headers).json()
    assert [m["user_id"] for m in detail["members"]] == [test_user.id, other_user.id, third_user.id]
    assert detail["members"][1]["full_name"] == "Other User"

def test_read_groups_only_returns_own(client, auth_headers, other_headers, make_user, group_of_three):
    outsider = make_user("outsider@example.com", "Outsider")
    client.post("/groups", headers=headers_for(outsider), json={"name": "Solo"})

    assert [g["id"] for g in client.get("/groups", headers=other_headers).json()] == [group_of_three]

def test_outsider_cannot_read_group(client, make_user, group_of_three):
    outsider = make_user("outsider@example.com", "Outsider")
    assert client.get(f"/groups/{group_of_three}", headers=headers_for(outsider)).status_code == 403

def test_missing_group(client, auth_headers):
    assert client.get("/groups/999", headers=auth_headers).status_code == 404

def test_add_member_rules(client, auth_headers, other_headers, make_user, group_of_three, other_user):
    newcomer = make_user("new@example.com", "New Person")

    # Only admins add members
    response = client.post(f"/groups/{group_of_three}/members", headers=other_headers, json={"email": newcomer.email})
    assert response.status_code == 403

    response = client.post(f"/groups/{group_of_three}/members", headers=auth_headers, json={"email": other_user.email})
    assert response.status_code == 400

    response = client.post(f"/groups/{group_of_three}/members", headers=auth_headers, json={"email": "nobody@example.com"})
    assert response.status_code == 404

    response = client.post(f"/groups/{group_of_three}/members", headers=auth_headers, json={"email": newcomer.email})
    assert response.status_code == 200
    assert response.json()["role"] == "member"

def test_remove_member(client, auth_headers, group_of_three, test_user, third_user):
    response = client.delete(f"/groups/{group_of_three}/members/{third_user.id}", headers=auth_headers)
    assert response.status_code == 200

    detail = client.get(f"/groups/{group_of_three}", headers=auth_headers).json()
    assert third_user.id not in [m["user_id"] for m in detail["members"]]

def test_cannot_remove_last_admin(client, auth_headers, group_of_three, test_user):
    response = client.delete(f"/groups/{group_of_three}/members/{test_user.id}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot remove the last admin from the group"

def test_member_with_outstanding_balance_cannot_be_removed(client, auth_headers, third_headers, group_of_three, test_user, third_user):
    client.post(f"/groups/{group_of_three}/expenses", headers=auth_headers, json={
        "amount": 9000, "description": "Hotel", "category": "Travel", "date": "2026-03-10"
    })

    response = client.delete(f"/groups/{group_of_three}/members/{third_user.id}", headers=auth_headers)
    assert response.status_code == 400
    assert "₹30.00" in response.json()["detail"]

    # Once the debt is settled the member can go
    settlement = client.post("/settlements/request", headers=third_headers, json={
        "group_id": group_of_three, "to_user_id": test_user.id, "amount": 3000
    }).json()
    client.post(f"/settlements/{settlement['id']}/pay", headers=third_headers, json={
        "payment_method": "Cash", "transaction_id": "CASH-9"
    })

    response = client.delete(f"/groups/{group_of_three}/members/{third_user.id}", headers=auth_headers)
    assert response.status_code == 200
