from urllib.parse import parse_qsl, urlsplit

from utils.upi import build_upi_link

def _request(client, headers, group_id, to_user_id, amount=3000):
    return client.post("/settlements/request", headers=headers, json={
        "group_id": group_id, "to_user_id": to_user_id, "amount": amount
    }).json()

def test_link_format():
    link = build_upi_link("asha@okaxis", "Asha Rao", 3000, "Payment from Ravi K")
    assert link == "upi://pay?pa=asha%40okaxis&pn=Asha+Rao&am=30.00&cu=INR&tn=Payment+from+Ravi+K"

def test_link_key_order_and_round_trip():
    link = build_upi_link("Mixed.Case@ybl", "R & D Team", 5, "Rent / March")
    parts = urlsplit(link)
    assert parts.scheme == "upi"
    keys = [k for k, _ in parse_qsl(parts.query)]
    assert keys == ["pa", "pn", "am", "cu", "tn"]
    assert dict(parse_qsl(parts.query)) == {
        "pa": "Mixed.Case@ybl",
        "pn": "R & D Team",
        "am": "0.05",
        "cu": "INR",
        "tn": "Rent / March",
    }

def test_amount_two_decimals():
    assert "am=1000.00" in build_upi_link("a@b", "A", 100000, "n")
    assert "am=999999.99" in build_upi_link("a@b", "A", 99_999_999, "n")

def test_link_requires_payee_upi_id(client, other_headers, group_of_three, test_user):
    settlement = _request(client, other_headers, group_of_three, test_user.id)
    response = client.post(f"/settlements/{settlement['id']}/upi-link", headers=other_headers)
    assert response.status_code == 400
    assert "UPI ID" in response.json()["detail"]

def test_link_after_payee_sets_upi_id(client, auth_headers, other_headers, group_of_three, test_user):
    settlement = _request(client, other_headers, group_of_three, test_user.id)

    resp = client.put("/users/me/profile", headers=auth_headers, json={"upi_id": "  Test.User@OKSBI "})
    assert resp.status_code == 200

    response = client.post(f"/settlements/{settlement['id']}/upi-link", headers=other_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["payee_upi_id"] == "Test.User@OKSBI"
    assert data["payee_name"] == "Test User"
    assert data["amount"] == 3000
    assert data["settlement_id"] == settlement["id"]
    assert data["upi_link"] == (
        "upi://pay?pa=Test.User%40OKSBI&pn=Test+User&am=30.00&cu=INR&tn=Payment+from+Other+User"
    )
    assert data["qr_data"] == data["upi_link"]

def test_link_limited_to_parties(client, other_headers, third_headers, group_of_three, test_user):
    settlement = _request(client, other_headers, group_of_three, test_user.id)
    response = client.post(f"/settlements/{settlement['id']}/upi-link", headers=third_headers)
    assert response.status_code == 403

def test_link_unknown_settlement(client, auth_headers):
    assert client.post("/settlements/999/upi-link", headers=auth_headers).status_code == 404
