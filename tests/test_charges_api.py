"""End-to-end charge flows through the HTTP API."""

import pytest

from syspay.services.charges.repository import ChargeRepository

CARD = {
    "cardHolderName": "Ana Souza",
    "cardToken": "tok_secret",
    "cardLastDigits": "4242",
    "cardBrand": "VISA",
    "installments": 3,
}


def test_create_pix_charge(client, admin, user, pix_payload):
    """A valid PIX charge is persisted as PENDING with its PIX artifacts."""

    _, admin_headers = admin
    user_id, _ = user
    resp = client.post("/api/charges", json=pix_payload(user_id), headers=admin_headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "success"
    data = body["data"]
    assert data["status"] == "PENDING"
    assert data["amount"] == 100.5
    assert data["userId"] == user_id
    assert data["expiresAt"].startswith("2030-01-01T12:00:00")
    assert data["pixData"]["qrCode"]
    assert data["pixData"]["emvCode"]
    assert data["creditCardData"] is None
    assert data["user"]["id"] == user_id


def test_create_credit_card_charge_hides_token(client, admin, user):
    _, admin_headers = admin
    user_id, _ = user
    payload = {"amount": 100, "paymentMethod": "CREDIT_CARD", "userId": user_id, "creditCardData": CARD}
    resp = client.post("/api/charges", json=payload, headers=admin_headers)

    assert resp.status_code == 201
    card = resp.json()["data"]["creditCardData"]
    assert card["installmentAmount"] == 33.33
    assert "cardToken" not in card
    assert resp.json()["data"]["expiresAt"] is None


def test_create_boleto_charge(client, admin, user):
    _, admin_headers = admin
    user_id, _ = user
    payload = {
        "amount": 59.9,
        "paymentMethod": "BOLETO",
        "userId": user_id,
        "boletoData": {"dueDate": "2030-02-10T00:00:00Z"},
    }
    resp = client.post("/api/charges", json=payload, headers=admin_headers)

    assert resp.status_code == 201
    boleto = resp.json()["data"]["boletoData"]
    assert len(boleto["barcode"]) == 44
    assert boleto["digitableLine"]
    assert boleto["boletoUrl"].startswith("https://")


def test_duplicate_idempotency_key_conflicts(client, admin, user, pix_payload):
    _, admin_headers = admin
    user_id, _ = user
    payload = pix_payload(user_id, idempotencyKey="order-42")

    first = client.post("/api/charges", json=payload, headers=admin_headers)
    second = client.post("/api/charges", json=payload, headers=admin_headers)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["errors"][0]["field"] == "idempotencyKey"
    listed = client.get("/api/charges", headers=admin_headers).json()
    assert listed["count"] == 1


def test_idempotency_race_maps_to_conflict(client, admin, user, pix_payload, monkeypatch):
    """A key that slips past the lookup is caught by the unique constraint."""

    _, admin_headers = admin
    user_id, _ = user
    payload = pix_payload(user_id, idempotencyKey="race-1")
    assert client.post("/api/charges", json=payload, headers=admin_headers).status_code == 201

    monkeypatch.setattr(ChargeRepository, "find_by_idempotency_key", lambda self, db, key: None)
    resp = client.post("/api/charges", json=payload, headers=admin_headers)

    assert resp.status_code == 409
    assert resp.json()["message"] == "duplicate idempotency key"


def test_unknown_user_is_not_found(client, admin, pix_payload):
    _, admin_headers = admin
    resp = client.post(
        "/api/charges", json=pix_payload("6f1c3e0a-0000-4000-8000-000000000000"), headers=admin_headers
    )

    assert resp.status_code == 404
    assert resp.json()["message"] == "user not found"


def test_missing_sub_payload_is_bad_request(client, admin, user):
    _, admin_headers = admin
    user_id, _ = user
    resp = client.post(
        "/api/charges", json={"amount": 10, "paymentMethod": "PIX", "userId": user_id}, headers=admin_headers
    )

    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "pixData"


def test_invalid_body_lists_every_field(client, admin):
    _, admin_headers = admin
    resp = client.post(
        "/api/charges", json={"amount": -1, "paymentMethod": "CASH", "userId": "nope"}, headers=admin_headers
    )

    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == "error"
    assert body["statusCode"] == 400
    assert body["path"] == "/api/charges"
    assert {"amount", "paymentMethod", "userId"} <= {e["field"] for e in body["errors"]}


def test_status_transitions(client, admin, user, pix_payload):
    """PENDING -> PAID stamps paidAt; PAID -> PENDING is rejected."""

    _, admin_headers = admin
    user_id, _ = user
    charge_id = client.post("/api/charges", json=pix_payload(user_id), headers=admin_headers).json()["data"]["id"]

    paid = client.patch(f"/api/charges/{charge_id}/status", json={"status": "PAID"}, headers=admin_headers)
    assert paid.status_code == 200
    assert paid.json()["data"]["status"] == "PAID"
    assert paid.json()["data"]["paidAt"] is not None

    back = client.patch(f"/api/charges/{charge_id}/status", json={"status": "PENDING"}, headers=admin_headers)
    assert back.status_code == 400
    assert back.json()["message"] == "Invalid transition: PAID -> PENDING"

    current = client.get(f"/api/charges/{charge_id}", headers=admin_headers).json()["data"]
    assert current["status"] == "PAID"


def test_refund_keeps_paid_at(client, admin, user, pix_payload):
    """PAID -> REFUNDED leaves paidAt alone; REFUNDED is terminal."""

    _, admin_headers = admin
    user_id, _ = user
    charge_id = client.post("/api/charges", json=pix_payload(user_id), headers=admin_headers).json()["data"]["id"]
    url = f"/api/charges/{charge_id}/status"

    paid_at = client.patch(url, json={"status": "PAID"}, headers=admin_headers).json()["data"]["paidAt"]
    assert paid_at is not None

    refunded = client.patch(url, json={"status": "REFUNDED"}, headers=admin_headers)
    assert refunded.status_code == 200
    assert refunded.json()["data"]["status"] == "REFUNDED"
    assert refunded.json()["data"]["paidAt"] == paid_at

    again = client.patch(url, json={"status": "PAID"}, headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Invalid transition: REFUNDED -> PAID"
    assert client.get(f"/api/charges/{charge_id}", headers=admin_headers).json()["data"]["paidAt"] == paid_at


@pytest.mark.parametrize("status", ["FAILED", "EXPIRED", "CANCELLED"])
def test_pending_can_close_without_payment(client, admin, user, pix_payload, status):
    _, admin_headers = admin
    user_id, _ = user
    charge_id = client.post("/api/charges", json=pix_payload(user_id), headers=admin_headers).json()["data"]["id"]

    resp = client.patch(f"/api/charges/{charge_id}/status", json={"status": status}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == status
    assert resp.json()["data"]["paidAt"] is None

    reopen = client.patch(f"/api/charges/{charge_id}/status", json={"status": "PAID"}, headers=admin_headers)
    assert reopen.status_code == 400


def test_update_missing_charge_is_not_found(client, admin):
    _, admin_headers = admin
    resp = client.patch(
        "/api/charges/6f1c3e0a-0000-4000-8000-000000000000/status",
        json={"status": "PAID"},
        headers=admin_headers,
    )
    assert resp.status_code == 404


def test_malformed_charge_id_is_bad_request(client, admin):
    _, admin_headers = admin
    assert client.get("/api/charges/not-a-uuid", headers=admin_headers).status_code == 400


def test_list_is_newest_first_and_filterable(client, admin, make_user, pix_payload):
    _, admin_headers = admin
    first_user, _ = make_user()
    second_user, _ = make_user()
    ids = []
    for owner in (first_user, second_user, first_user):
        resp = client.post("/api/charges", json=pix_payload(owner), headers=admin_headers)
        ids.append(resp.json()["data"]["id"])

    everything = client.get("/api/charges", headers=admin_headers).json()
    assert everything["count"] == 3
    assert [c["id"] for c in everything["data"]] == list(reversed(ids))

    mine = client.get("/api/charges", params={"userId": first_user}, headers=admin_headers).json()
    assert {c["userId"] for c in mine["data"]} == {first_user}

    none_paid = client.get("/api/charges", params={"status": "PAID"}, headers=admin_headers).json()
    assert none_paid["count"] == 0

    page = client.get("/api/charges", params={"limit": 1, "offset": 1}, headers=admin_headers).json()
    assert [c["id"] for c in page["data"]] == [ids[1]]


def test_requests_without_session_are_unauthorized(client):
    resp = client.get("/api/charges")
    assert resp.status_code == 401
    assert resp.json()["status"] == "error"
