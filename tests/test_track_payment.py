from datetime import datetime, timedelta, timezone

from tests.conftest import USER_ID


def test_repeated_track_keeps_one_record(client, firestore, auth_headers):
    first = client.post(
        "/api/track-payment",
        json={"order_id": "order_X", "amount": 50000, "status": "initiated"},
        headers=auth_headers,
    )
    created_at = firestore.raw("payments", "order_X")["created_at"]
    second = client.post(
        "/api/track-payment",
        json={"order_id": "order_X", "amount": 50000, "status": "processing"},
        headers=auth_headers,
    )

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["record_id"] == first.json()["record_id"] == "order_X"
    assert len(firestore.collections["payments"]) == 1

    record = firestore.raw("payments", "order_X")
    assert record["status"] == "processing"
    assert record["created_at"] == created_at
    assert record["user_id"] == USER_ID
    assert record["plan_name"] == "Music License"
    assert record["currency"] == "INR"


def test_track_defaults_to_initiated(client, auth_headers):
    response = client.post(
        "/api/track-payment",
        json={"order_id": "order_X", "amount": 1000},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "initiated"


def test_track_requires_order_id(client, auth_headers):
    response = client.post(
        "/api/track-payment", json={"amount": 1000}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "order_id: Field required"}


def test_track_requires_login(client):
    response = client.post(
        "/api/track-payment", json={"order_id": "order_X", "amount": 1000}
    )

    assert response.status_code == 401


def test_update_records_failure_and_lookup_returns_it(client, auth_headers):
    client.post(
        "/api/track-payment",
        json={"order_id": "order_Y", "amount": 50000},
        headers=auth_headers,
    )

    update = client.put(
        "/api/track-payment",
        json={
            "order_id": "order_Y",
            "status": "failed",
            "error_message": "card declined",
        },
        headers=auth_headers,
    )
    assert update.status_code == 200
    assert update.json()["status"] == "failed"

    lookup = client.get("/api/track-payment", params={"order_id": "order_Y"})
    assert lookup.status_code == 200
    payment = lookup.json()["payment"]
    assert payment["status"] == "failed"
    assert payment["error_message"] == "card declined"
    assert payment["error_timestamp"] is not None
    # Timestamps are rendered as ISO strings
    created_at = datetime.fromisoformat(payment["created_at"].replace("Z", "+00:00"))
    assert created_at.tzinfo is not None


def test_update_by_payment_id_merges_details(client, firestore, auth_headers):
    firestore.seed(
        "payments",
        "order_Z",
        {
            "order_id": "order_Z",
            "payment_id": "pay_Z",
            "user_id": USER_ID,
            "amount": 50000,
            "currency": "INR",
            "status": "processing",
            "created_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
        },
    )

    response = client.put(
        "/api/track-payment",
        json={
            "payment_id": "pay_Z",
            "status": "completed",
            "payment_details": {"method": "upi", "order_id": "order_other"},
            "license_details": {"license_type": "personal"},
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    record = firestore.raw("payments", "order_Z")
    assert record["status"] == "completed"
    assert record["method"] == "upi"
    assert record["license_type"] == "personal"
    assert record["order_id"] == "order_Z"
    assert record["created_at"] == datetime(2024, 5, 1, tzinfo=timezone.utc)


def test_update_unknown_payment(client, auth_headers):
    response = client.put(
        "/api/track-payment",
        json={"order_id": "order_missing", "status": "failed"},
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Payment not found"}


def test_update_requires_an_identifier(client, auth_headers):
    response = client.put(
        "/api/track-payment", json={"status": "failed"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json() == {"error": "order_id or payment_id is required"}


def test_lookup_requires_an_identifier(client):
    response = client.get("/api/track-payment")

    assert response.status_code == 400


def test_lookup_unknown_payment(client):
    response = client.get("/api/track-payment", params={"payment_id": "pay_missing"})

    assert response.status_code == 404


def _seed_history(firestore, count, user_id=USER_ID):
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(count):
        firestore.seed(
            "payments",
            f"order_{i}",
            {
                "order_id": f"order_{i}",
                "user_id": user_id,
                "amount": 1000 * (i + 1),
                "currency": "INR",
                "status": "completed",
                "plan_name": "Music License",
                "notes": {},
                "created_at": start + timedelta(days=i),
            },
        )


def test_history_is_newest_first_and_paginated(client, firestore, auth_headers):
    _seed_history(firestore, 12)
    firestore.seed(
        "payments",
        "order_other_user",
        {
            "order_id": "order_other_user",
            "user_id": "someone-else",
            "amount": 1000,
            "status": "completed",
            "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        },
    )

    first_page = client.get("/api/payment-history", headers=auth_headers).json()
    assert [p["orderId"] for p in first_page["payments"]][:2] == ["order_11", "order_10"]
    assert len(first_page["payments"]) == 10
    assert first_page["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalPayments": 12,
        "hasNextPage": True,
        "hasPreviousPage": False,
    }

    second_page = client.get(
        "/api/payment-history", params={"page": 2}, headers=auth_headers
    ).json()
    assert [p["orderId"] for p in second_page["payments"]] == ["order_1", "order_0"]
    assert second_page["pagination"]["hasNextPage"] is False
    assert second_page["pagination"]["hasPreviousPage"] is True


def test_history_item_shape(client, firestore, auth_headers):
    _seed_history(firestore, 1)

    payment = client.get("/api/payment-history", headers=auth_headers).json()[
        "payments"
    ][0]

    assert payment["id"] == "order_0"
    assert payment["userId"] == USER_ID
    assert payment["amount"] == 1000
    assert payment["planName"] == "Music License"
    assert payment["createdAt"].startswith("2024-01-01")


def test_history_empty(client, auth_headers):
    body = client.get("/api/payment-history", headers=auth_headers).json()

    assert body["payments"] == []
    assert body["pagination"]["totalPages"] == 0
    assert body["pagination"]["hasNextPage"] is False


def test_history_rejects_bad_page(client, auth_headers):
    response = client.get(
        "/api/payment-history", params={"page": 0}, headers=auth_headers
    )

    assert response.status_code == 400


def test_update_rejects_details_that_break_the_record(client, firestore, auth_headers):
    client.post(
        "/api/track-payment",
        json={"order_id": "order_B", "amount": 50000},
        headers=auth_headers,
    )
    before = dict(firestore.raw("payments", "order_B"))

    response = client.put(
        "/api/track-payment",
        json={
            "order_id": "order_B",
            "status": "processing",
            "payment_details": {"amount": "50.00 INR"},
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("amount")
    assert firestore.raw("payments", "order_B") == before

    lookup = client.get("/api/track-payment", params={"order_id": "order_B"})
    assert lookup.status_code == 200
    assert lookup.json()["payment"]["amount"] == 50000
    history = client.get("/api/payment-history", headers=auth_headers)
    assert history.status_code == 200
    assert history.json()["pagination"]["totalPayments"] == 1


def test_update_rejects_dotted_detail_keys(client, firestore, auth_headers):
    client.post(
        "/api/track-payment",
        json={"order_id": "order_D", "amount": 50000},
        headers=auth_headers,
    )

    response = client.put(
        "/api/track-payment",
        json={
            "order_id": "order_D",
            "status": "processing",
            "license_details": {"license.type": "personal"},
        },
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert "license.type" in response.json()["error"]
    assert firestore.raw("payments", "order_D")["status"] == "initiated"
