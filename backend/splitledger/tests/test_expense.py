"""
Tests for expense and group endpoints.
"""
from conftest import auth_headers


def expense_payload(paid_by, user_ids, **overrides):
    payload = {
        "title": "Taxi",
        "total_amount": "60.00",
        "paid_by": paid_by,
        "split_method": "equal",
        "expense_date": "2024-05-01",
        "participants": [{"user_id": uid} for uid in user_ids],
    }
    payload.update(overrides)
    return payload


def test_create_group(client, users):
    alice, bob, _ = users
    response = client.post(
        "/api/groups",
        json={"name": "Trip", "member_ids": [bob.id]},
        headers=auth_headers(alice)
    )
    assert response.status_code == 201
    body = response.json()
    assert [m["user_id"] for m in body["members"]] == [alice.id, bob.id]


def test_group_access_and_members(client, users, group):
    alice, bob, carol = users
    assert client.get(f"/api/groups/{group.id}", headers=auth_headers(carol)).status_code == 200

    duplicate = client.post(
        f"/api/groups/{group.id}/members",
        json={"user_id": bob.id},
        headers=auth_headers(alice)
    )
    assert duplicate.status_code == 400


def test_create_expense(client, users):
    """Test expense creation."""
    alice, bob, carol = users
    response = client.post(
        "/api/expenses",
        json=expense_payload(alice.id, [alice.id, bob.id, carol.id]),
        headers=auth_headers(alice)
    )
    assert response.status_code == 201
    body = response.json()
    assert body["split_method"] == "equal"
    assert [p["amount_owed"] for p in body["participants"]] == ["20.00", "20.00", "20.00"]


def test_create_expense_invalid_split(client, users):
    alice, bob, _ = users
    payload = expense_payload(
        alice.id, [],
        split_method="percentage",
        participants=[{"user_id": bob.id, "percentage": "80"}],
    )
    response = client.post("/api/expenses", json=payload, headers=auth_headers(alice))
    assert response.status_code == 400
    assert response.json()["error"] == "Percentages must add up to 100"


def test_get_expenses(client, users):
    alice, bob, carol = users
    headers = auth_headers(alice)
    created = client.post("/api/expenses", json=expense_payload(alice.id, [bob.id]), headers=headers).json()

    listed = client.get("/api/expenses", headers=auth_headers(bob))
    assert listed.status_code == 200
    assert [e["id"] for e in listed.json()] == [created["id"]]

    assert client.get(f"/api/expenses/{created['id']}", headers=auth_headers(bob)).status_code == 200
    assert client.get(f"/api/expenses/{created['id']}", headers=auth_headers(carol)).status_code == 403
    assert client.get("/api/expenses/999", headers=headers).status_code == 404


def test_update_expense(client, users):
    """Test expense update."""
    alice, bob, _ = users
    created = client.post(
        "/api/expenses", json=expense_payload(alice.id, [alice.id, bob.id]), headers=auth_headers(alice)
    ).json()

    forbidden = client.put(f"/api/expenses/{created['id']}", json={"title": "Mine"}, headers=auth_headers(bob))
    assert forbidden.status_code == 403

    response = client.put(
        f"/api/expenses/{created['id']}",
        json={"total_amount": "80"},
        headers=auth_headers(alice)
    )
    assert response.status_code == 200
    assert [p["amount_owed"] for p in response.json()["participants"]] == ["40.00", "40.00"]


def test_update_settled_expense_rejected(client, users):
    alice, bob, _ = users
    created = client.post(
        "/api/expenses", json=expense_payload(alice.id, [bob.id]), headers=auth_headers(alice)
    ).json()
    client.post(
        "/api/settlements",
        json={"from_user_id": bob.id, "to_user_id": alice.id, "amount": "60", "expense_id": created["id"]},
        headers=auth_headers(bob)
    )

    response = client.put(f"/api/expenses/{created['id']}", json={"title": "Late"}, headers=auth_headers(alice))
    assert response.status_code == 400


def test_delete_expense(client, users):
    """Test expense deletion."""
    alice, bob, _ = users
    created = client.post(
        "/api/expenses", json=expense_payload(alice.id, [bob.id]), headers=auth_headers(alice)
    ).json()

    response = client.delete(f"/api/expenses/{created['id']}", headers=auth_headers(alice))
    assert response.status_code == 204
    assert client.get(f"/api/expenses/{created['id']}", headers=auth_headers(alice)).status_code == 404


def test_group_expense_requires_membership(client, users):
    alice, bob, carol = users
    group = client.post("/api/groups", json={"name": "Pair", "member_ids": [bob.id]}, headers=auth_headers(alice)).json()

    response = client.post(
        "/api/expenses",
        json=expense_payload(carol.id, [carol.id], group_id=group["id"]),
        headers=auth_headers(carol)
    )
    assert response.status_code == 403


def test_update_cannot_blank_title(client, users):
    alice, bob, _ = users
    created = client.post(
        "/api/expenses", json=expense_payload(alice.id, [bob.id]), headers=auth_headers(alice)
    ).json()

    response = client.put(f"/api/expenses/{created['id']}", json={"title": ""}, headers=auth_headers(alice))
    assert response.status_code == 422

    fetched = client.get(f"/api/expenses/{created['id']}", headers=auth_headers(alice)).json()
    assert fetched["title"] == "Taxi"
