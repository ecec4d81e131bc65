"""
Tests for the transaction endpoints.

These tests verify:
  - Creating transactions with fixed and relative due dates
  - Request validation (due date rules, positive amounts, party required)
  - Listing: ordering by resolved due date, derived balances, filters
  - Parties, update, delete and the include-in-balance toggle
  - The due-date and balance endpoints
"""

import uuid

import pytest


async def _create(client, **fields):
    """POST a transaction; defaults to a 100 deposit due 2024-01-01."""
    body = {"type": "deposit", "amount": 100, "party": "Test Party"}
    if "relative_due_date_transaction_id" not in fields:
        body["date"] = "2024-01-01"
    body.update(fields)
    response = await client.post("/transactions", json=body)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# Create Tests
# ---------------------------------------------------------------------------

class TestCreateTransaction:
    """Tests for POST /transactions."""

    async def test_create_fixed_date(self, authenticated_client):
        response = await authenticated_client.post(
            "/transactions",
            json={
                "type": "deposit",
                "amount": 250000,
                "party": "Employer",
                "description": "January salary",
                "date": "2024-01-31",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["type"] == "deposit"
        assert data["amount"] == 250000
        assert data["date"] == "2024-01-31"
        assert data["relative_due_date_transaction_id"] is None
        assert data["applied"] is False
        assert data["include_in_balance"] is True

    async def test_create_relative_date(self, authenticated_client):
        anchor = await _create(authenticated_client)
        data = await _create(
            authenticated_client,
            type="withdraw",
            relative_due_date_transaction_id=anchor["id"],
            relative_due_date_offset_days=30,
        )
        assert data["date"] is None
        assert data["relative_due_date_transaction_id"] == anchor["id"]
        assert data["relative_due_date_offset_days"] == 30

    @pytest.mark.parametrize(
        "fields",
        [
            {},  # no due date at all
            {"amount": 0, "date": "2024-01-01"},
            {"amount": -5, "date": "2024-01-01"},
            {"amount": 2**63, "date": "2024-01-01"},  # beyond a 64-bit column
            {"party": "", "date": "2024-01-01"},
            {"type": "transfer", "date": "2024-01-01"},
        ],
    )
    async def test_invalid_bodies_are_rejected(self, authenticated_client, fields):
        body = {"type": "deposit", "amount": 100, "party": "Test Party"}
        body.update(fields)
        response = await authenticated_client.post("/transactions", json=body)
        assert response.status_code == 422

    async def test_fixed_and_relative_together_rejected(self, authenticated_client):
        anchor = await _create(authenticated_client)
        response = await authenticated_client.post(
            "/transactions",
            json={
                "type": "deposit",
                "amount": 100,
                "party": "Test Party",
                "date": "2024-01-01",
                "relative_due_date_transaction_id": anchor["id"],
                "relative_due_date_offset_days": 3,
            },
        )
        assert response.status_code == 422

    async def test_relative_without_offset_rejected(self, authenticated_client):
        anchor = await _create(authenticated_client)
        response = await authenticated_client.post(
            "/transactions",
            json={
                "type": "deposit",
                "amount": 100,
                "party": "Test Party",
                "relative_due_date_transaction_id": anchor["id"],
            },
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("offset", [0, -1])
    async def test_new_offsets_must_be_positive(self, authenticated_client, offset):
        anchor = await _create(authenticated_client)
        response = await authenticated_client.post(
            "/transactions",
            json={
                "type": "deposit",
                "amount": 100,
                "party": "Test Party",
                "relative_due_date_transaction_id": anchor["id"],
                "relative_due_date_offset_days": offset,
            },
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Listing Tests
# ---------------------------------------------------------------------------

class TestListTransactions:
    """Tests for GET /transactions."""

    async def test_listing_orders_by_due_date_with_balances(self, authenticated_client):
        await authenticated_client.put("/settings", json={"baseline_balance": 100})
        late = await _create(authenticated_client, amount=50, date="2024-03-01")
        early = await _create(authenticated_client, amount=1000, date="2024-01-01")
        relative = await _create(
            authenticated_client,
            type="withdraw",
            amount=400,
            relative_due_date_transaction_id=early["id"],
            relative_due_date_offset_days=5,
        )

        response = await authenticated_client.get("/transactions")
        assert response.status_code == 200
        data = response.json()

        rows = data["transactions"]
        assert [row["transaction"]["id"] for row in rows] == [early["id"], relative["id"], late["id"]]
        assert [row["balance"] for row in rows] == [1100, 700, 750]
        assert rows[1]["due_date_resolved"] == "2024-01-06"
        assert rows[1]["due_date_status"] == "resolved"
        assert data["number_of_transactions"] == 3
        assert data["total_number_of_transactions"] == 3
        assert data["baseline_balance"] == 100
        assert data["current_total_balance"] == 750

    async def test_filters(self, authenticated_client):
        await _create(authenticated_client, party="Landlord", type="withdraw", amount=1200,
                      description="rent", date="2024-02-01")
        await _create(authenticated_client, party="Employer", amount=3000,
                      description="salary", date="2024-01-31")
        await _create(authenticated_client, party="Grocer", type="withdraw", amount=80,
                      description="weekly shop", date="2024-02-03")

        async def parties_for(query):
            response = await authenticated_client.get(f"/transactions?{query}")
            assert response.status_code == 200
            return [row["transaction"]["party"] for row in response.json()["transactions"]]

        assert await parties_for("party=Land") == ["Landlord"]
        assert await parties_for("type=withdraw") == ["Landlord", "Grocer"]
        assert await parties_for("min_amount=1000") == ["Employer", "Landlord"]
        assert await parties_for("max_amount=100") == ["Grocer"]
        assert await parties_for("keywords=shop") == ["Grocer"]
        assert await parties_for("min_date=2024-02-01") == ["Landlord", "Grocer"]
        assert await parties_for("max_date=2024-02-01") == ["Employer", "Landlord"]

    async def test_filtered_count_vs_total(self, authenticated_client):
        await _create(authenticated_client, party="Alpha")
        await _create(authenticated_client, party="Beta")

        data = (await authenticated_client.get("/transactions?party=Alpha")).json()
        assert data["number_of_transactions"] == 1
        assert data["total_number_of_transactions"] == 2

    async def test_parties_most_recent_first(self, authenticated_client):
        await _create(authenticated_client, party="Alpha")
        await _create(authenticated_client, party="Beta")
        await _create(authenticated_client, party="Alpha")

        response = await authenticated_client.get("/transactions/parties")
        assert response.status_code == 200
        assert set(response.json()) == {"Alpha", "Beta"}
        assert len(response.json()) == 2


# ---------------------------------------------------------------------------
# Single-transaction Tests
# ---------------------------------------------------------------------------

class TestSingleTransaction:
    """Get, update, delete and toggle a single transaction."""

    async def test_get_missing_transaction(self, authenticated_client):
        response = await authenticated_client.get(f"/transactions/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_type"] == "transaction_not_found"

    async def test_update_fields(self, authenticated_client):
        created = await _create(authenticated_client)
        response = await authenticated_client.put(
            f"/transactions/{created['id']}",
            json={
                "type": "withdraw",
                "amount": 75,
                "party": "Utility Co",
                "description": "electricity",
                "date": "2024-04-15",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "withdraw"
        assert data["amount"] == 75
        assert data["party"] == "Utility Co"
        assert data["date"] == "2024-04-15"

    async def test_update_can_switch_to_relative(self, authenticated_client):
        anchor = await _create(authenticated_client, date="2024-05-01")
        created = await _create(authenticated_client, date="2024-01-01")

        response = await authenticated_client.put(
            f"/transactions/{created['id']}",
            json={
                "type": "deposit",
                "amount": 100,
                "party": "Test Party",
                "relative_due_date_transaction_id": anchor["id"],
                "relative_due_date_offset_days": -2,
            },
        )
        assert response.status_code == 200
        assert response.json()["date"] is None

        due = await authenticated_client.get(f"/transactions/{created['id']}/due-date")
        assert due.json()["due_date"] == "2024-04-29"

    async def test_update_missing_transaction(self, authenticated_client):
        response = await authenticated_client.put(
            f"/transactions/{uuid.uuid4()}",
            json={"type": "deposit", "amount": 1, "party": "X", "date": "2024-01-01"},
        )
        assert response.status_code == 404

    async def test_delete(self, authenticated_client):
        created = await _create(authenticated_client)

        response = await authenticated_client.delete(f"/transactions/{created['id']}")
        assert response.status_code == 204

        response = await authenticated_client.delete(f"/transactions/{created['id']}")
        assert response.status_code == 404

    async def test_include_in_balance_toggle(self, authenticated_client):
        deposit = await _create(authenticated_client, amount=1000, date="2024-01-01")
        withdrawal = await _create(
            authenticated_client,
            type="withdraw",
            amount=400,
            relative_due_date_transaction_id=deposit["id"],
            relative_due_date_offset_days=5,
        )

        response = await authenticated_client.put(
            f"/transactions/{deposit['id']}/include-in-balance",
            json={"include_in_balance": False},
        )
        assert response.status_code == 200
        assert response.json()["include_in_balance"] is False

        balance = await authenticated_client.get(f"/transactions/{withdrawal['id']}/balance")
        assert balance.json()["balance"] == -400


# ---------------------------------------------------------------------------
# Derived Value Tests
# ---------------------------------------------------------------------------

class TestDerivedValues:
    """Tests for the due-date and balance endpoints."""

    async def test_due_date_chain(self, authenticated_client):
        anchor = await _create(authenticated_client, date="2024-01-01")
        middle = await _create(
            authenticated_client,
            relative_due_date_transaction_id=anchor["id"],
            relative_due_date_offset_days=10,
        )
        leaf = await _create(
            authenticated_client,
            relative_due_date_transaction_id=middle["id"],
            relative_due_date_offset_days=7,
        )

        response = await authenticated_client.get(f"/transactions/{leaf['id']}/due-date")
        assert response.status_code == 200
        assert response.json() == {
            "transaction_id": leaf["id"],
            "due_date": "2024-01-18",
            "status": "resolved",
        }

    async def test_due_date_missing_transaction(self, authenticated_client):
        response = await authenticated_client.get(f"/transactions/{uuid.uuid4()}/due-date")
        assert response.status_code == 404

    async def test_balance_scenario(self, authenticated_client):
        """Deposit 1000 on 2024-01-01, withdraw 400 five days later."""
        deposit = await _create(authenticated_client, amount=1000, date="2024-01-01")
        withdrawal = await _create(
            authenticated_client,
            type="withdraw",
            amount=400,
            relative_due_date_transaction_id=deposit["id"],
            relative_due_date_offset_days=5,
        )

        first = await authenticated_client.get(f"/transactions/{deposit['id']}/balance")
        second = await authenticated_client.get(f"/transactions/{withdrawal['id']}/balance")

        assert first.json() == {"transaction_id": deposit["id"], "balance": 1000}
        assert second.json() == {"transaction_id": withdrawal["id"], "balance": 600}

    async def test_balance_missing_transaction(self, authenticated_client):
        response = await authenticated_client.get(f"/transactions/{uuid.uuid4()}/balance")
        assert response.status_code == 404
