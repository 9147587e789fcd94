"""
E2E walkthrough of a lending circle through the HTTP command channel.

The app runs with its lifespan (table creation, hydration, sweep scheduler)
against the test database, then a second app over the same store proves
committed state survives a restart.

Members:
- Alice: the circle's only lender
- Bob: borrows $300 monthly, pays part of it
- Carol: asks for more than the $1000 cap
"""

import pytest
from fastapi.testclient import TestClient

from peer_ledger.api.main import create_app
from peer_ledger.domain.engine import LedgerEngine


def register(client: TestClient, name: str, role: str) -> str:
    response = client.post("/v1/users", json={"name": name, "role": role})
    assert response.status_code == 201
    return response.json()["changes"]["users"]["inserted"][0]["id"]


@pytest.mark.integration
def test_circle_survives_restart(session_factory):
    """
    Fund, lend and repay, then restart the service
    Expected: same version, balances and journal after hydration
    """
    with TestClient(create_app(engine=LedgerEngine(), session_factory=session_factory)) as client:
        alice = register(client, "Alice", "lender")
        client.post("/v1/capital/deposit", json={"amount_cents": 50_000}, headers={"X-User-Id": alice})
        bob = register(client, "Bob", "borrower")
        loan = client.post(
            "/v1/loans",
            json={"principal_cents": 30_000, "schedule": "monthly"},
            headers={"X-User-Id": bob},
        ).json()["changes"]["loans"]["inserted"][0]["id"]
        client.post(f"/v1/loans/{loan}/decision", json={"approve": True}, headers={"X-User-Id": alice})
        client.post(
            f"/v1/loans/{loan}/payments",
            json={"amount_cents": 15_000, "method": "mobile"},
            headers={"X-User-Id": bob},
        )

        carol = register(client, "Carol", "borrower")
        response = client.post(
            "/v1/loans",
            json={"principal_cents": 120_000, "schedule": "weekly"},
            headers={"X-User-Id": carol},
        )
        assert response.status_code == 409

        before = client.get("/v1/snapshot").json()
        assert before["version"] == 7

    with TestClient(create_app(engine=LedgerEngine(), session_factory=session_factory)) as client:
        after = client.get("/v1/snapshot").json()
        assert after == before

        summary = client.get("/v1/capital/summary").json()
        assert summary["available_capital_cents"] == 33_200
        assert summary["interest_earned_cents"] == 1_800

        borrower = client.get(f"/v1/borrowers/{bob}/summary").json()
        assert borrower["amount_due_cents"] == 16_800

        # Commands keep numbering from the stored version
        response = client.post("/v1/capital/deposit", json={"amount_cents": 1_000}, headers={"X-User-Id": alice})
        assert response.json()["version"] == 8


@pytest.mark.integration
def test_lender_only_actions_for_borrowers(session_factory):
    """
    A borrower tries every lender action
    Expected: each is refused with 403 and nothing is committed
    """
    with TestClient(create_app(engine=LedgerEngine(), session_factory=session_factory)) as client:
        register(client, "Alice", "lender")
        bob = register(client, "Bob", "borrower")
        headers = {"X-User-Id": bob}

        assert client.post("/v1/capital/deposit", json={"amount_cents": 100}, headers=headers).status_code == 403
        assert client.post("/v1/capital/withdraw", json={"amount_cents": 100}, headers=headers).status_code == 403
        assert client.post("/v1/loans/x/decision", json={"approve": True}, headers=headers).status_code == 403
        assert client.post("/v1/reset", headers=headers).status_code == 403

        assert client.get("/health").json()["version"] == 2
