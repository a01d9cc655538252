"""Tests for FastAPI endpoints."""

from uuid import uuid4

import pytest
from httpx import Client

from fund_nav_engine.api.app import create_app, get_db
from fund_nav_engine.repositories.sqlite import SQLiteDatabase


@pytest.fixture
def test_db() -> SQLiteDatabase:
    """Create an in-memory test database with thread-safety disabled for testing."""
    db = SQLiteDatabase(":memory:", check_same_thread=False)
    db.initialize()
    return db


@pytest.fixture
def test_client(test_db: SQLiteDatabase) -> Client:
    """Create a test client with the test database."""
    from starlette.testclient import TestClient

    app = create_app()

    def override_get_db() -> SQLiteDatabase:
        return test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[SQLiteDatabase] = override_get_db

    return TestClient(app)


@pytest.fixture
def fund_id(test_client: Client) -> str:
    response = test_client.post(
        "/funds",
        json={
            "code": "GOF",
            "name": "Global Opportunities Fund",
            "inception_date": "2024-01-01",
        },
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def account_id(test_client: Client, fund_id: str) -> str:
    response = test_client.post(
        "/capital-accounts",
        json={
            "fund_id": fund_id,
            "investor_id": str(uuid4()),
            "account_number": "INV-0001",
            "inception_date": "2024-01-01",
        },
    )
    assert response.status_code == 201
    return response.json()["id"]


def nav_payload(fund_id: str, valuation_date: str = "2024-01-31") -> dict:
    return {
        "fund_id": fund_id,
        "valuation_date": valuation_date,
        "total_shares": "1000000",
        "actor_id": str(uuid4()),
        "line_items": [
            {
                "kind": "asset",
                "category": "equity",
                "description": "Listed equities",
                "amount": "10000000",
            },
            {
                "kind": "liability",
                "category": "accrued_expense",
                "description": "Accrued expenses",
                "amount": "500000",
            },
        ],
    }


def approved_nav(test_client: Client, fund_id: str, valuation_date: str = "2024-01-31") -> dict:
    nav = test_client.post("/nav", json=nav_payload(fund_id, valuation_date)).json()
    test_client.post(f"/nav/{nav['id']}/submit", json={})
    response = test_client.post(
        f"/nav/{nav['id']}/approve", json={"approver_id": str(uuid4())}
    )
    assert response.status_code == 200
    return response.json()


class TestHealthEndpoint:
    def test_health_check_returns_ok(self, test_client: Client) -> None:
        response = test_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"


class TestFundEndpoints:
    def test_create_fund_returns_201(self, test_client: Client) -> None:
        response = test_client.post("/funds", json={"code": "ABC", "name": "ABC Fund"})
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "ABC"
        assert data["base_currency"] == "USD"
        assert data["status"] == "active"

    def test_duplicate_code_returns_422(self, test_client: Client, fund_id: str) -> None:
        response = test_client.post("/funds", json={"code": "GOF", "name": "Again"})
        assert response.status_code == 422
        assert response.json()["kind"] == "ValidationError"

    def test_get_unknown_fund_returns_404(self, test_client: Client) -> None:
        response = test_client.get(f"/funds/{uuid4()}")
        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "FUND_NOT_FOUND"
        assert data["kind"] == "NotFoundError"

    def test_close_twice_returns_409(self, test_client: Client, fund_id: str) -> None:
        assert test_client.post(f"/funds/{fund_id}/close").status_code == 200
        response = test_client.post(f"/funds/{fund_id}/close")
        assert response.status_code == 409
        assert response.json()["kind"] == "StateConflictError"

    def test_share_classes(self, test_client: Client, fund_id: str) -> None:
        response = test_client.post(
            f"/funds/{fund_id}/share-classes",
            json={"class_code": "A", "class_name": "Class A", "minimum_investment": "100000"},
        )
        assert response.status_code == 201
        assert response.json()["currency"] == "USD"
        assert response.json()["price_precision"] == 4

        listed = test_client.get(f"/funds/{fund_id}/share-classes").json()
        assert [sc["class_code"] for sc in listed] == ["A"]

    def test_fee_structures(self, test_client: Client, fund_id: str) -> None:
        response = test_client.post(
            f"/funds/{fund_id}/fee-structures",
            json={"fee_type": "management", "rate": "2", "effective_from": "2024-01-01"},
        )
        assert response.status_code == 201
        assert response.json()["frequency"] == "monthly"

        listed = test_client.get(f"/funds/{fund_id}/fee-structures").json()
        assert len(listed) == 1


class TestNAVEndpoints:
    def test_calculate_returns_draft(self, test_client: Client, fund_id: str) -> None:
        response = test_client.post("/nav", json=nav_payload(fund_id))
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "draft"
        assert data["version"] == 1
        assert data["net_asset_value"] == "9500000"
        assert data["nav_per_share"] == "9.5000"

    def test_line_items(self, test_client: Client, fund_id: str) -> None:
        nav = test_client.post("/nav", json=nav_payload(fund_id)).json()
        response = test_client.get(f"/nav/{nav['id']}/line-items")
        assert response.status_code == 200
        assert [item["sort_order"] for item in response.json()] == [0, 1]

    def test_approval_flow_and_latest(self, test_client: Client, fund_id: str) -> None:
        first = approved_nav(test_client, fund_id)
        second = approved_nav(test_client, fund_id)

        assert test_client.get(f"/nav/{first['id']}").json()["status"] == "superseded"
        latest = test_client.get("/nav/latest", params={"fund_id": fund_id})
        assert latest.status_code == 200
        assert latest.json()["id"] == second["id"]
        assert latest.json()["version"] == 2

    def test_latest_without_approval_returns_404(
        self, test_client: Client, fund_id: str
    ) -> None:
        response = test_client.get("/nav/latest", params={"fund_id": fund_id})
        assert response.status_code == 404

    def test_approve_draft_returns_409(self, test_client: Client, fund_id: str) -> None:
        nav = test_client.post("/nav", json=nav_payload(fund_id)).json()
        response = test_client.post(
            f"/nav/{nav['id']}/approve", json={"approver_id": str(uuid4())}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_TRANSITION"

    def test_reject(self, test_client: Client, fund_id: str) -> None:
        nav = test_client.post("/nav", json=nav_payload(fund_id)).json()
        response = test_client.post(
            f"/nav/{nav['id']}/reject", json={"note": "Stale prices"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["rejection_note"] == "Stale prices"

    def test_history_and_review_queue(self, test_client: Client, fund_id: str) -> None:
        approved_nav(test_client, fund_id, "2024-02-29")
        approved_nav(test_client, fund_id, "2024-01-31")
        pending = test_client.post("/nav", json=nav_payload(fund_id, "2024-03-31")).json()

        history = test_client.get("/nav/history", params={"fund_id": fund_id}).json()
        assert [n["valuation_date"] for n in history] == ["2024-01-31", "2024-02-29"]

        review = test_client.get("/nav/review", params={"fund_id": fund_id}).json()
        assert [n["id"] for n in review] == [pending["id"]]

    def test_negative_shares_returns_422(self, test_client: Client, fund_id: str) -> None:
        payload = nav_payload(fund_id)
        payload["total_shares"] = "-1"
        response = test_client.post("/nav", json=payload)
        assert response.status_code == 422
        assert response.json()["error"] == "INVALID_AMOUNT"


class TestCapitalAccountEndpoints:
    def test_record_and_list_transactions(
        self, test_client: Client, account_id: str
    ) -> None:
        response = test_client.post(
            f"/capital-accounts/{account_id}/transactions",
            json={
                "transaction_type": "subscription",
                "amount": "9500",
                "shares": "1000",
                "transaction_date": "2024-01-15",
            },
        )
        assert response.status_code == 201
        assert response.json()["price_per_share"] == "9.5"

        account = test_client.get(f"/capital-accounts/{account_id}").json()
        assert account["shares_owned"] == "1000"
        assert account["version"] == 1

        txns = test_client.get(f"/capital-accounts/{account_id}/transactions").json()
        assert len(txns) == 1

    def test_over_redemption_returns_422(self, test_client: Client, account_id: str) -> None:
        response = test_client.post(
            f"/capital-accounts/{account_id}/transactions",
            json={"transaction_type": "redemption", "amount": "1", "shares": "1"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "INSUFFICIENT_SHARES"


class TestRedemptionEndpoints:
    def test_full_redemption_flow(
        self, test_client: Client, fund_id: str, account_id: str
    ) -> None:
        test_client.post(
            f"/capital-accounts/{account_id}/transactions",
            json={"transaction_type": "subscription", "amount": "9500", "shares": "1000"},
        )
        approved_nav(test_client, fund_id)

        created = test_client.post(
            "/redemptions",
            json={
                "account_id": account_id,
                "redemption_type": "full",
                "redemption_date": "2024-02-15",
            },
        )
        assert created.status_code == 201
        request_id = created.json()["id"]
        assert created.json()["amount_requested"] == "9500.00"

        reviewed = test_client.post(
            f"/redemptions/{request_id}/review", json={"decision": "approve"}
        )
        assert reviewed.json()["status"] == "approved"

        processed = test_client.post(
            f"/redemptions/{request_id}/process", json={"settlement_date": "2024-02-20"}
        )
        assert processed.status_code == 200
        assert processed.json()["transaction_type"] == "redemption"

        account = test_client.get(f"/capital-accounts/{account_id}").json()
        assert account["shares_owned"] == "0"
        assert account["status"] == "redeemed"

        again = test_client.post(f"/redemptions/{request_id}/process", json={})
        assert again.status_code == 409

        completed = test_client.get(
            "/redemptions", params={"fund_id": fund_id, "status": "completed"}
        ).json()
        assert [r["id"] for r in completed] == [request_id]

    def test_reject_without_reason_returns_422(
        self, test_client: Client, fund_id: str, account_id: str
    ) -> None:
        test_client.post(
            f"/capital-accounts/{account_id}/transactions",
            json={"transaction_type": "subscription", "amount": "9500", "shares": "1000"},
        )
        created = test_client.post(
            "/redemptions",
            json={
                "account_id": account_id,
                "redemption_type": "partial",
                "redemption_date": "2024-02-15",
                "shares": "10",
                "amount": "95",
            },
        ).json()

        response = test_client.post(
            f"/redemptions/{created['id']}/review", json={"decision": "reject"}
        )
        assert response.status_code == 422


class TestPerformanceEndpoints:
    def test_calculate_and_list(
        self, test_client: Client, fund_id: str, account_id: str
    ) -> None:
        test_client.post(
            f"/capital-accounts/{account_id}/transactions",
            json={
                "transaction_type": "subscription",
                "amount": "10000000",
                "shares": "1000000",
                "transaction_date": "2024-01-15",
            },
        )
        approved_nav(test_client, fund_id, "2024-12-31")

        response = test_client.post(
            "/performance",
            json={
                "fund_id": fund_id,
                "period_type": "inception_to_date",
                "as_of_date": "2024-12-31",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["rvpi"] == "0.9500"
        assert data["tvpi"] == data["moic"]

        listed = test_client.get(
            "/performance",
            params={"fund_id": fund_id, "period_type": "inception_to_date"},
        ).json()
        assert len(listed) == 1


class TestDistributionEndpoints:
    def test_distribution_flow(
        self, test_client: Client, fund_id: str, account_id: str
    ) -> None:
        test_client.post(
            f"/capital-accounts/{account_id}/transactions",
            json={"transaction_type": "subscription", "amount": "9500", "shares": "1000"},
        )

        created = test_client.post(
            "/distributions",
            json={
                "fund_id": fund_id,
                "amount_per_share": "0.25",
                "record_date": "2024-03-31",
                "payment_date": "2024-04-15",
            },
        )
        assert created.status_code == 201
        distribution_id = created.json()["id"]
        assert created.json()["status"] == "pending"
        assert created.json()["total_amount"] == "250.00"

        allocations = test_client.get(
            f"/distributions/{distribution_id}/allocations"
        ).json()
        assert [a["capital_account_id"] for a in allocations] == [account_id]

        early = test_client.post(f"/distributions/{distribution_id}/process")
        assert early.status_code == 409

        approved = test_client.post(
            f"/distributions/{distribution_id}/approve", json={}
        )
        assert approved.json()["status"] == "approved"

        processed = test_client.post(f"/distributions/{distribution_id}/process")
        assert processed.status_code == 200
        assert [t["transaction_type"] for t in processed.json()] == ["distribution"]

        account = test_client.get(f"/capital-accounts/{account_id}").json()
        assert account["capital_returned"] == "250.00"

        completed = test_client.get(
            "/distributions", params={"fund_id": fund_id, "status": "completed"}
        ).json()
        assert [d["id"] for d in completed] == [distribution_id]

    def test_distribution_without_holders_returns_422(
        self, test_client: Client, fund_id: str, account_id: str
    ) -> None:
        response = test_client.post(
            "/distributions",
            json={
                "fund_id": fund_id,
                "amount_per_share": "1",
                "record_date": "2024-03-31",
                "payment_date": "2024-04-15",
            },
        )
        assert response.status_code == 422
