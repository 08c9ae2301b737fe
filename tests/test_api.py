"""
Integration tests for the Cooperative Lending API
Tests end-to-end loan workflows using FastAPI TestClient
"""

import pytest
from datetime import date
from fastapi.testclient import TestClient

from coop_lending.api import create_app
from coop_lending.api.dependencies import LendingSystem, get_lending_system
from coop_lending.config import LendingConfig
from coop_lending.context import FixedClock
from coop_lending.storage import InMemoryStorage


HEADERS = {"X-Operator-Id": "officer-1"}


@pytest.fixture
def client():
    """Test client backed by an in-memory lending system on a fixed clock"""
    system = LendingSystem(
        storage=InMemoryStorage(),
        clock=FixedClock.on(date(2026, 1, 5)),
        config=LendingConfig()
    )
    app = create_app()
    app.dependency_overrides[get_lending_system] = lambda: system
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_member(client, number="M-0001", status="regular"):
    r = client.post("/members", json={
        "member_number": number,
        "first_name": "Maria",
        "last_name": "Santos",
        "member_status": status
    }, headers=HEADERS)
    assert r.status_code == 201
    return r.json()


def create_product(client, code="REG"):
    r = client.post("/products", json={
        "code": code,
        "name": "Regular Loan",
        "loan_type": "term",
        "interest_rate": "0.01",
        "max_term_months": 24,
        "max_amount": 100_000_000,
        "min_amount": 100_000,
        "processing_fee_rate": "0.01",
        "service_fee": 5_000
    }, headers=HEADERS)
    assert r.status_code == 201
    return r.json()


def apply(client, member_id, product_id, principal=1_000_000, term_months=2):
    return client.post("/loans", json={
        "member_id": member_id,
        "product_id": product_id,
        "principal_amount": principal,
        "term_months": term_months,
        "purpose": "Sari-sari store inventory"
    }, headers=HEADERS)


def active_loan(client):
    member = create_member(client)
    product = create_product(client)
    loan = apply(client, member["id"], product["id"]).json()
    assert client.post(f"/loans/{loan['id']}/approve", headers=HEADERS).status_code == 200
    r = client.post(f"/loans/{loan['id']}/disburse", json={"disbursement_date": "2026-01-15"}, headers=HEADERS)
    assert r.status_code == 200
    return r.json()


class TestHealthEndpoints:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestMemberAndProductEndpoints:

    def test_member_round_trip(self, client):
        member = create_member(client)
        r = client.get(f"/members/{member['id']}")
        assert r.status_code == 200
        assert r.json()["member_number"] == "M-0001"

    def test_duplicate_member_is_422(self, client):
        create_member(client)
        r = client.post("/members", json={
            "member_number": "M-0001", "first_name": "A", "last_name": "B"
        }, headers=HEADERS)
        assert r.status_code == 422

    def test_change_member_status(self, client):
        member = create_member(client)
        r = client.post(f"/members/{member['id']}/status", json={"member_status": "resigned"}, headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["member_status"] == "resigned"

    def test_unknown_member_is_404(self, client):
        assert client.get("/members/missing").status_code == 404
        r = client.post("/members/missing/status", json={"member_status": "regular"}, headers=HEADERS)
        assert r.status_code == 404

    def test_products(self, client):
        product = create_product(client)
        assert product["interest_rate"] == "0.01"
        assert client.get(f"/products/{product['id']}").status_code == 200
        assert len(client.get("/products", params={"active_only": True}).json()["products"]) == 1
        assert client.get("/products/missing").status_code == 404

    def test_operator_header_required(self, client):
        r = client.post("/members", json={
            "member_number": "M-0001", "first_name": "A", "last_name": "B"
        })
        assert r.status_code == 422


class TestLoanFlow:
    """End-to-end loan lifecycle over HTTP"""

    def test_schedule_preview(self, client):
        r = client.post("/loans/schedule/preview", json={
            "principal_amount": 1_000_000,
            "interest_rate": "0.01",
            "term_months": 2,
            "first_payment_date": "2026-02-01"
        })
        assert r.status_code == 200
        data = r.json()
        assert data["emi"] == 507_513
        assert data["total_interest"] == 15_025
        assert [row["total_due"] for row in data["schedule"]] == [507_513, 507_512]

    def test_invalid_preview_is_422(self, client):
        r = client.post("/loans/schedule/preview", json={
            "principal_amount": 0,
            "interest_rate": "0.01",
            "term_months": 2,
            "first_payment_date": "2026-02-01"
        })
        assert r.status_code == 422

    def test_application_to_closure(self, client):
        loan = active_loan(client)
        assert loan["status"] == "active"
        assert loan["loan_number"] == "LN-2026-000001"
        assert loan["net_proceeds"] == 985_000

        schedule = client.get(f"/loans/{loan['id']}/schedule").json()["schedule"]
        assert [e["due_date"] for e in schedule] == ["2026-02-01", "2026-03-01"]

        assert client.get(f"/loans/{loan['id']}/payoff").json()["payoff_amount"] == 1_015_025

        r = client.post(f"/loans/{loan['id']}/payments", json={
            "amount": 1_015_025, "payment_method": "gcash", "payment_date": "2026-02-01"
        }, headers=HEADERS)
        assert r.status_code == 201
        payment = r.json()
        assert payment["payment_number"] == "LP-2026-000001"
        assert payment["interest_portion"] == 15_025

        assert client.get(f"/loans/{loan['id']}").json()["status"] == "closed"
        assert len(client.get(f"/loans/{loan['id']}/payments").json()["payments"]) == 1

        r = client.post(f"/loans/{loan['id']}/payments", json={"amount": 100}, headers=HEADERS)
        assert r.status_code == 409

    def test_review_and_reject(self, client):
        member = create_member(client)
        product = create_product(client)
        loan = apply(client, member["id"], product["id"]).json()

        r = client.post(f"/loans/{loan['id']}/review", headers=HEADERS)
        assert r.json()["status"] == "under_review"

        r = client.post(f"/loans/{loan['id']}/reject", json={"reason": " "}, headers=HEADERS)
        assert r.status_code == 422

        r = client.post(f"/loans/{loan['id']}/reject", json={"reason": "Incomplete documents"}, headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["status"] == "rejected"

        r = client.post(f"/loans/{loan['id']}/disburse", json={}, headers=HEADERS)
        assert r.status_code == 409

        listed = client.get("/loans", params={"loan_status": "rejected"}).json()["loans"]
        assert [l["id"] for l in listed] == [loan["id"]]

    def test_ineligible_member_is_409(self, client):
        member = create_member(client, status="applicant")
        product = create_product(client)
        r = apply(client, member["id"], product["id"])
        assert r.status_code == 409

    def test_out_of_limits_is_422(self, client):
        member = create_member(client)
        product = create_product(client)
        r = apply(client, member["id"], product["id"], principal=500)
        assert r.status_code == 422

    def test_penalties_waiver_and_reversal(self, client):
        loan = active_loan(client)

        r = client.post(f"/loans/{loan['id']}/penalties", json={"as_of_date": "2026-03-03"})
        assert r.status_code == 200
        penalties = r.json()["penalties"]
        assert [p["penalty_amount"] for p in penalties] == [10_150, 677]

        r = client.post(f"/loans/penalties/{penalties[1]['id']}/waive",
                        json={"amount": 677, "reason": "Typhoon relief"}, headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["is_paid"]

        r = client.post(f"/loans/{loan['id']}/payments", json={
            "amount": 300_000, "payment_date": "2026-03-03"
        }, headers=HEADERS)
        payment = r.json()
        assert payment["penalty_portion"] == 10_150
        assert payment["interest_portion"] == 10_000

        r = client.post(f"/loans/payments/{payment['id']}/reverse", headers=HEADERS)
        assert r.status_code == 200
        assert r.json()["is_reversed"]

        r = client.post(f"/loans/payments/{payment['id']}/reverse", headers=HEADERS)
        assert r.status_code == 409

        loan = client.get(f"/loans/{loan['id']}").json()
        assert loan["outstanding_balance"] == 1_000_000
        assert loan["total_penalties_outstanding"] == 10_150

    def test_unknown_loan_is_404(self, client):
        assert client.get("/loans/missing").status_code == 404
        assert client.get("/loans/missing/schedule").status_code == 404
        assert client.post("/loans/missing/approve", headers=HEADERS).status_code == 404
        assert client.post("/loans/payments/missing/reverse", headers=HEADERS).status_code == 404
