"""
E2E tests walking complete loan lifecycles through the HTTP API.

Journeys:
- Standard: apply, documents requested, approve, sign, repay everything
- Early payoff: six installments paid, remaining balance settled at once
- Servicing trouble: overdue detection, missed payments and suspension
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient

APPLICANT = {"X-Actor-ID": "applicant-1"}
REVIEWER = {"X-Actor-ID": "reviewer-1"}
CASHIER = {"X-Actor-ID": "cashier-1"}


@pytest.fixture
def signed_contract(client: TestClient, borrower, loan_type):
    """Submitted, approved and signed 12 000 / 6% / 12 month loan"""
    created = client.post(
        "/v1/applications",
        json={
            "borrower_id": borrower.id,
            "loan_type_id": loan_type.id,
            "principal": "12000.00",
            "term_months": 12,
            "purpose": "Debt consolidation",
        },
        headers=APPLICANT,
    ).json()
    client.post(f"/v1/applications/{created['id']}/submit", headers=APPLICANT)
    contract_id = client.post(f"/v1/applications/{created['id']}/approve", headers=REVIEWER).json()["contract_id"]
    contract = client.post(f"/v1/contracts/{contract_id}/sign", headers=APPLICANT).json()
    payments = client.get(f"/v1/contracts/{contract_id}/schedule").json()["payments"]
    return contract, payments


@pytest.mark.integration
def test_standard_journey(client: TestClient, borrower, loan_type, notifier):
    created = client.post(
        "/v1/applications",
        json={
            "borrower_id": borrower.id,
            "loan_type_id": loan_type.id,
            "principal": "12000.00",
            "term_months": 12,
            "purpose": "Home renovation",
            "snapshot": {"employer": "Acme", "years_employed": 4},
        },
        headers=APPLICANT,
    ).json()
    application_id = created["id"]

    assert client.post(f"/v1/applications/{application_id}/submit", headers=APPLICANT).json()["status"] == "SUBMITTED"
    assert client.post(f"/v1/applications/{application_id}/review", headers=REVIEWER).json()["status"] == "UNDER_REVIEW"

    requested = client.post(
        f"/v1/applications/{application_id}/request-documents",
        json={"document_types": ["ID_CARD", "PROOF_INCOME"]},
        headers=REVIEWER,
    ).json()
    assert requested["status"] == "DOCUMENTS_REQUESTED"

    for document_type, ref in [("ID_CARD", "docs/id.png"), ("PROOF_INCOME", "docs/payslip.pdf")]:
        document = client.post(
            f"/v1/applications/{application_id}/documents",
            json={"document_type": document_type, "storage_ref": ref},
            headers=APPLICANT,
        ).json()
        client.post(f"/v1/documents/{document['id']}/verify", headers=REVIEWER)

    resumed = client.post(f"/v1/applications/{application_id}/resume-review", headers=REVIEWER)
    assert resumed.json()["status"] == "UNDER_REVIEW"

    risk = client.get(f"/v1/applications/{application_id}/risk").json()
    assert risk["score"] == 65
    assert risk["tier"] == "MEDIUM"

    approved = client.post(f"/v1/applications/{application_id}/approve", headers=REVIEWER).json()
    assert approved["status"] == "CONTRACT_GENERATED"
    contract_id = approved["contract_id"]

    contract = client.post(f"/v1/contracts/{contract_id}/sign", headers=APPLICANT).json()
    assert contract["status"] == "ACTIVE"
    assert Decimal(contract["remaining_principal"]) == Decimal("12000.00")
    assert Decimal(contract["monthly_payment"]) == Decimal("1032.80")
    assert client.get(f"/v1/applications/{application_id}").json()["status"] == "DISBURSED"

    by_number = client.get(f"/v1/contracts/by-number/{contract['contract_number']}").json()
    assert by_number["id"] == contract_id

    payments = client.get(f"/v1/contracts/{contract_id}/schedule").json()["payments"]
    assert sum(Decimal(p["principal"]) for p in payments) == Decimal("12000.00")
    for payment in payments:
        response = client.post(f"/v1/payments/{payment['id']}/pay", json={"payment_method": "card"}, headers=CASHIER)
        assert response.status_code == 200

    final = client.get(f"/v1/contracts/{contract_id}").json()
    assert final["status"] == "COMPLETED"
    assert Decimal(final["remaining_principal"]) == Decimal("0.00")
    assert client.get(f"/v1/applications/{application_id}").json()["status"] == "COMPLETED"

    kinds = notifier.kinds()
    assert "borrower.verified" in kinds
    assert kinds[-1] == "contract.completed"


@pytest.mark.integration
def test_early_payoff_journey(client: TestClient, signed_contract):
    contract, payments = signed_contract
    contract_id = contract["id"]

    for payment in payments[:6]:
        client.post(f"/v1/payments/{payment['id']}/pay", headers=CASHIER)

    payoff_date = payments[6]["due_date"]
    quote = client.post(f"/v1/contracts/{contract_id}/payoff-quote", json={"payoff_date": payoff_date}).json()
    balance = Decimal(payments[5]["remaining_principal"])
    assert Decimal(quote["principal"]) == balance
    assert quote["installments_remaining"] == 6

    settled = client.post(
        f"/v1/contracts/{contract_id}/payoff",
        json={"payoff_date": payoff_date, "payment_method": "bank_transfer"},
        headers=CASHIER,
    ).json()
    assert settled["total"] == quote["total"]

    summary = client.get(f"/v1/contracts/{contract_id}/summary").json()
    assert summary["status"] == "COMPLETED"
    assert summary["counts"]["PAID"] == 6
    assert summary["counts"]["CANCELLED"] == 6
    assert Decimal(summary["amount_outstanding"]) == Decimal("0.00")

    again = client.post(f"/v1/contracts/{contract_id}/payoff", json={"payoff_date": payoff_date}, headers=CASHIER)
    assert again.status_code == 409


@pytest.mark.integration
def test_servicing_trouble_journey(client: TestClient, signed_contract):
    contract, payments = signed_contract
    contract_id = contract["id"]

    # Two weeks after the third due date
    as_of = (date.fromisoformat(payments[2]["due_date"]) + timedelta(days=14)).isoformat()

    report = client.get("/v1/payments/overdue", params={"as_of": as_of}).json()
    assert [p["sequence"] for p in report] == [1, 2, 3]
    assert {p["status"] for p in report} == {"PENDING"}

    late = client.post("/v1/payments/detect-overdue", json={"as_of": as_of}, headers=CASHIER).json()
    assert late["reclassified"] == 3

    missed = client.post(
        "/v1/payments/detect-missed", json={"as_of": as_of, "grace_days": 30}, headers=CASHIER
    ).json()
    assert missed["reclassified"] == 2

    missed_payment = client.post(f"/v1/payments/{payments[0]['id']}/pay", headers=CASHIER)
    assert missed_payment.status_code == 409

    suspended = client.post(
        f"/v1/contracts/{contract_id}/suspend", json={"reason": "Collections review"}, headers=REVIEWER
    ).json()
    assert suspended["status"] == "SUSPENDED"

    late_payment = client.post(f"/v1/payments/{payments[2]['id']}/pay", headers=CASHIER)
    assert late_payment.json()["status"] == "PAID"

    reactivated = client.post(f"/v1/contracts/{contract_id}/reactivate", headers=REVIEWER).json()
    assert reactivated["status"] == "ACTIVE"

    summary = client.get(f"/v1/contracts/{contract_id}/summary").json()
    assert summary["counts"] == {"PENDING": 9, "PAID": 1, "LATE": 0, "MISSED": 2, "CANCELLED": 0}
