"""HTTP-level tests for the portal API."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from agency_portal.api.app import create_app


@pytest.fixture
def client(container):
    return TestClient(create_app(container))


def seed(client) -> None:
    response = client.post(
        "/api/policies",
        json={"policyName": "Allianz Well", "requirements": ["Valid ID"]},
    )
    assert response.status_code == 201
    response = client.post(
        "/api/admin/serial-numbers/import",
        files={"file": ("serials.csv", b"serial\n11112222\n", "text/csv")},
        data={"serialType": "Allianz Well"},
    )
    assert response.json()["data"]["createdCount"] == 1


def submit(client) -> dict:
    response = client.post(
        "/api/monitoring/submit",
        json={
            "policyType": "Allianz Well",
            "serialNumber": 11112222,
            "premiumPaid": "120000",
            "modeOfPayment": "Monthly",
            "policyDate": "2025-01-31",
            "clientFirstName": "Juan",
            "clientLastName": "Dela Cruz",
            "clientEmail": "juan@example.com",
        },
    )
    assert response.status_code == 201
    return response.json()["data"]


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"success": True, "status": "ok"}


def test_provision_and_submit_flow(client) -> None:
    seed(client)

    provisioned = client.get("/api/serial-numbers/available/Allianz Well").json()
    assert provisioned == {"success": True, "requiresSerial": True, "serialNumber": "11112222"}

    submission = submit(client)
    assert submission["anp"] == 120000.0
    assert submission["next_payment_date"] == "2025-02-28"

    exhausted = client.get("/api/serial-numbers/available/Allianz Well")
    assert exhausted.status_code == 404
    assert exhausted.json()["success"] is False

    listing = client.get("/api/admin/serial-numbers").json()
    assert listing["stats"] == {"total": 1, "unusedDefault": 0, "unusedAllianz": 0, "usedSerials": 1}


def test_duplicate_submission_is_a_conflict(client) -> None:
    seed(client)
    submit(client)

    response = client.post(
        "/api/monitoring/submit",
        json={"policyType": "Allianz Well", "serialNumber": "11112222", "clientFirstName": "Maria"},
    )

    assert response.status_code == 409


def test_missing_body_fields_are_bad_requests(client) -> None:
    response = client.post("/api/monitoring/submit", json={"serialNumber": "11112222"})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_details_and_payment(client) -> None:
    seed(client)
    submission = submit(client)

    details = client.get("/api/submissions/details/111122229").json()["data"]
    assert details["clientFirstName"] == "Juan"
    assert details["requirements"] == ["Valid ID"]

    paid = client.post(f"/api/submissions/{submission['id']}/pay").json()
    assert paid == {"success": True, "message": "Payment recorded successfully", "nextDate": "2025-03-28"}

    missing = client.post("/api/submissions/999/pay")
    assert missing.status_code == 404


def test_document_submission(client, mailer) -> None:
    seed(client)
    submit(client)

    response = client.post(
        "/api/form-submissions",
        data={"serialNumber": "111122229", "formData": json.dumps({"formType": "Life"})},
        files=[("files", ("valid_id.pdf", b"%PDF-1.4", "application/pdf"))],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["generatedPdfUrl"].endswith("Application_111122229.txt")
    assert body["data"]["serial_number"] == "111122229"
    assert mailer.sent[0].subject == "Submission: 111122229 - Juan Dela Cruz"

    bad_json = client.post(
        "/api/form-submissions",
        data={"serialNumber": "111122229", "formData": "{not json"},
    )
    assert bad_json.status_code == 400


def test_status_update_and_listing(client) -> None:
    seed(client)
    submission = submit(client)

    updated = client.patch(f"/api/form-submissions/{submission['id']}/status", json={"status": "Issued"})
    assert updated.json()["data"]["status"] == "Issued"

    listed = client.get("/api/form-submissions").json()["data"]
    assert listed[0]["client_email"] == "j***@example.com"

    invalid = client.patch(f"/api/form-submissions/{submission['id']}/status", json={"status": "Done"})
    assert invalid.status_code == 400


def test_preview_returns_summary(client) -> None:
    response = client.post(
        "/api/preview-application",
        json={"serialNumber": "11112222", "formData": {"clientFirstName": "Juan", "isVSP": True}},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "Serial Number: 11112222" in response.text
    assert "Virtual Selling Process (VSP): Yes" in response.text


def test_attestation_round_trip(client, mailer) -> None:
    seed(client)
    submit(client)

    sent = client.post("/api/vsp/send-attestation", json={"serialNumber": "11112222"}).json()
    assert sent["message"] == "Attestation email sent to juan@example.com"

    verified = client.get(
        "/api/vsp/verify-attestation",
        params={"serial": "11112222", "response": "yes", "client": "Juan Dela Cruz"},
    ).json()
    assert verified["data"]["attested"] is True
    assert verified["data"]["recordedAt"] == "2025-03-15T10:00:00"

    missing = client.post("/api/vsp/send-attestation", json={})
    assert missing.status_code == 400

    mailer.fail = True
    failed = client.post("/api/vsp/send-attestation", json={"serialNumber": "11112222"})
    assert failed.status_code == 502


def test_profiles_and_dashboards(client) -> None:
    leader = client.post(
        "/api/profiles",
        json={"firstName": "Lea", "lastName": "Santos", "email": "lea@example.com", "roleCode": "AL"},
    ).json()["data"]
    partner = client.post(
        "/api/profiles",
        json={"firstName": "Ana", "lastName": "Reyes", "email": "ana@example.com", "roleCode": "AP"},
    ).json()["data"]
    assigned = client.put(f"/api/profiles/{partner['id']}/supervisor", json={"reportToId": leader["id"]})
    assert assigned.json() == {"success": True}

    leaders = client.get("/api/mp/al-performance", params={"year": 2025, "month": 3}).json()["data"]
    assert leaders[0]["name"] == "Lea Santos"
    assert leaders[0]["apCount"] == 1
    assert leaders[0]["monthlyANP"] == 0.0

    stats = client.get("/api/mp/dashboard-stats", params={"year": 2025, "month": 3}).json()["data"]
    assert stats["totalALs"] == 1
    assert stats["totalAPs"] == 1
    assert len(stats["monthlyTrend"]) == 12

    team = client.get("/api/performance/all", params={"profileId": leader["id"]}).json()["data"]
    assert team["performanceByAP"] == []
    assert team["teamStats"]["totalSubmissions"] == 0


def test_monthly_history_parameters(client) -> None:
    missing = client.get("/api/mp/monthly-history")
    assert missing.status_code == 400
    assert missing.json()["message"] == "statType is required"

    unknown = client.get("/api/mp/monthly-history", params={"statType": "bogus"})
    assert unknown.status_code == 400

    history = client.get(
        "/api/mp/monthly-history",
        params={"statType": "totalANP", "year": 2025, "month": 2},
    ).json()["data"]
    assert history["prefix"] == "₱ "
    assert [point["month"] for point in history["monthlyData"]] == ["Jan", "Feb"]

    bad_month = client.get("/api/mp/dashboard-stats", params={"month": 13})
    assert bad_month.status_code == 400

    first_year = client.get("/api/mp/monthly-history", params={"statType": "totalANP", "year": 1, "month": 1})
    assert first_year.status_code == 400
    assert first_year.json()["success"] is False
