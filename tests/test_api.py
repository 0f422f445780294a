"""
End-to-end tests for the HTTP API with rule-based recommendations.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from dermopt import __version__
from dermopt.api import create_app
from dermopt.orchestrator import UploadService
from dermopt.storage import AssessmentRepository, Database


FORMULARY = b"""Drug Name,Generic Name,Drug Class,Tier,Requires PA,Biosimilar Of,FDA Indications,Annual Cost,Member Copay
Humira,adalimumab,TNF_INHIBITOR,3,Yes,,psoriasis,84000,250
Amjevita,adalimumab-atto,TNF_INHIBITOR,1,No,Humira,psoriasis,30000,25
Skyrizi,risankizumab,IL23_INHIBITOR,2,No,,psoriasis,60000,50
"""

ELIGIBILITY = b"""Member ID,First Name,Last Name,Plan Name
M001,Ana,Lopez,Acme Health
"""

CLAIMS = b"""Member ID,Fill Date,Drug Name,NDC,Member Paid
M001,2024-01-10,Humira,0074-0554-02,250
M001,2024-02-07,Humira,0074-0554-02,250
"""


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings, llm=None))


def _upload(client, kind, content, name, plan=None):
    data = {"planName": plan} if plan else {}
    return client.post(f"/api/uploads/{kind}", files={"file": (name, content, "text/csv")}, data=data)


@pytest.fixture
def loaded(client):
    assert _upload(client, "formulary", FORMULARY, "formulary.csv", "Acme Health").status_code == 200
    assert _upload(client, "eligibility", ELIGIBILITY, "members.csv").status_code == 200
    assert _upload(client, "claims", CLAIMS, "claims.csv").status_code == 200
    return client


def _assessment_body(**overrides):
    body = {
        "patientId": "M001",
        "diagnosis": "PSORIASIS",
        "dlqiScore": 2,
        "monthsStable": 12,
        "currentBiologic": {"drugName": "Humira", "dose": "40 mg", "frequency": "every 2 weeks"},
    }
    body.update(overrides)
    return body


class TestHealth:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok", "version": __version__, "llm": False}


class TestUploads:
    def test_summary(self, client):
        response = _upload(client, "formulary", FORMULARY, "formulary.csv", "Acme Health")
        body = response.json()
        assert body["upload_type"] == "formulary"
        assert (body["rows_processed"], body["rows_failed"]) == (3, 0)
        assert body["details"]["plan_name"] == "Acme Health"

    def test_invalid_type(self, client):
        response = _upload(client, "pictures", b"x", "x.png")
        assert response.status_code == 400
        assert "Invalid upload type" in response.json()["error"]

    def test_claims_linked(self, loaded):
        claims = loaded.get("/api/admin/data", params={"type": "claims"}).json()
        assert len(claims) == 2
        assert {c["member_id"] for c in claims} == {"M001"}


class TestAssessments:
    def test_create_and_fetch(self, loaded):
        response = loaded.post("/api/assessments", json=_assessment_body())
        assert response.status_code == 200
        created = response.json()
        assert created["success"] is True

        fetched = loaded.get(f"/api/assessments/{created['assessmentId']}").json()
        recs = fetched["recommendations"]
        assert [r["type"] for r in recs] == ["DOSE_REDUCTION", "SWITCH_TO_BIOSIMILAR", "THERAPEUTIC_SWITCH"]
        assert recs[0]["costs"]["annual_savings"] == 21000
        assert recs[1]["drug_name"] == "Amjevita"

        history = loaded.get("/api/patients/M001/assessments").json()
        assert [a["id"] for a in history] == [created["assessmentId"]]

    def test_biologic_from_claims(self, loaded):
        body = _assessment_body()
        del body["currentBiologic"]
        assert loaded.post("/api/assessments", json=body).status_code == 200

    def test_unknown_patient(self, loaded):
        response = loaded.post("/api/assessments", json=_assessment_body(patientId="NOPE"))
        assert response.status_code == 404
        assert "NOPE" in response.json()["error"]

    @pytest.mark.parametrize(
        "overrides",
        [{"dlqiScore": 31}, {"monthsStable": -1}, {"diagnosis": "ACNE"}, {"patientId": None}],
    )
    def test_invalid_body(self, client, overrides):
        response = client.post("/api/assessments", json=_assessment_body(**overrides))
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")

    def test_missing_assessment(self, client):
        response = client.get("/api/assessments/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Assessment not found"}

    def test_unknown_patient_history(self, client):
        assert client.get("/api/patients/NOPE/assessments").status_code == 404


class TestAdminData:
    def test_list_types(self, loaded):
        assert len(loaded.get("/api/admin/data", params={"type": "formulary"}).json()) == 3
        uploads = loaded.get("/api/admin/data", params={"type": "uploads"}).json()
        assert [u["file_name"] for u in uploads] == ["claims.csv", "members.csv", "formulary.csv"]

    def test_invalid_type(self, client):
        response = client.get("/api/admin/data", params={"type": "patients"})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid type"}

    def test_delete(self, loaded):
        drug = loaded.get("/api/admin/data", params={"type": "formulary"}).json()[0]
        params = {"type": "formulary", "id": drug["id"]}
        assert loaded.delete("/api/admin/data", params=params).json() == {"success": True}
        missing = loaded.delete("/api/admin/data", params=params)
        assert missing.status_code == 404
        assert missing.json() == {"error": "Not found"}

    def test_delete_requires_id(self, client):
        response = client.delete("/api/admin/data", params={"type": "claims"})
        assert response.status_code == 400
        assert response.json() == {"error": "ID required"}

    def test_delete_uploads_rejected(self, client):
        response = client.delete("/api/admin/data", params={"type": "uploads", "id": "x"})
        assert response.status_code == 400


def _loop_running():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class TestBlockingWork:
    """Store and file work runs in worker threads, not on the event loop."""

    def _record(self, monkeypatch, owner, name, calls):
        original = getattr(owner, name)

        def wrapper(*args, **kwargs):
            calls.append((name, _loop_running()))
            return original(*args, **kwargs)

        monkeypatch.setattr(owner, name, wrapper)

    def test_uploads_admin_and_reads(self, client, monkeypatch):
        calls = []
        self._record(monkeypatch, UploadService, "upload", calls)
        self._record(monkeypatch, Database, "list_uploads", calls)
        self._record(monkeypatch, AssessmentRepository, "get", calls)

        assert _upload(client, "formulary", FORMULARY, "formulary.csv").status_code == 200
        assert client.get("/api/admin/data", params={"type": "uploads"}).status_code == 200
        assert client.get("/api/assessments/missing").status_code == 404
        assert calls == [("upload", False), ("list_uploads", False), ("get", False)]

    def test_ragged_upload_is_accepted(self, client):
        content = b"Drug Name,Tier\nHumira,3\nEnbrel,2,extra,junk\nSkyrizi,2\n"
        body = _upload(client, "formulary", content, "ragged.csv").json()
        assert (body["rows_processed"], body["rows_failed"]) == (2, 1)
        assert body["errors"] == [{"row": 2, "error": "Expected 2 fields, saw 4"}]
