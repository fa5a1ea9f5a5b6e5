"""
API tests for the provider proxies and the risk assessment endpoint.
Upstream sites are replaced by httpx.MockTransport; the snapshot store by an
in-memory store.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_clincalc_client, get_mdcalc_client, get_snapshot_store
from app.main import app
from app.services.risk_assessment import clincalc_client, mdcalc_client
from app.services.risk_assessment.clincalc_client import ClinCalcClient
from app.services.risk_assessment.mdcalc_client import MdCalcClient
from app.services.risk_assessment.store import InMemorySnapshotStore

MDCALC_URL = "https://mdcalc.test/api/v1/calc/10491/calculate"
CLINCALC_URL = "https://clincalc.test/Cardiology/PREVENT/"

MDCALC_BODY = {
    "body": {
        "UOMSYSTEM": True, "model": 0, "sex": 1, "age": 62, "tc": 210, "hdl": 45,
        "sbp": 150, "diabetes": 0, "smoker": 1, "egfr": 85, "htn_med": 1,
        "statin": 0, "bmi": 27.5,
    }
}

CLINCALC_BODY = {
    "body": {
        "age": 62, "gender": "male", "totalCholesterol": 210, "hdlCholesterol": 45,
        "systolicBP": 150, "bmi": 27.5, "eGFR": 85, "diabetes": False, "smoker": True,
        "takingAntihypertensive": True, "takingStatin": False,
    }
}

ASSESSMENT_BODY = {
    "profile": {
        "first_name": "Dana",
        "last_name": "Reyes",
        "sex_at_birth": "MALE",
        "date_of_birth": "1964-03-02",
    },
    "intake": {
        "total_cholesterol": 210,
        "hdl_cholesterol": 45,
        "systolic_bp": 150,
        "bmi": 27.5,
        "egfr": 85,
        "is_smoker": True,
        "is_taking_antihypertensive": True,
    },
}


class Upstream:
    """Mutable fake of both calculator sites. Each attribute is (status, response kwargs)."""

    def __init__(self, mdcalc_response, form_page, result_page):
        self.mdcalc = (200, {"json": mdcalc_response})
        self.clincalc_get = (200, {"text": form_page})
        self.clincalc_post = (200, {"text": result_page})

    def handler(self, request):
        if request.url.host == "mdcalc.test":
            status_code, kwargs = self.mdcalc
        elif request.method == "GET":
            status_code, kwargs = self.clincalc_get
        else:
            status_code, kwargs = self.clincalc_post
        return httpx.Response(status_code, **kwargs)


@pytest.fixture
def upstream(mdcalc_response, clincalc_form_page, clincalc_result_page):
    return Upstream(mdcalc_response, clincalc_form_page, clincalc_result_page)


@pytest.fixture
def store():
    return InMemorySnapshotStore()


@pytest.fixture
def client(upstream, store):
    def http_client():
        return httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))

    app.dependency_overrides[get_mdcalc_client] = lambda: MdCalcClient(MDCALC_URL, http_client())
    app.dependency_overrides[get_clincalc_client] = lambda: ClinCalcClient(CLINCALC_URL, http_client())
    app.dependency_overrides[get_snapshot_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "CardioRisk"}


def test_shutdown_closes_shared_clients(monkeypatch):
    shared = {}
    for module in (mdcalc_client, clincalc_client):
        shared[module.__name__] = httpx.AsyncClient()
        monkeypatch.setattr(module, "_shared_client", shared[module.__name__])

    with TestClient(app):
        assert not any(c.is_closed for c in shared.values())

    assert all(c.is_closed for c in shared.values())


class TestMdCalcRoute:

    def test_created(self, client):
        response = client.post("/api/v1/mdcalc/prevent-assessments", json=MDCALC_BODY)

        assert response.status_code == 201
        output = response.json()["assessment"]["output"]
        assert output[0]["value_text"] == "8.4%"

    def test_invalid_json(self, client):
        response = client.post(
            "/api/v1/mdcalc/prevent-assessments",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON payload."}

    def test_invalid_body(self, client):
        body = {"body": dict(MDCALC_BODY["body"], sex=2)}
        del body["body"]["age"]

        response = client.post("/api/v1/mdcalc/prevent-assessments", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid request body."
        fields = {issue["field"] for issue in data["issues"]}
        assert {"body.sex", "body.age"} <= fields

    def test_string_typed_fields_rejected(self, client):
        body = {"body": dict(MDCALC_BODY["body"], age="62", UOMSYSTEM="yes", tc="210")}

        response = client.post("/api/v1/mdcalc/prevent-assessments", json=body)

        assert response.status_code == 400
        fields = {issue["field"] for issue in response.json()["issues"]}
        assert {"body.age", "body.UOMSYSTEM", "body.tc"} <= fields

    def test_upstream_error_status(self, client, upstream):
        upstream.mdcalc = (500, {"text": "oops"})

        response = client.post("/api/v1/mdcalc/prevent-assessments", json=MDCALC_BODY)

        assert response.status_code == 502
        assert response.json() == {"error": "MdCalc responded with an error.", "status": 500}

    def test_upstream_shape(self, client, upstream):
        upstream.mdcalc = (200, {"json": {"results": []}})

        response = client.post("/api/v1/mdcalc/prevent-assessments", json=MDCALC_BODY)

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "MdCalc response shape was unexpected."
        assert data["issues"][0]["field"] == "output"


class TestClinCalcRoute:

    def test_created(self, client):
        response = client.post("/api/v1/clincalc/prevent-assessments", json=CLINCALC_BODY)

        assert response.status_code == 201
        contributions = response.json()["contributions"]
        assert contributions[0] == {"factor": "Age", "value": 4.2, "annotation": "Age 62 years"}
        assert len(contributions) == 6

    def test_invalid_body(self, client):
        body = {"body": dict(CLINCALC_BODY["body"], gender="other")}

        response = client.post("/api/v1/clincalc/prevent-assessments", json=body)

        assert response.status_code == 400
        assert response.json()["issues"][0]["field"] == "body.gender"

    def test_string_typed_fields_rejected(self, client):
        body = {"body": dict(CLINCALC_BODY["body"], age="62", diabetes="yes", eGFR="85")}

        response = client.post("/api/v1/clincalc/prevent-assessments", json=body)

        assert response.status_code == 400
        fields = {issue["field"] for issue in response.json()["issues"]}
        assert {"body.age", "body.diabetes", "body.eGFR"} <= fields

    def test_missing_session_fields(self, client, upstream):
        upstream.clincalc_get = (200, {"text": "<html></html>"})

        response = client.post("/api/v1/clincalc/prevent-assessments", json=CLINCALC_BODY)

        assert response.status_code == 502
        assert response.json() == {
            "error": "Failed to initialize ClinCalc request.",
            "details": "Missing __VIEWSTATE in ClinCalc response.",
        }

    def test_no_contributions(self, client, upstream):
        upstream.clincalc_post = (200, {"text": "<html>no chart</html>"})

        response = client.post("/api/v1/clincalc/prevent-assessments", json=CLINCALC_BODY)

        assert response.status_code == 502
        assert response.json()["error"] == "ClinCalc response did not include contribution data."


class TestRiskAssessmentRoute:

    def test_created(self, client):
        response = client.post("/api/v1/risk-assessments", json=ASSESSMENT_BODY)

        assert response.status_code == 201
        view = response.json()
        assert view["status"] == "success"
        assert view["absolute_risk_display"] == "8.4%"
        assert view["interpretation"] == "Intermediate"
        assert [row["label"] for row in view["event_breakdown"]] == ["CHD", "Stroke", "HF"]
        assert view["risk_factors"][0]["label"] == "Age"
        assert view["snapshot_id"]

    def test_snapshots_listed(self, client):
        created = client.post("/api/v1/risk-assessments", json=ASSESSMENT_BODY).json()

        response = client.get("/api/v1/risk-assessments")

        assert response.status_code == 200
        snapshots = response.json()
        assert [s["id"] for s in snapshots] == [created["snapshot_id"]]
        assert snapshots[0]["results"]["status"] == "success"

    def test_partial_when_one_provider_fails(self, client, upstream):
        upstream.clincalc_post = (503, {"text": "down"})

        response = client.post("/api/v1/risk-assessments", json=ASSESSMENT_BODY)

        assert response.status_code == 201
        view = response.json()
        assert view["status"] == "partial"
        assert view["errors"] == ["ClinCalc responded with an error."]
        assert view["risk_factors"] == []
        assert view["status_card"]["tone"] == "destructive"

    def test_missing_intake(self, client):
        response = client.post("/api/v1/risk-assessments", json={"profile": ASSESSMENT_BODY["profile"]})

        assert response.status_code == 201
        view = response.json()
        assert view["status"] == "idle"
        assert view["status_card"]["title"] == "More information needed"

    def test_out_of_range_intake(self, client):
        body = {
            "profile": ASSESSMENT_BODY["profile"],
            "intake": dict(ASSESSMENT_BODY["intake"], systolic_bp=250),
        }

        response = client.post("/api/v1/risk-assessments", json=body)

        assert response.status_code == 400
        issue = response.json()["issues"][0]
        assert issue["field"] == "intake.systolic_bp"
        assert "Systolic BP must be between 90 and 200" in issue["message"]
