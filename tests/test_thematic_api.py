# tests/test_thematic_api.py
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from tests.fakes import make_record


@pytest.fixture
def client(session_factory):
    return TestClient(create_app(session_factory=session_factory))


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert "timestamp" in body


def test_thematic_analysis(client, repository):
    repository.insert_paper(make_record())

    response = client.get("/api/thematic-analysis")

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {"totalPapers": 1, "totalThemes": 1, "totalSubthemes": 1, "totalCodes": 1}
    subtheme = body["themes"][0]["subthemes"][0]
    assert subtheme["name"] == "S1"
    assert subtheme["references"] == [1]
    assert subtheme["codes"] == [{"name": "copilot", "quotes": ["q1"]}]


def test_paper_details(client, repository):
    repository.insert_paper(make_record(doi="10.1/x"))

    response = client.get("/api/papers/1")

    assert response.status_code == 200
    assert response.json()["paper_title"] == "P1"
    assert response.json()["doi"] == "10.1/x"


def test_unknown_paper_is_404(client):
    response = client.get("/api/papers/42")
    assert response.status_code == 404
    assert response.json()["detail"] == "Paper not found"


def test_store_failure_is_500(client):
    with patch("services.reporting_service.ReportingService.thematic_analysis", side_effect=RuntimeError("db down")):
        response = client.get("/api/thematic-analysis")

    assert response.status_code == 500
    assert response.json()["detail"] == {"error": "Failed to fetch thematic analysis data", "details": "db down"}
