"""Tests for the HTTP routes."""

from types import MappingProxyType
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app import SESSION_COOKIE, app
from inference_client import (
    SHAPE_CONFIDENCES,
    InferenceConnectionError,
    PredictionResult,
    RemoteCallError,
)

RESULT = PredictionResult(
    probabilities=MappingProxyType({"DF": 0.6, "Normal": 0.4}),
    heatmap_url="https://x/heatmap.png",
    shape=SHAPE_CONFIDENCES,
)


@pytest.fixture
def inference() -> MagicMock:
    mock = MagicMock()
    mock.predict.return_value = RESULT
    return mock


@pytest.fixture
def test_client(inference: MagicMock):
    """Returns a TestClient with the remote Space replaced by a mock."""
    with TestClient(app) as client:
        app.state.inference = inference
        yield client


def _upload(content=b"image-bytes", name="scan.png", content_type="image/png"):
    return {"file": (name, content, content_type)}


def test_health(test_client: TestClient) -> None:
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["space"] == app.state.connection.space_id


def test_interface_serves_page(test_client: TestClient) -> None:
    response = test_client.get("/")
    assert response.status_code == 200
    assert "OvaQuick" in response.text
    assert "Polycystic Ovaries (PCO)" in response.text
    assert "__CONDITIONS__" not in response.text


def test_startup_does_not_connect() -> None:
    with TestClient(app):
        assert not app.state.connection.connected


def test_predict_returns_normalized_result(
    test_client: TestClient, inference: MagicMock
) -> None:
    response = test_client.post("/predict", files=_upload())

    assert response.status_code == 200
    assert response.json() == {
        "predictions": {"DF": 0.6, "Normal": 0.4},
        "heatmap_url": "https://x/heatmap.png",
        "shape": "confidences",
    }
    inference.predict.assert_called_once_with(b"image-bytes", "scan.png")


def test_predict_rejects_empty_upload(
    test_client: TestClient, inference: MagicMock
) -> None:
    response = test_client.post("/predict", files=_upload(content=b""))

    assert response.status_code == 400
    inference.predict.assert_not_called()


def test_predict_maps_inference_errors(
    test_client: TestClient, inference: MagicMock
) -> None:
    inference.predict.side_effect = InferenceConnectionError("Space down")

    response = test_client.post("/predict", files=_upload())

    assert response.status_code == 502
    assert response.json() == {"error": "Space down"}


def test_analysis_starts_idle_and_sets_cookie(test_client: TestClient) -> None:
    response = test_client.get("/analysis")

    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    assert response.json()["submit_enabled"] is False
    assert SESSION_COOKIE in response.cookies


def test_submit_without_file_stays_idle(
    test_client: TestClient, inference: MagicMock
) -> None:
    response = test_client.post("/analysis/submit")

    assert response.status_code == 200
    assert response.json()["state"] == "idle"
    inference.predict.assert_not_called()


def test_select_then_submit(test_client: TestClient, inference: MagicMock) -> None:
    selected = test_client.post("/analysis/file", files=_upload())
    assert selected.json()["preview"].startswith("data:image/png;base64,")
    assert selected.json()["submit_enabled"] is True

    response = test_client.post("/analysis/submit")

    assert response.status_code == 200
    view = response.json()
    assert view["state"] == "success"
    assert view["predictions"] == [
        {"label": "DF", "probability": 0.6, "percent": "60.00%"},
        {"label": "Normal", "probability": 0.4, "percent": "40.00%"},
    ]
    assert view["heatmap_url"] == "https://x/heatmap.png"
    inference.predict.assert_called_once_with(b"image-bytes", filename="scan.png")


def test_failed_submit_keeps_previous_predictions(
    test_client: TestClient, inference: MagicMock
) -> None:
    test_client.post("/analysis/file", files=_upload())
    test_client.post("/analysis/submit")
    inference.predict.side_effect = RemoteCallError("boom")

    response = test_client.post("/analysis/submit")

    assert response.status_code == 502
    view = response.json()
    assert view["state"] == "failure"
    assert view["error"] == "Error while predicting"
    assert len(view["predictions"]) == 2


def test_select_without_file_unstages(test_client: TestClient) -> None:
    test_client.post("/analysis/file", files=_upload())

    response = test_client.post("/analysis/file")

    assert response.status_code == 200
    assert response.json()["preview"] is None
    assert response.json()["submit_enabled"] is False


def test_reset(test_client: TestClient) -> None:
    test_client.post("/analysis/file", files=_upload())
    test_client.post("/analysis/submit")

    response = test_client.post("/analysis/reset")

    assert response.json()["state"] == "idle"
    assert response.json()["predictions"] == []


def test_sessions_are_isolated(test_client: TestClient) -> None:
    test_client.post("/analysis/file", files=_upload())

    response = TestClient(app).get("/analysis")

    assert response.json()["preview"] is None


def test_sessions_are_capped_least_recently_used_first(test_client: TestClient) -> None:
    """Tests that old sessions are evicted once the cap is reached."""
    app.state.max_sessions = 3
    test_client.post("/analysis/file", files=_upload())
    first_id = test_client.cookies.get(SESSION_COOKIE)

    for _ in range(5):
        TestClient(app).get("/analysis")

    assert len(app.state.sessions) == 3
    assert first_id not in app.state.sessions
    response = test_client.get("/analysis")
    assert response.json()["preview"] is None


def test_recent_session_survives_eviction(test_client: TestClient) -> None:
    app.state.max_sessions = 2
    test_client.post("/analysis/file", files=_upload())
    kept_id = test_client.cookies.get(SESSION_COOKIE)

    TestClient(app).get("/analysis")
    test_client.get("/analysis")
    TestClient(app).get("/analysis")

    assert kept_id in app.state.sessions
    assert len(app.state.sessions) == 2


def test_unexpected_adapter_error_returns_view(
    test_client: TestClient, inference: MagicMock
) -> None:
    """Tests that a non-inference exception still yields the JSON failure view."""
    test_client.post("/analysis/file", files=_upload())
    inference.predict.side_effect = OSError("disk full")

    response = test_client.post("/analysis/submit")

    assert response.status_code == 502
    assert response.json()["state"] == "failure"
    assert response.json()["error"] == "Error while predicting"
