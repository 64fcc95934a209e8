"""HTTP-level tests for the FastAPI application."""
import dataclasses

from fastapi.testclient import TestClient

from host_status.api import create_app


def test_status_endpoint_and_rate_limit(service, settings):
    with TestClient(create_app(settings, service=service)) as client:
        first = client.get("/api/status")
        second = client.get("/api/status")

    assert first.status_code == 200
    body = first.json()
    assert body["success"] is True
    assert body["system"]["history"]["cpu"] == [1.0]
    assert body["topIPs"][0]["count"] == 1

    assert second.status_code == 429
    assert second.json()["success"] is False


def test_forwarded_client_is_reported(make_service, settings):
    service = make_service(dataclasses.replace(settings, trust_forward_header=True))
    with TestClient(create_app(settings, service=service)) as client:
        response = client.get("/api/status", headers={"X-Forwarded-For": "198.51.100.7"})

    assert response.json()["topIPs"] == [{"ip": "198.51.100.7", "count": 1}]


def test_health(service, settings):
    with TestClient(create_app(settings, service=service)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_background_jobs_stop_with_the_app(service, settings):
    app = create_app(settings, service=service)

    with TestClient(app):
        tasks = app.state.background_tasks
        assert len(tasks) == 2
        assert not any(task.done() for task in tasks)

    assert all(task.cancelled() for task in tasks)
