"""Tests for health reports, the health endpoints and database diagnostics."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from techassist.database import ConnectConfig, ConnectionStatus, Connector
from techassist.errors import DatabaseConnectionError
from techassist.main import create_app
from techassist.services.health_service import HealthReporter

from conftest import make_settings


@pytest.mark.asyncio
async def test_shallow_report_works_while_connector_failed(connector, client_factory):
    client_factory.go_down()
    with pytest.raises(DatabaseConnectionError):
        await connector.ensure_connected()
    assert connector.status is ConnectionStatus.FAILED
    calls = client_factory.calls

    report, status_code = await HealthReporter(connector, "test").report(deep=False)

    assert status_code == 200
    assert report.success is True
    assert report.environment == "test"
    assert report.database is None
    assert client_factory.calls == calls


@pytest.mark.asyncio
async def test_deep_report_success(connector):
    report, status_code = await HealthReporter(connector, "test").report(deep=True)

    assert status_code == 200
    assert report.success is True
    assert report.database.status == "connected"
    assert report.database.name == "techassist_test"
    assert report.database.host == "localhost:27017"


@pytest.mark.asyncio
async def test_deep_report_failure(connector, client_factory):
    client_factory.go_down()

    report, status_code = await HealthReporter(connector, "test").report(deep=True)

    assert status_code == 503
    assert report.success is False
    assert report.database.status == "error"
    assert "connection refused" in report.database.message


@pytest.mark.asyncio
async def test_deep_report_fails_when_ping_fails_after_connect(connector, client_factory):
    await connector.ensure_connected()
    client_factory.go_down()

    report, status_code = await HealthReporter(connector, "test").report(deep=True)

    assert status_code == 503
    assert report.database.status == "error"


def test_health_endpoint_shallow(client, client_factory):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"]
    assert body["environment"] == "test"
    assert "timestamp" in body
    assert "database" not in body
    assert client_factory.calls == 0


def test_health_endpoint_shallow_while_database_down(client, client_factory):
    client_factory.go_down()

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_health_endpoint_deep(client):
    response = client.get("/api/health", params={"db": "true"})

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == {
        "status": "connected",
        "name": "techassist_test",
        "host": "localhost:27017",
    }


def test_health_endpoint_deep_unreachable(client, client_factory):
    client_factory.go_down()

    response = client.get("/api/health?db=true")

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["database"]["status"] == "error"
    assert body["database"]["message"]


def test_db_test_reports_statistics(client):
    response = client.get("/api/db-test")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["database"]["name"] == "techassist_test"
    assert body["database"]["data_size"] == 2048
    assert body["database"]["storage_size"] == 4096


def test_db_test_stats_failure(client, client_factory):
    client_factory.fail_stats()

    response = client.get("/api/db-test")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["kind"] == "stats"
    assert "not authorized" in body["error"]


def test_db_test_missing_uri_is_configuration_error(client_factory):
    settings = make_settings(mongodb_uri=None)
    connector = Connector(ConnectConfig.from_settings(settings), client_factory=client_factory)

    with TestClient(create_app(settings=settings, connector=connector)) as client:
        response = client.get("/api/db-test")

    assert response.status_code == 500
    body = response.json()
    assert body["kind"] == "configuration"
    assert body["error"] == "MONGODB_URI is not defined"
    assert client_factory.calls == 0


def test_invalid_pool_options_answer_503_not_400(client_factory):
    settings = make_settings(mongodb_min_pool_size=20, mongodb_max_pool_size=10)

    def factory(uri, **options):
        if options["minPoolSize"] > options["maxPoolSize"]:
            raise ValueError("minPoolSize must be smaller or equal to maxPoolSize")
        return client_factory(uri, **options)

    connector = Connector(ConnectConfig.from_settings(settings), client_factory=factory)

    with TestClient(create_app(settings=settings, connector=connector)) as client:
        health = client.get("/api/health?db=true")
        contacts = client.get("/api/contacts")

    assert health.status_code == 503
    assert health.json()["database"]["status"] == "error"
    assert contacts.status_code == 503
    assert contacts.json()["message"] == "Database connection error"
    assert connector.status is ConnectionStatus.FAILED
    assert connector.state.last_error.kind.value == "configuration"
