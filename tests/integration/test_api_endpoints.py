"""
Integration tests for the /healthz and /liveness endpoints.

These tests build the full app through HealthServer.handle() and drive it
with the FastAPI test client, covering every combination of provider health
and response mode.
"""
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from healthz.service import HealthAggregator, Provider
from server.lifecycle import HEALTHZ_PATH, LIVENESS_PATH, HealthServer


def provider_error(name: str) -> str:
    return f"{name}-provider_failed"


# Mark all tests in this module as integration tests
pytestmark = pytest.mark.integration


def build_client(
    providers: Optional[List[Provider]],
    detailed: bool = False,
    fail_code: int = 0,
    logger=None,
) -> TestClient:
    aggregator = HealthAggregator(
        providers=providers, logger=logger, detailed=detailed, fail_code=fail_code
    )
    descriptor = HealthServer(listen_addr=":3000", aggregator=aggregator).handle()
    return TestClient(descriptor.app)


def assert_basic_reply(data: dict, providers: List[Provider], healthy: bool) -> None:
    assert data["healthy"] is healthy
    assert "services" not in data
    assert_errors(data, providers, healthy)


def assert_detailed_reply(data: dict, providers: List[Provider], healthy: bool) -> None:
    assert data["healthy"] is healthy
    assert [s["name"] for s in data["services"]] == [p.name for p in providers]
    for provider, service in zip(providers, data["services"]):
        assert service["healthy"] is provider.handle.healthy
    assert_errors(data, providers, healthy)


def assert_errors(data: dict, providers: List[Provider], healthy: bool) -> None:
    errors = data.get("errors", [])
    if healthy:
        assert errors == []
        assert "errors" not in data
        return

    assert errors, "Expected errors to be returned but it was empty"
    failing = [p.name for p in providers if not p.handle.healthy]
    assert [e["name"] for e in errors] == failing
    for error in errors:
        assert error["message"] == provider_error(error["name"])


class TestLivenessEndpoint:
    """Tests for GET /liveness."""

    def test_liveness_without_logger(self):
        response = build_client(providers=[]).get(LIVENESS_PATH)

        assert response.status_code == 200
        assert response.text == "OK"

    def test_liveness_with_failing_providers(self, make_provider, recording_logger):
        client = build_client([make_provider("Test2", healthy=False)], logger=recording_logger)

        response = client.get(LIVENESS_PATH)

        assert response.status_code == 200
        assert response.text == "OK"


class TestHealthzEndpoint:
    """Tests for GET /healthz."""

    def test_no_providers(self, recording_logger):
        response = build_client(None, logger=recording_logger).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert_basic_reply(response.json(), [], healthy=True)

    def test_no_providers_detailed(self):
        response = build_client(None, detailed=True).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert response.json() == {"healthy": True, "services": []}

    def test_healthy_simple(self, make_provider):
        providers = [make_provider("Test2", healthy=True)]

        response = build_client(providers).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert_basic_reply(response.json(), providers, healthy=True)

    def test_failing_simple(self, make_provider):
        providers = [make_provider("Test2", healthy=False)]

        response = build_client(providers).get(HEALTHZ_PATH)

        assert response.status_code == 503
        assert_basic_reply(response.json(), providers, healthy=False)

    def test_custom_error_code(self, make_provider):
        providers = [make_provider("Test2", healthy=False)]

        response = build_client(providers, fail_code=200).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert_basic_reply(response.json(), providers, healthy=False)

    def test_many_healthy_simple(self, make_provider):
        providers = [make_provider(name) for name in ("test1", "Test2", "Test3", "Test4")]

        response = build_client(providers).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert_basic_reply(response.json(), providers, healthy=True)

    def test_many_healthy_detailed(self, make_provider):
        providers = [make_provider(name) for name in ("test1", "Test2", "Test3", "Test4")]

        response = build_client(providers, detailed=True).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert_detailed_reply(response.json(), providers, healthy=True)

    def test_healthy_detailed(self, make_provider):
        providers = [make_provider("Test2", healthy=True)]

        response = build_client(providers, detailed=True).get(HEALTHZ_PATH)

        assert response.status_code == 200
        assert_detailed_reply(response.json(), providers, healthy=True)

    def test_failing_detailed(self, make_provider):
        providers = [make_provider("Test2", healthy=False)]

        response = build_client(providers, detailed=True).get(HEALTHZ_PATH)

        assert response.status_code == 503
        assert_detailed_reply(response.json(), providers, healthy=False)

    def test_mixed_simple(self, mixed_providers):
        response = build_client(mixed_providers).get(HEALTHZ_PATH)

        assert response.status_code == 503
        assert_basic_reply(response.json(), mixed_providers, healthy=False)

    def test_mixed_detailed(self, mixed_providers):
        response = build_client(mixed_providers, detailed=True).get(HEALTHZ_PATH)

        assert response.status_code == 503
        assert_detailed_reply(response.json(), mixed_providers, healthy=False)

    def test_repeated_requests_return_same_body(self, mixed_providers):
        client = build_client(mixed_providers, detailed=True)

        first = client.get(HEALTHZ_PATH)
        second = client.get(HEALTHZ_PATH)

        assert first.status_code == second.status_code
        assert first.content == second.content

    def test_each_request_polls_every_check(self, mixed_providers):
        client = build_client(mixed_providers)

        client.get(HEALTHZ_PATH)
        client.get(HEALTHZ_PATH)

        assert [p.handle.calls for p in mixed_providers] == [2, 2, 2, 2]
