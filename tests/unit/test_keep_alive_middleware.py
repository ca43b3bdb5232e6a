"""
Unit tests for the keep-alive middleware.

Tests that responses carry ``Connection: close`` only once keep-alives have
been switched off.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from middleware.keep_alive import KeepAliveMiddleware, CONNECTION_HEADER


class Switch:
    def __init__(self):
        self.enabled = True

    def __call__(self) -> bool:
        return self.enabled


class TestKeepAliveMiddleware:
    """Tests for the KeepAliveMiddleware class."""

    @pytest.fixture
    def switch(self):
        return Switch()

    @pytest.fixture
    def client(self, switch):
        app = FastAPI()
        app.add_middleware(KeepAliveMiddleware, keep_alives_enabled=switch)

        @app.get("/ping")
        def ping():
            return {"pong": True}

        return TestClient(app)

    def test_no_header_while_enabled(self, client):
        response = client.get("/ping")

        assert response.status_code == 200
        assert response.headers.get(CONNECTION_HEADER) != "close"

    def test_close_header_once_disabled(self, client, switch):
        switch.enabled = False

        response = client.get("/ping")

        assert response.status_code == 200
        assert response.headers[CONNECTION_HEADER] == "close"

    def test_switch_is_read_per_request(self, client, switch):
        client.get("/ping")
        switch.enabled = False
        client.get("/ping")
        switch.enabled = True

        response = client.get("/ping")

        assert response.headers.get(CONNECTION_HEADER) != "close"
