from __future__ import annotations

from typing import Any

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.dependencies import get_app_settings
from api.middleware.exception_handlers import register_exception_handlers
from api.routes.v1.passcode import passcode_matches, router


@pytest.fixture
def app(settings_factory: Any) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router, prefix="/api/v1")
    app.dependency_overrides[get_app_settings] = lambda: settings_factory(
        dev_passcode="open-sesame",
        dev_passcode_2="second-door",
    )
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestPasscodeMatches:
    def test_matches_any(self) -> None:
        assert passcode_matches("b", ["a", "b"]) is True

    def test_no_match(self) -> None:
        assert passcode_matches("c", ["a", "b"]) is False

    def test_prefix_is_not_a_match(self) -> None:
        assert passcode_matches("open", ["open-sesame"]) is False

    def test_unicode(self) -> None:
        assert passcode_matches("pässwörd", ["pässwörd"]) is True


class TestVerifyPasscode:
    @pytest.mark.parametrize("passcode", ["open-sesame", "second-door"])
    def test_valid(self, client: TestClient, passcode: str) -> None:
        response = client.post("/api/v1/verify-passcode", json={"passcode": passcode})

        assert response.status_code == 200
        assert response.json() == {"valid": True}

    def test_invalid(self, client: TestClient) -> None:
        response = client.post("/api/v1/verify-passcode", json={"passcode": "guess"})

        assert response.status_code == 401
        assert response.json() == {"valid": False}

    def test_missing_passcode_is_invalid(self, client: TestClient) -> None:
        response = client.post("/api/v1/verify-passcode", json={})

        assert response.status_code == 401
        assert response.json() == {"valid": False}

    def test_not_configured_is_403(self, app: FastAPI, client: TestClient, settings_factory: Any) -> None:
        app.dependency_overrides[get_app_settings] = lambda: settings_factory()

        response = client.post("/api/v1/verify-passcode", json={"passcode": "anything"})

        assert response.status_code == 403
        body = response.json()
        assert body["valid"] is False
        assert body["error"] == "No passcodes configured on server"

    def test_blank_passcodes_count_as_unconfigured(
        self, app: FastAPI, client: TestClient, settings_factory: Any
    ) -> None:
        app.dependency_overrides[get_app_settings] = lambda: settings_factory(dev_passcode="", dev_passcode_2="")

        response = client.post("/api/v1/verify-passcode", json={"passcode": ""})

        assert response.status_code == 403

    def test_response_never_echoes_passcode(self, client: TestClient) -> None:
        response = client.post("/api/v1/verify-passcode", json={"passcode": "guess"})
        assert "open-sesame" not in response.text
