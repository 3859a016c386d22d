"""Error mapping through a FastAPI app using the shared exception handlers."""
from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from five_bells_shared.api.errors import register_exception_handlers
from five_bells_shared.application.exceptions import (
    AlreadyExistsError,
    DatabaseError,
    InvalidBodyError,
    InvalidModificationError,
    InvalidUriError,
    NotFoundError,
    UnauthorizedError,
    UnmetConditionError,
)
from five_bells_shared.services.uri_manager import UriManager


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)
    uris = UriManager("http://localhost")
    uris.add_resource("transfer", "/transfers/:id")

    @app.get("/resolve")
    async def resolve(uri: str) -> dict[str, str]:
        parsed = uris.parse(uri, "transfer")
        return {"id": parsed.params["id"]}

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundError("Unknown transfer ID")

    @app.get("/conflict")
    async def conflict() -> None:
        raise AlreadyExistsError("Transfer exists", validation_errors=[{"field": "id"}])

    @app.get("/broken")
    async def broken() -> None:
        raise RuntimeError("database went away")

    @app.get("/body")
    async def body() -> None:
        raise InvalidBodyError(
            "JSON request body is not valid",
            validation_errors=[{"field": "amount", "message": "must be a string"}],
        )

    @app.get("/condition")
    async def condition() -> None:
        raise UnmetConditionError("Invalid execution_condition_fulfillment")

    @app.get("/modify")
    async def modify() -> None:
        raise InvalidModificationError("Transfer may not be modified", invalid_diffs=[{"kind": "E"}])

    @app.get("/forbidden")
    async def forbidden() -> None:
        raise UnauthorizedError("Unknown or invalid account / password")

    @app.get("/db")
    async def db() -> None:
        raise DatabaseError("Connection lost")

    @app.get("/invalid")
    async def invalid() -> None:
        raise InvalidUriError("URI is not a valid account URI: x")

    return TestClient(app, raise_server_exceptions=False)


def test_parse_success(client):
    resp = client.get("/resolve", params={"uri": "http://localhost/transfers/abc"})

    assert resp.status_code == 200
    assert resp.json() == {"id": "abc"}


def test_invalid_uri_is_400(client):
    resp = client.get("/resolve", params={"uri": "http://example.com/transfers/abc"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["id"] == "InvalidUriError"
    assert "not a valid transfer URI" in body["message"]


def test_not_found_is_404(client):
    resp = client.get("/missing")

    assert resp.status_code == 404
    assert resp.json() == {"id": "NotFoundError", "message": "Unknown transfer ID"}


def test_validation_errors_are_included(client):
    resp = client.get("/conflict")

    assert resp.status_code == 409
    assert resp.json()["validationErrors"] == [{"field": "id"}]


def test_unexpected_error_is_500(client):
    resp = client.get("/broken")

    assert resp.status_code == 500
    assert resp.json() == {
        "id": "InternalServerError",
        "message": "RuntimeError: database went away",
    }


def test_invalid_uri_handler(client):
    resp = client.get("/invalid")

    assert resp.status_code == 400
    assert resp.json()["id"] == "InvalidUriError"


def test_invalid_body_includes_validation_errors(client):
    resp = client.get("/body")

    assert resp.status_code == 400
    assert resp.json() == {
        "id": "InvalidBodyError",
        "message": "JSON request body is not valid",
        "validationErrors": [{"field": "amount", "message": "must be a string"}],
    }


def test_unprocessable_subclass_is_422(client):
    resp = client.get("/condition")

    assert resp.status_code == 422
    assert resp.json()["id"] == "UnmetConditionError"


def test_invalid_modification_includes_diffs(client):
    resp = client.get("/modify")

    assert resp.status_code == 400
    assert resp.json()["invalidDiffs"] == [{"kind": "E"}]


def test_unauthorized_is_403(client):
    resp = client.get("/forbidden")

    assert resp.status_code == 403
    assert resp.json()["id"] == "UnauthorizedError"


def test_database_error_is_500(client):
    resp = client.get("/db")

    assert resp.status_code == 500
    assert resp.json() == {"id": "DatabaseError", "message": "Connection lost"}
