"""Error taxonomy and handler boundary tests."""

import pytest

from propcall.errors import (
    GENERIC_MESSAGE,
    InternalError,
    NotFoundError,
    ValidationError,
    format_validation_errors,
    handler_boundary,
)


def test_validation_error_joins_messages():
    error = ValidationError(["name: Required", "price: Input should be greater than 0"])
    assert error.status_code == 400
    assert error.detail == "name: Required, price: Input should be greater than 0"
    assert error.messages == ["name: Required", "price: Input should be greater than 0"]


def test_format_strips_location_prefixes():
    errors = [
        {"type": "missing", "loc": ("body", "name"), "msg": "Field required"},
        {"type": "value_error", "loc": ("query", "page"), "msg": "Value error, bad", "ctx": {"error": ValueError("bad")}},
        {"type": "string_too_long", "loc": ("body", "responses", "name"), "msg": "String should have at most 5 characters"},
    ]
    assert format_validation_errors(errors) == [
        "name: Required",
        "page: bad",
        "responses.name: String should have at most 5 characters",
    ]


@pytest.mark.asyncio
async def test_boundary_passes_http_errors_through():
    @handler_boundary("Test API")
    async def handler():
        raise NotFoundError("Thing not found")

    with pytest.raises(NotFoundError):
        await handler()


@pytest.mark.asyncio
async def test_boundary_hides_unexpected_errors(caplog):
    @handler_boundary("Test API")
    async def handler():
        raise KeyError("secret internals")

    with pytest.raises(InternalError) as exc:
        await handler()
    assert exc.value.detail == GENERIC_MESSAGE
    assert "Test API error" in caplog.text


def test_health_check(client):
    assert client.get("/").json() == {"status": "ok"}
