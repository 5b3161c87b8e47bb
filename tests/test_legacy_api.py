"""
Tests for the legacy capital-divisions service and its client.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from financeflow.api import create_app, sanitize_divisions
from financeflow.models import CapitalDivision
from financeflow.services import LegacyApiError, LegacyDivisionsClient


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "legacy" / "capital-divisions.json"


@pytest.fixture
def client(data_file):
    return TestClient(create_app(str(data_file)))


class TestSanitize:
    """Field coercion on POST."""

    def test_coerces_types(self):
        [clean] = sanitize_divisions([{"id": 7, "name": "Savings", "percentage": "20", "color": "#000"}])
        assert clean == {"id": "7", "name": "Savings", "percentage": 20.0, "color": "#000"}

    def test_fills_defaults(self):
        [clean] = sanitize_divisions([{}])
        assert clean["id"].isdigit()
        assert clean["name"] == ""
        assert clean["percentage"] == 0.0
        assert clean["color"] == "#10B981"

    @pytest.mark.parametrize("raw", ["abc", None, float("nan"), [1]])
    def test_bad_percentage_becomes_zero(self, raw):
        [clean] = sanitize_divisions([{"id": "1", "percentage": raw}])
        assert clean["percentage"] == 0.0

    def test_non_object_entry(self):
        [clean] = sanitize_divisions(["junk"])
        assert clean["name"] == ""


class TestEndpoints:
    """Tests for GET/POST /api/capital-divisions."""

    def test_get_seeds_defaults(self, client, data_file):
        response = client.get("/api/capital-divisions")
        assert response.status_code == 200
        names = [d["name"] for d in response.json()["divisions"]]
        assert names == ["Essential Expenses", "Savings", "Investments", "Leisure"]
        assert data_file.exists()

    def test_post_overwrites_file(self, client, data_file):
        response = client.post(
            "/api/capital-divisions",
            json={"divisions": [{"id": 1, "name": "All", "percentage": "100"}]},
        )
        assert response.status_code == 200
        assert response.json() == {
            "divisions": [{"id": "1", "name": "All", "percentage": 100.0, "color": "#10B981"}]
        }
        assert json.loads(data_file.read_text())["divisions"][0]["name"] == "All"
        assert client.get("/api/capital-divisions").json()["divisions"][0]["id"] == "1"

    @pytest.mark.parametrize("body", [{"divisions": "nope"}, {}, [1, 2]])
    def test_post_rejects_non_array(self, client, body):
        response = client.post("/api/capital-divisions", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "divisions must be an array"}

    def test_get_unreadable_file(self, client, data_file):
        data_file.parent.mkdir(parents=True, exist_ok=True)
        data_file.write_text("{not json")
        response = client.get("/api/capital-divisions")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read divisions"}


class TestLegacyClient:
    """Tests for LegacyDivisionsClient over httpx.MockTransport."""

    @pytest.mark.asyncio
    async def test_fetch_divisions(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/api/capital-divisions"
            return httpx.Response(
                200, json={"divisions": [{"id": "1", "name": "Savings", "percentage": 20, "color": "#3B82F6"}]}
            )

        async with LegacyDivisionsClient(transport=httpx.MockTransport(handler)) as legacy:
            divisions = await legacy.fetch_divisions()
        assert divisions == [CapitalDivision(id="1", name="Savings", percentage=20, color="#3B82F6")]

    @pytest.mark.asyncio
    async def test_push_sends_only_stored_fields(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json=seen)

        division = CapitalDivision(id="1", name="Savings", percentage=20, amount=400)
        async with LegacyDivisionsClient(transport=httpx.MockTransport(handler)) as legacy:
            stored = await legacy.push_divisions([division])
        assert seen == {"divisions": [{"id": "1", "name": "Savings", "percentage": 20.0, "color": "#10B981"}]}
        assert stored[0].amount == 0

    @pytest.mark.asyncio
    async def test_errors_are_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with LegacyDivisionsClient(transport=httpx.MockTransport(handler)) as legacy:
            with pytest.raises(LegacyApiError):
                await legacy.fetch_divisions()
            with pytest.raises(LegacyApiError):
                await legacy.push_divisions([])

    @pytest.mark.asyncio
    async def test_non_json_response_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        async with LegacyDivisionsClient(transport=httpx.MockTransport(handler)) as legacy:
            with pytest.raises(LegacyApiError):
                await legacy.fetch_divisions()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"divisions": None},
            ["not", "an", "object"],
            {"divisions": [{"id": "1", "name": "Savings", "percentage": "lots"}]},
        ],
    )
    async def test_unexpected_body_is_wrapped(self, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with LegacyDivisionsClient(transport=httpx.MockTransport(handler)) as legacy:
            with pytest.raises(LegacyApiError):
                await legacy.fetch_divisions()
            with pytest.raises(LegacyApiError):
                await legacy.push_divisions([])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
