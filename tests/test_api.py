"""API endpoint tests."""

from collections.abc import AsyncIterator

import pytest
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_201_CREATED,
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
)
from litestar.testing import AsyncTestClient

from kinnect_server import __version__
from kinnect_server.app import create_app
from kinnect_server.core.config import settings

API = "/api/v1"


@pytest.fixture
async def client(async_engine) -> AsyncIterator[AsyncTestClient]:
    """Create test client backed by the in-memory test database."""
    async with AsyncTestClient(app=create_app(db_engine=async_engine)) as client:
        yield client


@pytest.fixture
def api_key(monkeypatch) -> str:
    """Require an API key for the user endpoints."""
    monkeypatch.setattr(settings, "api_key", "test-key")
    return "test-key"


async def test_health_check(client: AsyncTestClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/health")

    assert response.status_code == HTTP_200_OK
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == __version__


async def test_qc_rules(client: AsyncTestClient) -> None:
    response = await client.get(f"{API}/qc/rules")

    assert response.status_code == HTTP_200_OK
    data = response.json()
    assert data["rules"]["distance_km"]["per_type_max"]["workout"] == 0
    assert "run" in data["activity_types"]


async def test_validate_accepted_with_warnings(client: AsyncTestClient) -> None:
    response = await client.post(
        f"{API}/activities/validate",
        json={"type": "walk", "distance_km": 5, "duration_minutes": 40},
    )

    assert response.status_code == HTTP_200_OK
    data = response.json()
    assert data["valid"] is True
    assert len(data["warnings"]) == 1
    assert data["score"] == {"calories_estimate": 175, "points_earned": 18}


async def test_validate_rejected(client: AsyncTestClient) -> None:
    response = await client.post(
        f"{API}/activities/validate",
        json={"type": "run", "distance_km": 150, "duration_minutes": 600},
    )

    assert response.status_code == HTTP_200_OK
    data = response.json()
    assert data["valid"] is False
    assert "run distance cannot exceed 100 km" in data["errors"]
    assert data["score"] is None


async def test_validate_missing_type(client: AsyncTestClient) -> None:
    response = await client.post(f"{API}/activities/validate", json={"duration_minutes": 30})

    assert response.status_code == HTTP_200_OK
    assert response.json()["errors"] == ["Activity type is required"]


class TestAuthentication:
    """Tests for the API key guard on user endpoints."""

    async def test_missing_key(self, client: AsyncTestClient, api_key: str) -> None:
        response = await client.get(f"{API}/users/abc/progress")

        assert response.status_code == HTTP_401_UNAUTHORIZED

    async def test_wrong_key(self, client: AsyncTestClient, api_key: str) -> None:
        response = await client.get(f"{API}/users/abc/progress", headers={"X-API-Key": "nope"})

        assert response.status_code == HTTP_401_UNAUTHORIZED

    async def test_qc_endpoints_stay_open(self, client: AsyncTestClient, api_key: str) -> None:
        response = await client.get(f"{API}/qc/rules")

        assert response.status_code == HTTP_200_OK


class TestActivityEndpoints:
    """Tests for the activity logging, listing and import endpoints."""

    async def test_rejected_activity_returns_errors(
        self, client: AsyncTestClient, api_key: str
    ) -> None:
        headers = {"X-API-Key": api_key}

        response = await client.post(
            f"{API}/users/abc/activities",
            json={"type": "run", "distance_km": 150, "duration_minutes": 600},
            headers=headers,
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["detail"] == "Activity rejected by quality control"
        assert "run distance cannot exceed 100 km" in data["extra"]["errors"]
        assert data["extra"]["warnings"] == []

        progress = await client.get(f"{API}/users/abc/progress", headers=headers)
        assert progress.json() == {
            "user_id": "abc",
            "points": 0,
            "streak": 0,
            "last_activity_date": None,
        }
        listed = await client.get(f"{API}/users/abc/activities", headers=headers)
        assert listed.json() == []

    async def test_log_activity_round_trip(self, client: AsyncTestClient) -> None:
        """An accepted walk is stored, credited and returned with its warnings."""
        response = await client.post(
            f"{API}/users/abc/activities",
            json={"type": "walk", "distance_km": 5, "duration_minutes": 40, "title": "Commute"},
        )

        assert response.status_code == HTTP_201_CREATED
        data = response.json()
        assert data["calories_estimate"] == 175
        assert data["points_earned"] == 18
        assert data["warnings"] == [
            "Speed suggests running rather than walking. Please verify the activity type."
        ]
        assert data["metrics"]["speed_kmh"] == pytest.approx(7.5)
        assert data["activity"]["qc_status"] == "accepted_with_warnings"
        assert data["activity"]["title"] == "Commute"
        assert data["progress"]["points"] == 18
        assert data["progress"]["streak"] == 1

        progress = await client.get(f"{API}/users/abc/progress")
        assert progress.status_code == HTTP_200_OK
        assert progress.json()["points"] == 18
        assert progress.json()["streak"] == 1

        listed = await client.get(f"{API}/users/abc/activities")
        assert listed.status_code == HTTP_200_OK
        assert [a["id"] for a in listed.json()] == [data["activity"]["id"]]

    async def test_list_days_out_of_range(self, client: AsyncTestClient) -> None:
        response = await client.get(f"{API}/users/abc/activities", params={"days": 0})

        assert response.status_code == HTTP_400_BAD_REQUEST

    async def test_import_requires_ids_or_import_all(
        self, client: AsyncTestClient, api_key: str
    ) -> None:
        response = await client.post(
            f"{API}/users/abc/activities/import-strava",
            json={},
            headers={"Authorization": f"Bearer {api_key}", "X-Strava-Token": "token"},
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
        assert "import_all" in response.json()["detail"]

    async def test_import_requires_strava_token(
        self, client: AsyncTestClient, api_key: str
    ) -> None:
        response = await client.post(
            f"{API}/users/abc/activities/import-strava",
            json={"import_all": True},
            headers={"X-API-Key": api_key},
        )

        assert response.status_code == HTTP_400_BAD_REQUEST
