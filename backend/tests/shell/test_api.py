"""Integration tests for API endpoints using Starlette TestClient."""

import pytest
from starlette.testclient import TestClient

from src.core.models import AccountStatus
from src.main import create_app
from src.shell.auth import generate_api_key
from src.shell.mcp_server import set_repository
from src.shell.repository import InMemoryRepository


PASSWORD = "Sup3r-secret!"


@pytest.fixture
def repo(monkeypatch):
    """In-memory repository injected in place of Firestore."""
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
    monkeypatch.delenv("NUTRIX_ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("NUTRIX_ADMIN_PASSWORD", raising=False)
    repo = InMemoryRepository()
    set_repository(repo)
    yield repo
    set_repository(None)


@pytest.fixture
def client(repo):
    """Create test client over the in-memory repository."""
    return TestClient(create_app())


def register(client, email="asha@example.com", name="Asha"):
    return client.post(
        "/auth/register", json={"email": email, "password": PASSWORD, "name": name}
    )


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_200(self, client):
        """Health endpoint returns 200 OK."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_returns_json(self, client):
        """Health endpoint returns JSON with status."""
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["service"] == "nutrix"


class TestStartup:
    """Tests for catalog seeding and admin bootstrap in create_app."""

    def test_catalog_seeded(self, client, repo):
        assert len(repo.list_foods()) == 20

    def test_admin_bootstrapped(self, repo, monkeypatch):
        monkeypatch.setenv("NUTRIX_ADMIN_EMAIL", "admin@example.com")
        monkeypatch.setenv("NUTRIX_ADMIN_PASSWORD", PASSWORD)

        client = TestClient(create_app())
        response = client.post(
            "/auth/login", json={"email": "admin@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        assert response.json()["role"] == "admin"


class TestRegisterEndpoint:
    """Tests for /auth/register endpoint."""

    def test_register_success(self, client):
        """Successful registration returns API key."""
        response = register(client)

        assert response.status_code == 200
        data = response.json()
        assert data["api_key"].startswith("ntx_")
        assert "user_id" in data
        assert "message" in data

    def test_register_missing_fields(self, client):
        """Registration without fields returns 400."""
        response = client.post("/auth/register", json={})
        assert response.status_code == 400
        assert "error" in response.json()

    def test_register_invalid_email(self, client):
        response = client.post(
            "/auth/register", json={"email": "not-an-email", "password": PASSWORD, "name": "Asha"}
        )
        assert response.status_code == 400

    def test_register_short_password(self, client):
        response = client.post(
            "/auth/register", json={"email": "asha@example.com", "password": "short", "name": "Asha"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Password must be at least 8 characters"

    def test_register_duplicate(self, client):
        register(client)
        response = register(client)
        assert response.status_code == 409


class TestLoginEndpoint:
    """Tests for /auth/login endpoint."""

    def test_login_success(self, client):
        register(client)
        response = client.post("/auth/login", json={"email": "asha@example.com", "password": PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["api_key"].startswith("ntx_")
        assert data["role"] == "user"

    def test_login_wrong_password(self, client):
        register(client)
        response = client.post("/auth/login", json={"email": "asha@example.com", "password": "nope-nope"})
        assert response.status_code == 401

    def test_login_suspended(self, client, repo):
        user_id = register(client).json()["user_id"]
        user = repo.get_user(user_id)
        repo.save_user(user.model_copy(update={"status": AccountStatus.SUSPENDED}))

        response = client.post("/auth/login", json={"email": "asha@example.com", "password": PASSWORD})
        assert response.status_code == 403


class TestValidateEndpoint:
    """Tests for /auth/validate endpoint."""

    def test_validate_missing_key(self, client):
        """Validation without key returns invalid."""
        data = client.post("/auth/validate", json={}).json()
        assert data["valid"] is False

    def test_validate_invalid_format(self, client):
        data = client.post("/auth/validate", json={"api_key": "invalid_key"}).json()
        assert data["valid"] is False

    def test_validate_nonexistent_key(self, client):
        data = client.post("/auth/validate", json={"api_key": generate_api_key()}).json()
        assert data["valid"] is False

    def test_validate_existing_key(self, client):
        api_key = register(client).json()["api_key"]
        data = client.post("/auth/validate", json={"api_key": api_key}).json()
        assert data["valid"] is True


class TestMetricsEndpoint:
    """Tests for /api/metrics endpoint."""

    def test_complete_profile(self, client):
        response = client.post("/api/metrics", json={
            "age": 30, "gender": "male", "height_cm": 175, "weight_kg": 70,
            "activity_level": "moderate",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["bmr"] == 1648.75
        assert data["bmi_category"] == "Normal"

    def test_incomplete_profile(self, client):
        data = client.post("/api/metrics", json={"age": 30}).json()
        assert data == {"bmr": 0, "tdee": 0, "bmi": 0, "bmi_category": "N/A"}

    def test_unknown_gender(self, client):
        response = client.post("/api/metrics", json={"gender": "other"})
        assert response.status_code == 422
        assert "details" in response.json()


class TestClassifyEndpoint:
    """Tests for /api/biomarkers/classify endpoint."""

    @pytest.mark.parametrize("value,expected", [(69, "low"), (70, "normal"), (101, "high")])
    def test_classify(self, client, value, expected):
        response = client.post(
            "/api/biomarkers/classify", json={"value": value, "normal_min": 70, "normal_max": 100}
        )
        assert response.json() == {"status": expected}

    def test_missing_field(self, client):
        response = client.post("/api/biomarkers/classify", json={"value": 80})
        assert response.status_code == 422

    def test_non_numeric(self, client):
        response = client.post(
            "/api/biomarkers/classify", json={"value": "high", "normal_min": 70, "normal_max": 100}
        )
        assert response.status_code == 422


class TestMealPlanPreviewEndpoint:
    """Tests for /api/meal-plans/preview endpoint."""

    def test_preview(self, client):
        data = client.post(
            "/api/meal-plans/preview", json={"target_calories": 2000, "condition": "diabetes"}
        ).json()

        assert data["condition"] == "diabetes"
        assert data["lunch"]["calories"] == 800
        assert data["total_carbs_g"] == 200

    def test_defaults(self, client):
        """No target and unknown condition gives the 2000 kcal FIT plan."""
        data = client.post("/api/meal-plans/preview", json={"condition": "flu"}).json()
        assert data["target_calories"] == 2000
        assert data["condition"] == "fit"

    def test_preview_not_stored(self, client, repo):
        client.post("/api/meal-plans/preview", json={"target_calories": 1800})
        assert repo.list_meal_plans() == []

    @pytest.mark.parametrize("target", ["lots", True])
    def test_invalid_target(self, client, target):
        response = client.post("/api/meal-plans/preview", json={"target_calories": target})
        assert response.status_code == 422


class TestMalformedInput:
    """Non-finite numbers and malformed bodies get JSON 4xx answers, never a 500."""

    @pytest.mark.parametrize("path", [
        "/api/metrics", "/api/biomarkers/classify", "/api/meal-plans/preview",
    ])
    @pytest.mark.parametrize("body", ["not json", "[1, 2]", '"text"', ""])
    def test_bad_body(self, client, path, body):
        response = client.post(path, content=body, headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    @pytest.mark.parametrize("raw", ["Infinity", "-Infinity", "NaN", "1e999"])
    def test_classify_non_finite(self, client, raw):
        body = '{"value": %s, "normal_min": 1, "normal_max": 2}' % raw
        response = client.post(
            "/api/biomarkers/classify", content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("value", ["inf", "80", True, None, [80]])
    def test_classify_non_number(self, client, value):
        response = client.post(
            "/api/biomarkers/classify", json={"value": value, "normal_min": 70, "normal_max": 100}
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("raw", ["Infinity", "-Infinity", "NaN", "1e999"])
    def test_preview_non_finite(self, client, raw):
        response = client.post(
            "/api/meal-plans/preview",
            content='{"target_calories": %s}' % raw,
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

    def test_preview_string_inf(self, client):
        response = client.post("/api/meal-plans/preview", json={"target_calories": "inf"})
        assert response.status_code == 422

    @pytest.mark.parametrize("raw", ["Infinity", "NaN", "1e999"])
    def test_metrics_non_finite(self, client, raw):
        response = client.post(
            "/api/metrics",
            content='{"age": 30, "height_cm": 180, "weight_kg": %s}' % raw,
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422
        assert response.json()["details"][0]["loc"] == ["weight_kg"]


class TestCORS:
    """Tests for CORS configuration."""

    def test_cors_preflight_localhost(self, client):
        """CORS preflight from localhost is allowed for dev."""
        response = client.options(
            "/auth/register",
            headers={
                "Origin": "http://localhost:5173",
                "Access-Control-Request-Method": "POST",
            }
        )
        assert response.status_code == 200
        assert response.headers.get("access-control-allow-origin") == "http://localhost:5173"

    def test_cors_configured_origin(self, repo, monkeypatch):
        """Origins come from CORS_ORIGINS."""
        monkeypatch.setenv("CORS_ORIGINS", "https://nutrix.example, http://localhost:5173")
        client = TestClient(create_app())

        response = client.post(
            "/api/metrics", json={}, headers={"Origin": "https://nutrix.example"}
        )
        assert response.headers.get("access-control-allow-origin") == "https://nutrix.example"
