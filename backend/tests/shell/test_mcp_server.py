"""Tests for MCP tool functions, called directly with an authenticated context."""

import pytest

from src.core.models import Role
from src.shell import mcp_server
from src.shell.auth import AuthClient
from src.shell.mcp_server import current_user_id, set_repository
from src.shell.repository import InMemoryRepository
from src.shell.seed import seed_catalog


PASSWORD = "Sup3r-secret!"


@pytest.fixture
def repo():
    repo = InMemoryRepository()
    seed_catalog(repo)
    set_repository(repo)
    yield repo
    set_repository(None)


def login_as(repo, email, role=Role.USER):
    """Register an account and make it the current MCP user."""
    _, user = AuthClient(repo).register_user(email, PASSWORD, email.split("@")[0], role=role)
    return user, current_user_id.set(user.id)


@pytest.fixture
def user(repo):
    user, token = login_as(repo, "asha@example.com")
    yield user
    current_user_id.reset(token)


@pytest.fixture
def admin(repo):
    admin, token = login_as(repo, "admin@example.com", Role.ADMIN)
    yield admin
    current_user_id.reset(token)


class TestAuthentication:
    """Tests for get_user_id."""

    def test_unauthenticated(self, repo):
        with pytest.raises(RuntimeError):
            mcp_server.get_metrics()


class TestProfileTools:
    """Tests for update_profile and get_metrics tools."""

    def test_update_profile(self, user):
        result = mcp_server.update_profile(30, "male", 175, 70, "moderate")
        assert result["bmr"] == 1648.75
        assert mcp_server.get_metrics()["bmi_category"] == "Normal"

    def test_unknown_gender(self, user):
        result = mcp_server.update_profile(30, "other", 175, 70, "moderate")
        assert "error" in result

    def test_out_of_range(self, user):
        result = mcp_server.update_profile(12, "female", 175, 70, "light")
        assert result["fields"] == {"age": "Value must be at least 18"}


class TestReportAndPlanTools:
    """Tests for report and meal plan tools."""

    def test_upload_then_generate(self, user):
        upload = mcp_server.upload_report("labs.pdf")
        assert len(upload["readings"]) == 9
        assert len(mcp_server.get_reports()) == 1

        plan = mcp_server.generate_meal_plan()
        assert plan["condition"] == "anemia"
        assert mcp_server.get_meal_plans()[0]["id"] == plan["plan_id"]

    def test_unknown_report_type(self, user):
        assert "error" in mcp_server.upload_report("labs.pdf", "xray")


class TestAdminTools:
    """Tests for admin-only tools."""

    def test_non_admin_rejected(self, user):
        assert mcp_server.get_food_stats() == mcp_server.ADMIN_REQUIRED
        assert mcp_server.list_foods() == [mcp_server.ADMIN_REQUIRED]
        assert mcp_server.delete_food("food_1") == mcp_server.ADMIN_REQUIRED

    def test_food_crud(self, admin):
        food = mcp_server.add_food("Quinoa", "lunch", 120, 21, 4.4, 1.9)
        assert mcp_server.update_food(food["id"], {"calories": 130})["calories"] == 130
        assert mcp_server.delete_food(food["id"]) == {"success": True}
        assert mcp_server.delete_food(food["id"]) == {"error": "Food not found."}

    def test_invalid_food(self, admin):
        assert "error" in mcp_server.add_food("Bad", "lunch", -1, 0, 0, 0)

    def test_set_suitability(self, admin):
        record = mcp_server.set_suitability("food_1", "diabetes", False)
        assert record["is_suitable"] is False
        assert mcp_server.get_food_stats()["unsuitable_pairs"] == 1

    def test_set_suitability_errors(self, admin):
        assert "error" in mcp_server.set_suitability("food_1", "fit", False)
        assert mcp_server.set_suitability("missing", "anemia", False) == {"error": "Food not found."}

    def test_list_users_hides_secrets(self, admin):
        users = mcp_server.list_users()
        assert users
        assert all("password_hash" not in u and "api_key_hash" not in u for u in users)

    def test_override_meal_plan(self, admin, repo):
        _, token = login_as(repo, "bo@example.com")
        plan_id = mcp_server.generate_meal_plan()["plan_id"]
        current_user_id.reset(token)

        result = mcp_server.override_meal_plan_macros(plan_id, 1500, 120, 50, 110)
        assert result["plan"]["total_calories"] == 1500
        assert result["overridden_by"] == "admin@example.com"

        assert "error" in mcp_server.override_meal_plan_macros(plan_id, -1, 0, 0, 0)

    def test_toggle_and_audit(self, admin, repo):
        _, token = login_as(repo, "bo@example.com")
        current_user_id.reset(token)
        bo = repo.get_user_by_email("bo@example.com")

        assert mcp_server.toggle_user_status(bo.id)["status"] == "suspended"
        assert mcp_server.get_audit_logs(1)[0]["entity_id"] == bo.id


class TestAdminListingTools:
    """Tests for tools an admin uses to find plans, reports and users to moderate."""

    def test_non_admin_rejected(self, user):
        assert mcp_server.list_all_meal_plans() == [mcp_server.ADMIN_REQUIRED]
        assert mcp_server.list_all_reports() == [mcp_server.ADMIN_REQUIRED]
        assert mcp_server.update_user(user.id, name="x") == mcp_server.ADMIN_REQUIRED

    def test_lists_every_users_content(self, admin, repo):
        _, token = login_as(repo, "bo@example.com")
        report_id = mcp_server.upload_report("labs.pdf")["report_id"]
        plan_id = mcp_server.generate_meal_plan()["plan_id"]
        current_user_id.reset(token)

        assert [p["id"] for p in mcp_server.list_all_meal_plans()] == [plan_id]
        assert [r["id"] for r in mcp_server.list_all_reports()] == [report_id]

    def test_listed_ids_drive_moderation(self, admin, repo):
        _, token = login_as(repo, "bo@example.com")
        mcp_server.upload_report("labs.pdf")
        current_user_id.reset(token)

        report_id = mcp_server.list_all_reports()[0]["id"]
        assert mcp_server.delete_report(report_id) == {"success": True}
        assert mcp_server.list_all_reports() == []

    def test_update_user_profile(self, admin, repo):
        bo, token = login_as(repo, "bo@example.com")
        current_user_id.reset(token)

        result = mcp_server.update_user(
            bo.id, name="Bo K", age=30, gender="male", height_cm=175, weight_kg=70,
        )

        assert result["name"] == "Bo K"
        assert result["bmr"] == 1648.75
        assert "password_hash" not in result
        assert repo.get_user(bo.id).profile.activity_level.value == "moderate"

    def test_update_user_keeps_other_fields(self, admin, repo):
        bo, token = login_as(repo, "bo@example.com")
        current_user_id.reset(token)
        mcp_server.update_user(bo.id, age=30, gender="male", height_cm=175, weight_kg=70)

        result = mcp_server.update_user(bo.id, weight_kg=80)

        assert result["profile"]["age"] == 30
        assert result["profile"]["weight_kg"] == 80

    def test_update_user_errors(self, admin, repo):
        bo, token = login_as(repo, "bo@example.com")
        current_user_id.reset(token)

        assert "error" in mcp_server.update_user(bo.id, gender="other")
        assert mcp_server.update_user("missing", name="x") == {"error": "User not found."}
