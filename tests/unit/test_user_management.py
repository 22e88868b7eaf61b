import jsondiff
import pytest

from app import db
from app.blueprints.auth.models import User
from utils import login_user


@pytest.mark.user_management
class TestUserManagement:
    @pytest.fixture()
    def new_user_payload(self):
        return {
            "username": "new_supervisor",
            "email": "new.supervisor@example.org",
            "password": "NewSupervisor1",
            "fullName": "New Supervisor",
        }

    @pytest.fixture()
    def sample_user(self, client, admin_headers, new_user_payload):
        response = client.post(
            "/api/users",
            json=new_user_payload,
            content_type="application/json",
            headers=admin_headers,
        )
        assert response.status_code == 201

        yield response.json["data"]

    def test_add_user(self, client, app, sample_user, new_user_payload):
        expected_data = {
            "username": "new_supervisor",
            "email": "new.supervisor@example.org",
            "full_name": "New Supervisor",
            "role": "user",
            "active": True,
        }
        checkdiff = jsondiff.diff(
            expected_data, {key: sample_user[key] for key in expected_data}
        )
        assert checkdiff == {}

        response = client.post(
            "/api/login",
            json={
                "username": new_user_payload["username"],
                "password": new_user_payload["password"],
            },
        )
        assert response.status_code == 200

    def test_add_duplicate_user(
        self, client, admin_headers, sample_user, new_user_payload
    ):
        response = client.post(
            "/api/users",
            json={**new_user_payload, "username": "another_name"},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json["message"] == "Username or email already exists"

    def test_add_user_invalid_payload(self, client, admin_headers):
        response = client.post(
            "/api/users",
            json={
                "username": "bad name!",
                "email": "not-an-email",
                "password": "weakpassword",
                "fullName": "X",
                "role": "superuser",
            },
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert set(response.json["message"]) == {
            "username",
            "email",
            "password",
            "fullName",
            "role",
        }

    def test_add_user_requires_admin(self, client, user_headers, new_user_payload):
        response = client.post(
            "/api/users",
            json=new_user_payload,
            content_type="application/json",
            headers=user_headers,
        )

        assert response.status_code == 403

    def test_get_users(self, client, admin_headers):
        response = client.get("/api/users", headers=admin_headers)

        assert response.status_code == 200
        assert {user["username"] for user in response.json["data"]} == {
            "admin",
            "supervisor",
            "other_supervisor",
        }
        assert response.json["pagination"]["totalUsers"] == 3

    def test_get_users_filters(self, client, admin_headers):
        response = client.get(
            "/api/users", query_string={"role": "admin"}, headers=admin_headers
        )
        assert [user["username"] for user in response.json["data"]] == ["admin"]

        response = client.get(
            "/api/users", query_string={"search": "other"}, headers=admin_headers
        )
        assert [user["username"] for user in response.json["data"]] == [
            "other_supervisor"
        ]

    def test_get_users_invalid_param(self, client, admin_headers):
        response = client.get(
            "/api/users", query_string={"role": "owner"}, headers=admin_headers
        )

        expected_response = {
            "success": False,
            "data": None,
            "message": {"role": ["Value must be one of admin, user"]},
        }

        assert response.status_code == 400
        checkdiff = jsondiff.diff(expected_response, response.json)
        assert checkdiff == {}

    def test_deactivate_and_restore_user(self, client, app, admin_headers, sample_user):
        user_uid = sample_user["user_uid"]

        response = client.delete(f"/api/users/{user_uid}", headers=admin_headers)
        assert response.status_code == 200

        with app.app_context():
            assert db.session.get(User, user_uid).active is False

        response = client.get(
            "/api/users", query_string={"isActive": "false"}, headers=admin_headers
        )
        assert [user["user_uid"] for user in response.json["data"]] == [user_uid]

        response = client.put(f"/api/users/{user_uid}/restore", headers=admin_headers)
        assert response.status_code == 200

        with app.app_context():
            assert db.session.get(User, user_uid).active is True

        response = client.put(f"/api/users/{user_uid}/restore", headers=admin_headers)
        assert response.status_code == 400

    def test_admin_cannot_deactivate_self(self, client, app, admin_headers):
        with app.app_context():
            admin_uid = User.query.filter_by(username="admin").first().user_uid

        response = client.delete(f"/api/users/{admin_uid}", headers=admin_headers)

        assert response.status_code == 400

    def test_deactivate_unknown_user(self, client, admin_headers):
        response = client.delete("/api/users/999", headers=admin_headers)

        assert response.status_code == 404

    def test_get_user(self, client, admin_headers, sample_user):
        response = client.get(
            f"/api/users/{sample_user['user_uid']}", headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json["data"]["username"] == "new_supervisor"
        assert response.json["data"]["updated_at"] is not None

    def test_get_unknown_user(self, client, admin_headers):
        response = client.get("/api/users/999", headers=admin_headers)

        assert response.status_code == 404

    def test_get_user_requires_admin(self, client, user_headers, sample_user):
        response = client.get(
            f"/api/users/{sample_user['user_uid']}", headers=user_headers
        )

        assert response.status_code == 403

    def test_update_user(self, client, app, admin_headers, sample_user):
        user_uid = sample_user["user_uid"]

        response = client.put(
            f"/api/users/{user_uid}",
            json={"fullName": "Renamed Supervisor", "role": "admin"},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 200

        expected_data = {
            "user_uid": user_uid,
            "username": "new_supervisor",
            "email": "new.supervisor@example.org",
            "full_name": "Renamed Supervisor",
            "role": "admin",
            "active": True,
        }
        data = response.json["data"]
        checkdiff = jsondiff.diff(
            expected_data, {key: data[key] for key in expected_data}
        )
        assert checkdiff == {}

    def test_update_user_active_flag(self, client, app, admin_headers, sample_user):
        user_uid = sample_user["user_uid"]

        response = client.put(
            f"/api/users/{user_uid}",
            json={"isActive": False},
            content_type="application/json",
            headers=admin_headers,
        )
        assert response.status_code == 200

        with app.app_context():
            assert db.session.get(User, user_uid).active is False

        response = client.put(
            f"/api/users/{user_uid}",
            json={"isActive": True},
            content_type="application/json",
            headers=admin_headers,
        )
        assert response.status_code == 200

        with app.app_context():
            assert db.session.get(User, user_uid).active is True

    def test_update_user_duplicate_email(
        self, client, admin_headers, sample_user, user_credentials
    ):
        response = client.put(
            f"/api/users/{sample_user['user_uid']}",
            json={"email": user_credentials["email"]},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json["message"] == "Username or email already exists"

    def test_update_user_without_fields(self, client, admin_headers, sample_user):
        response = client.put(
            f"/api/users/{sample_user['user_uid']}",
            json={},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json["message"] == "No fields to update"

    def test_admin_cannot_deactivate_self_on_update(self, client, app, admin_headers):
        with app.app_context():
            admin_uid = User.query.filter_by(username="admin").first().user_uid

        response = client.put(
            f"/api/users/{admin_uid}",
            json={"isActive": False},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 400

        with app.app_context():
            assert db.session.get(User, admin_uid).active is True

    def test_update_unknown_user(self, client, admin_headers):
        response = client.put(
            "/api/users/999",
            json={"fullName": "Nobody Here"},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 404

    def test_reset_password(self, client, admin_headers, sample_user, new_user_payload):
        response = client.put(
            f"/api/users/{sample_user['user_uid']}/reset-password",
            json={"newPassword": "ResetPassword9"},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json["message"] == "Password reset successfully"

        response = client.post(
            "/api/login",
            json={
                "username": new_user_payload["username"],
                "password": new_user_payload["password"],
            },
        )
        assert response.status_code == 401

        login_user(
            client,
            {"username": new_user_payload["username"], "password": "ResetPassword9"},
        )

    def test_reset_password_too_short(self, client, admin_headers, sample_user):
        response = client.put(
            f"/api/users/{sample_user['user_uid']}/reset-password",
            json={"newPassword": "Ab1"},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert "newPassword" in response.json["message"]

    def test_reset_password_unknown_user(self, client, admin_headers):
        response = client.put(
            "/api/users/999/reset-password",
            json={"newPassword": "ResetPassword9"},
            content_type="application/json",
            headers=admin_headers,
        )

        assert response.status_code == 404
