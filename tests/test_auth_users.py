"""
Tests de autenticación, bloqueo de cuentas y administración de usuarios
"""
import config
from models import RoleName
from conftest import TEST_PASSWORD


def _login(client, username, password=TEST_PASSWORD):
    return client.post("/api/auth/login", data={"username": username, "password": password})


class TestLogin:

    def test_login_returns_tokens_and_profile(self, client, users):
        response = _login(client, "receptionist")
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == config.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert data["user"]["role"] == "Receptionist"
        assert data["user"]["last_login"] is not None

        me = client.get("/api/auth/current", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["username"] == "receptionist"

    def test_wrong_password(self, client, users):
        response = _login(client, "receptionist", "Wrong1234")
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect username or password"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_unknown_user(self, client, users):
        assert _login(client, "nobody").status_code == 401

    def test_account_locks_after_failed_attempts(self, client, users):
        for _ in range(config.MAX_FAILED_LOGINS - 1):
            assert _login(client, "staff", "Wrong1234").status_code == 401

        response = _login(client, "staff", "Wrong1234")
        assert response.status_code == 403
        assert "Account locked" in response.json()["detail"]

        # ni la contraseña correcta entra mientras dure el bloqueo
        response = _login(client, "staff")
        assert response.status_code == 403
        assert "Try again in" in response.json()["detail"]

    def test_activation_clears_lock(self, client, headers, users):
        for _ in range(config.MAX_FAILED_LOGINS):
            _login(client, "staff", "Wrong1234")
        staff = users[RoleName.STAFF]

        response = client.post(f"/api/user/{staff.id}/activate", headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        assert response.json()["account_status"] == "Active"
        assert _login(client, "staff").status_code == 200

    def test_inactive_user_cannot_login(self, client, headers, users):
        staff = users[RoleName.STAFF]
        client.post(f"/api/user/{staff.id}/deactivate", headers=headers[RoleName.MANAGER])
        response = _login(client, "staff")
        assert response.status_code == 403
        assert response.json()["detail"] == "User account is inactive"

    def test_refresh_token(self, client, users):
        tokens = _login(client, "manager").json()
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "manager"

        # un access token no sirve como refresh
        response = client.post("/api/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    def test_validate_token(self, client, users):
        tokens = _login(client, "guest").json()
        response = client.post("/api/auth/validate-token", json={"token": tokens["access_token"]})
        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert response.json()["role"] == "Guest"

        response = client.post("/api/auth/validate-token", json={"token": "not-a-token"})
        assert response.status_code == 400

    def test_logout(self, client, headers):
        response = client.post("/api/auth/logout", headers=headers[RoleName.GUEST])
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"


class TestPasswords:

    def test_change_password(self, client, headers, users):
        response = client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "NewSecret456"},
            headers=headers[RoleName.GUEST],
        )
        assert response.status_code == 200
        assert _login(client, "guest", "NewSecret456").status_code == 200

    def test_change_password_wrong_current(self, client, headers):
        response = client.post(
            "/api/auth/change-password",
            json={"current_password": "Nope12345", "new_password": "NewSecret456"},
            headers=headers[RoleName.GUEST],
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Current password is incorrect"

    def test_weak_new_password(self, client, headers):
        response = client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "alllowercase1"},
            headers=headers[RoleName.GUEST],
        )
        assert response.status_code == 422

    def test_reset_sets_temporary_password(self, client, users):
        response = client.post("/api/auth/reset-password", json={"email": users[RoleName.GUEST].email})
        assert response.status_code == 200

        response = _login(client, "guest", config.TEMPORARY_PASSWORD)
        assert response.status_code == 200
        assert response.json()["password_reset_required"] is True

    def test_reset_unknown_email(self, client, users):
        response = client.post("/api/auth/reset-password", json={"email": "ghost@grandhotel.com"})
        assert response.status_code == 400


class TestRegister:

    def _payload(self, **extra):
        payload = {
            "username": "newguest",
            "email": "newguest@gmail.com",
            "password": "Welcome123",
            "first_name": "Nora",
            "last_name": "Vance",
        }
        payload.update(extra)
        return payload

    def test_register_always_creates_guest(self, client, db):
        response = client.post("/api/auth/register", json=self._payload())
        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "Guest"
        assert data["full_name"] == "Nora Vance"
        assert _login(client, "newguest", "Welcome123").status_code == 200

    def test_duplicate_username(self, client, users):
        response = client.post("/api/auth/register", json=self._payload(username="guest"))
        assert response.status_code == 400
        assert "already taken" in response.json()["detail"]

    def test_duplicate_email(self, client, users):
        response = client.post("/api/auth/register", json=self._payload(email=users[RoleName.GUEST].email))
        assert response.status_code == 400
        assert "already registered" in response.json()["detail"]

    def test_invalid_email(self, client, db):
        assert client.post("/api/auth/register", json=self._payload(email="nope")).status_code == 422


class TestUserAdministration:

    def test_manager_lists_users_and_roles(self, client, headers):
        response = client.get("/api/user", headers=headers[RoleName.MANAGER])
        assert response.status_code == 200
        assert len(response.json()) == len(RoleName) + 1

        roles = client.get("/api/user/roles", headers=headers[RoleName.MANAGER]).json()
        guest_role = next(r for r in roles if r["name"] == "Guest")
        assert guest_role["user_count"] == 2

        guests = client.get("/api/user/roles/Guest", headers=headers[RoleName.MANAGER]).json()
        assert sorted(u["username"] for u in guests) == ["guest", "otherguest"]

    def test_staff_cannot_manage_users(self, client, headers):
        assert client.get("/api/user", headers=headers[RoleName.RECEPTIONIST]).status_code == 403

    def test_manager_creates_staff_but_not_admin(self, client, headers):
        payload = {
            "username": "chef",
            "email": "chef@grandhotel.com",
            "password": "Kitchen123",
            "first_name": "Carlo",
            "last_name": "Rossi",
            "role": "Staff",
        }
        response = client.post("/api/user", json=payload, headers=headers[RoleName.MANAGER])
        assert response.status_code == 201
        assert response.json()["role"] == "Staff"

        payload.update(username="boss", email="boss@grandhotel.com", role="Admin")
        response = client.post("/api/user", json=payload, headers=headers[RoleName.MANAGER])
        assert response.status_code == 400
        assert response.json()["detail"] == "Only an Admin can create Admin users"

        response = client.post("/api/user", json=payload, headers=headers[RoleName.ADMIN])
        assert response.status_code == 201

    def test_unknown_role(self, client, headers):
        payload = {
            "username": "pilot",
            "email": "pilot@grandhotel.com",
            "password": "Flying123",
            "first_name": "Amelia",
            "last_name": "Earhart",
            "role": "Pilot",
        }
        response = client.post("/api/user", json=payload, headers=headers[RoleName.ADMIN])
        assert response.status_code == 404

    def test_update_profile(self, client, headers, users):
        staff = users[RoleName.STAFF]
        response = client.put(
            f"/api/user/{staff.id}", json={"city": "Lisbon", "phone_number": "+351 900"},
            headers=headers[RoleName.MANAGER],
        )
        assert response.status_code == 200
        assert response.json()["city"] == "Lisbon"

    def test_delete_is_soft_and_admin_only(self, client, headers, users):
        staff = users[RoleName.STAFF]
        url = f"/api/user/{staff.id}"
        assert client.delete(url, headers=headers[RoleName.MANAGER]).status_code == 403
        assert client.delete(url, headers=headers[RoleName.ADMIN]).status_code == 204

        response = client.get(url, headers=headers[RoleName.ADMIN])
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        # el token emitido antes de la baja deja de servir
        assert client.get("/api/auth/current", headers=headers[RoleName.STAFF]).status_code == 403

    def test_cannot_delete_or_deactivate_self(self, client, headers, users):
        admin = users[RoleName.ADMIN]
        assert client.delete(f"/api/user/{admin.id}", headers=headers[RoleName.ADMIN]).status_code == 400

        manager = users[RoleName.MANAGER]
        response = client.post(f"/api/user/{manager.id}/deactivate", headers=headers[RoleName.MANAGER])
        assert response.status_code == 400

    def test_admin_changes_role(self, client, db, headers, users):
        staff = users[RoleName.STAFF]
        roles = client.get("/api/user/roles", headers=headers[RoleName.ADMIN]).json()
        housekeeper_role = next(r for r in roles if r["name"] == "Housekeeper")

        url = f"/api/user/{staff.id}/role/{housekeeper_role['id']}"
        assert client.post(url, headers=headers[RoleName.MANAGER]).status_code == 403

        response = client.post(url, headers=headers[RoleName.ADMIN])
        assert response.status_code == 200
        assert response.json()["role"] == "Housekeeper"

    def test_manager_cannot_modify_admin(self, client, headers, users):
        admin = users[RoleName.ADMIN]
        manager = headers[RoleName.MANAGER]

        response = client.put(f"/api/user/{admin.id}", json={"password": "Hijacked123"}, headers=manager)
        assert response.status_code == 403
        assert response.json()["detail"] == "Only an Admin can modify Admin users"
        assert _login(client, "admin", "Hijacked123").status_code == 401

        assert client.post(f"/api/user/{admin.id}/deactivate", headers=manager).status_code == 403
        assert client.post(f"/api/user/{admin.id}/activate", headers=manager).status_code == 403
        assert _login(client, "admin").status_code == 200

    def test_admin_modifies_other_admin(self, client, create_user, headers):
        other, _ = create_user(RoleName.ADMIN, "rootadmin")
        response = client.put(f"/api/user/{other.id}", json={"city": "Oslo"}, headers=headers[RoleName.ADMIN])
        assert response.status_code == 200
        assert response.json()["city"] == "Oslo"

        response = client.post(f"/api/user/{other.id}/deactivate", headers=headers[RoleName.ADMIN])
        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_admin_passes_every_role_check(self, client, headers):
        assert client.get("/api/cleaningtask", headers=headers[RoleName.ADMIN]).status_code == 200
        assert client.get("/api/dashboard/housekeeper", headers=headers[RoleName.ADMIN]).status_code == 200
