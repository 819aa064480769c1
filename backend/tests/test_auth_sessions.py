"""
Accounts and session tests.

Verifies:
- Password strength and unique emails on user creation
- Login issues a session carrying the user's role
- Logout, expiry and idle timeout all invalidate the token
"""

from datetime import timedelta

import pytest

from duka.extensions import db
from duka.errors import AuthenticationError, ConflictError, ValidationError
from duka.models import SessionToken
from duka.services import auth_service, session_service
from duka.services.auth_service import PasswordValidationError
from duka.time_utils import utcnow

PASSWORD = "Password123!"


class TestUsers:

    @pytest.mark.parametrize("password", ["short1!", "password123!", "PASSWORD123!", "Password!!!", "Password123"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.create_user("jane", "jane@duka.local", password)

    def test_password_is_hashed(self):
        user = auth_service.create_user("jane", "Jane@Duka.local", PASSWORD)

        assert user.email == "jane@duka.local"
        assert user.role == "cashier"
        assert user.password_hash != PASSWORD
        assert auth_service.verify_password(PASSWORD, user.password_hash)

    def test_duplicate_email(self, cashier_user):
        with pytest.raises(ConflictError):
            auth_service.create_user("other", cashier_user.email, PASSWORD)

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            auth_service.create_user("boss", "boss@duka.local", PASSWORD, role="owner")

    def test_authenticate(self, cashier_user):
        user = auth_service.authenticate("CASHIER@duka.local", PASSWORD)
        assert user.id == cashier_user.id
        assert user.last_login_at is not None

    @pytest.mark.parametrize("email,password", [
        ("cashier@duka.local", "Wrong123!"),
        ("nobody@duka.local", PASSWORD),
    ])
    def test_bad_credentials(self, cashier_user, email, password):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(email, password)

    def test_inactive_user_cannot_login(self, cashier_user):
        cashier_user.is_active = False
        db.session.commit()

        with pytest.raises(AuthenticationError):
            auth_service.authenticate(cashier_user.email, PASSWORD)


class TestSessions:

    def test_session_carries_role(self, admin_user):
        _, token = session_service.create_session(admin_user)

        context = session_service.validate_session(token)

        assert context is not None
        assert context.user.id == admin_user.id
        assert context.role == "admin"
        assert context.is_admin

    def test_token_stored_hashed(self, cashier_user):
        session, token = session_service.create_session(cashier_user)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_revoked_session_rejected(self, cashier_user):
        _, token = session_service.create_session(cashier_user)

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_expired_session_rejected(self, cashier_user):
        session, token = session_service.create_session(cashier_user)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_idle_session_revoked(self, cashier_user):
        session, token = session_service.create_session(cashier_user)
        session.last_used_at = utcnow() - timedelta(hours=3)
        db.session.commit()

        assert session_service.validate_session(token) is None

        db.session.expire_all()
        stored = db.session.get(SessionToken, session.id)
        assert stored.is_revoked is True
        assert stored.revoked_reason == "Idle timeout"

    def test_deactivated_user_session_rejected(self, cashier_user):
        _, token = session_service.create_session(cashier_user)
        cashier_user.is_active = False
        db.session.commit()

        assert session_service.validate_session(token) is None

    def test_cleanup_removes_old_revoked_sessions(self, cashier_user):
        session, token = session_service.create_session(cashier_user)
        session_service.revoke_session(token)
        session.created_at = utcnow() - timedelta(days=31)
        db.session.commit()

        assert session_service.cleanup_expired_sessions() == 1
        assert db.session.query(SessionToken).count() == 0


class TestAuthApi:

    def test_login_returns_token_and_role(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": admin_user.email, "password": PASSWORD})

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["role"] == "admin"
        assert body["token"]

    def test_login_wrong_password(self, client, admin_user):
        resp = client.post("/api/auth/login", json={"email": admin_user.email, "password": "Nope1234!"})
        assert resp.status_code == 401

    def test_login_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "a@b.co"})
        assert resp.status_code == 400

    def test_me_then_logout(self, client, cashier_headers):
        me = client.get("/api/auth/me", headers=cashier_headers)
        assert me.status_code == 200
        assert me.get_json()["role"] == "cashier"

        assert client.post("/api/auth/logout", headers=cashier_headers).status_code == 200
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401

    def test_admin_registers_user(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "mary", "email": "mary@duka.local", "password": PASSWORD, "role": "cashier"},
            headers=admin_headers,
        )
        assert resp.status_code == 201

        users = client.get("/api/users", headers=admin_headers).get_json()["users"]
        assert sorted(u["username"] for u in users) == ["admin", "mary"]

    def test_register_duplicate_email(self, client, admin_headers, admin_user):
        resp = client.post(
            "/api/users",
            json={"username": "again", "email": admin_user.email, "password": PASSWORD, "role": "admin"},
            headers=admin_headers,
        )
        assert resp.status_code == 409
