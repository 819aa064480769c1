# Overview: Flask API routes for auth and user accounts; parses input and returns JSON responses.

"""
Authentication routes.

Login creates a session and returns its bearer token together with the
user's role; logout revokes that session. There is no server-side notion of
a "current user" outside a request's session context.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import PosError
from ..services import auth_service, session_service
from ..decorators import require_auth, require_role

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not email or not password:
        return jsonify({"success": False, "message": "Email and password are required."}), 400

    try:
        user = auth_service.authenticate(email, password)
        session, token = session_service.create_session(user)
        return jsonify({
            "success": True,
            "token": token,
            "role": session.role,
            "user": user.to_dict(),
            "expires_at": session.to_dict()["expires_at"],
        }), 200
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"success": False, "message": "Error authenticating user"}), 500


@auth_bp.post("/logout")
@require_auth
def logout():
    session_service.revoke_session(g.token)
    return jsonify({"success": True}), 200


@auth_bp.get("/me")
@require_auth
def me():
    return jsonify({
        "success": True,
        "user": g.current_user.to_dict(),
        "role": g.session_context.role,
    }), 200


@users_bp.get("")
@require_auth
@require_role("admin")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"success": True, "users": [u.to_dict() for u in users]}), 200


@users_bp.post("")
@require_auth
@require_role("admin")
def register_user_route():
    data = request.get_json(silent=True) or {}
    missing = [k for k in ("username", "email", "password", "role") if not data.get(k)]
    if missing:
        return jsonify({"success": False, "message": "All fields are required."}), 400

    try:
        user = auth_service.create_user(data["username"], data["email"], data["password"], data["role"])
        return jsonify({
            "success": True,
            "message": "User registered successfully.",
            "userId": user.id,
        }), 201
    except PosError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"success": False, "message": "An error occurred during registration."}), 500
