from flask import jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from smartmarks.auth import auth_bp
from smartmarks.extensions import login_manager
from smartmarks.models import User


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "authentication required"}), 401


def _credentials():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form
    return (payload.get("username") or "").strip(), payload.get("password") or ""


@auth_bp.route("/login", methods=["POST"])
def login():
    if current_user.is_authenticated:
        return jsonify({"user": current_user.as_identity()})

    username, password = _credentials()
    user = User.query.filter_by(username=username).first()
    if user and user.is_active and user.check_password(password):
        login_user(user)
        return jsonify({"user": user.as_identity()})
    return jsonify({"error": "invalid credentials"}), 401


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"user": None})


@auth_bp.route("/session", methods=["GET"])
def session_identity():
    if not current_user.is_authenticated:
        return jsonify({"user": None})
    return jsonify({"user": current_user.as_identity()})
