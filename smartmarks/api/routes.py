from __future__ import annotations

from flask import current_app, g, jsonify, request

from smartmarks.api import api_bp
from smartmarks.extensions import db
from smartmarks.models import ApiToken, Bookmark, User, utcnow
from smartmarks.services.feed import (
    SUBSCRIPTION_HEADER,
    create_subscription_token,
    ensure_feed_subscription,
    latest_cursor,
    log_delete_event,
    log_insert_event,
    pull_events,
    verify_subscription_token,
)
from smartmarks.services.security import api_auth_required, bearer_token_from_request
from smartmarks.services.validation import (
    normalize_address,
    validate_bookmark_input,
    validate_bookmark_lengths,
)


def _to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _claimed_owner_mismatch(user, claimed) -> bool:
    if claimed is None or claimed == "":
        return False
    try:
        return int(claimed) != user.id
    except (TypeError, ValueError):
        return True


def _verified_subscription(user):
    payload = verify_subscription_token(
        current_app.config["SECRET_KEY"],
        request.headers.get(SUBSCRIPTION_HEADER, ""),
        max_age=current_app.config["FEED_SUBSCRIPTION_TTL_SECONDS"],
        expected_user_id=user.id,
    )
    if not payload:
        return None, (jsonify({"error": "subscription expired"}), 401)
    return payload, None


@api_bp.route("/health")
def health():
    return jsonify({"status": "ok", "service": "SmartMarks"})


@api_bp.route("/auth/bootstrap-admin", methods=["POST"])
def bootstrap_admin_api():
    if User.query.count() > 0:
        return jsonify({"error": "bootstrap already completed"}), 409

    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400

    admin = User(username=username, is_admin=True, is_active=True)
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    return jsonify({"status": "created", "user_id": admin.id}), 201


@api_bp.route("/auth/token", methods=["POST"])
def create_token_with_credentials():
    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    token_name = (payload.get("token_name") or "SmartMarks API Token").strip()

    user = User.query.filter_by(username=username).first()
    if not user or not user.is_active or not user.check_password(password):
        return jsonify({"error": "invalid credentials"}), 401

    token, token_hash = ApiToken.issue_token()
    row = ApiToken(user_id=user.id, name=token_name, token_hash=token_hash)
    db.session.add(row)
    db.session.commit()
    return jsonify({"token": token, "token_name": token_name, "user_id": user.id})


@api_bp.route("/auth/me", methods=["GET"])
@api_auth_required()
def auth_me():
    return jsonify(g.api_user.as_identity())


@api_bp.route("/auth/token/revoke", methods=["POST"])
@api_auth_required(token_only=True)
def revoke_token():
    token = bearer_token_from_request()
    row = ApiToken.query.filter_by(token_hash=ApiToken.hash_token(token)).first()
    row.revoked_at = utcnow()
    db.session.commit()
    return jsonify({"status": "revoked"})


@api_bp.route("/admin/users", methods=["POST"])
@api_auth_required(admin=True)
def admin_create_user():
    payload = request.get_json(silent=True) or {}
    username = (payload.get("username") or "").strip()
    password = payload.get("password") or ""
    is_admin = _to_bool(payload.get("is_admin"), default=False)

    if not username or not password:
        return jsonify({"error": "username and password are required"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({"error": "username already exists"}), 409

    user = User(username=username, is_admin=is_admin, is_active=True)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return jsonify({"status": "created", "user_id": user.id}), 201


@api_bp.route("/admin/users", methods=["GET"])
@api_auth_required(admin=True)
def admin_list_users():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify(
        {
            "items": [
                {
                    "id": user.id,
                    "username": user.username,
                    "is_admin": user.is_admin,
                    "is_active": user.is_active,
                    "created_at": user.created_at.isoformat(),
                }
                for user in users
            ]
        }
    )


@api_bp.route("/bookmarks", methods=["GET"])
@api_auth_required()
def bookmarks_list_api():
    user = g.api_user
    if _claimed_owner_mismatch(user, request.args.get("owner")):
        return jsonify({"error": "owner does not match authenticated user"}), 403

    # Read the cursor first so a feed resumed from it replays anything the
    # snapshot query might miss.
    cursor = latest_cursor(user.id)
    items = (
        Bookmark.query.filter_by(user_id=user.id)
        .order_by(Bookmark.created_at.desc())
        .all()
    )
    return jsonify({"items": [item.as_dict() for item in items], "cursor": cursor})


@api_bp.route("/bookmarks", methods=["POST"])
@api_auth_required()
def bookmarks_create_api():
    user = g.api_user
    payload = request.get_json(silent=True) or {}

    if _claimed_owner_mismatch(user, payload.get("user_id")):
        current_app.logger.warning(
            "Rejected bookmark insert: user %s claimed owner %r",
            user.id,
            payload.get("user_id"),
        )
        return jsonify({"error": "owner does not match authenticated user"}), 403

    title = str(payload.get("title") or "").strip()
    raw_url = str(payload.get("url") or "")
    error = validate_bookmark_input(title, raw_url)
    if error:
        return jsonify({"error": error}), 400

    url = normalize_address(raw_url)
    error = validate_bookmark_lengths(title, url)
    if error:
        return jsonify({"error": error}), 400

    bookmark = Bookmark(user_id=user.id, title=title, url=url, created_at=utcnow())
    db.session.add(bookmark)
    db.session.flush()
    log_insert_event(bookmark)
    db.session.commit()
    return jsonify(bookmark.as_dict()), 201


@api_bp.route("/bookmarks/<bookmark_id>", methods=["DELETE"])
@api_auth_required()
def bookmarks_delete_api(bookmark_id: str):
    user = g.api_user
    # Rows owned by someone else are invisible here, same as missing ones.
    bookmark = Bookmark.query.filter_by(id=bookmark_id, user_id=user.id).first()
    if not bookmark:
        return jsonify({"status": "deleted", "deleted": 0})

    db.session.delete(bookmark)
    log_delete_event(user.id, bookmark_id)
    db.session.commit()
    return jsonify({"status": "deleted", "deleted": 1})


@api_bp.route("/feed/subscribe", methods=["POST"])
@api_auth_required()
def feed_subscribe():
    user = g.api_user
    payload = request.get_json(silent=True) or {}
    client_id = (payload.get("client_id") or "").strip()
    if not client_id:
        return jsonify({"error": "client_id is required"}), 400

    subscription = ensure_feed_subscription(user.id, client_id)
    token = create_subscription_token(
        current_app.config["SECRET_KEY"], user.id, client_id
    )
    return jsonify(
        {
            "status": "subscribed",
            "subscription": token,
            "cursor": latest_cursor(user.id),
            "acknowledged": subscription.last_cursor,
        }
    )


@api_bp.route("/feed/pull", methods=["GET"])
@api_auth_required()
def feed_pull():
    user = g.api_user
    _, error = _verified_subscription(user)
    if error:
        return error

    since = request.args.get("since", default=0, type=int)
    limit = request.args.get(
        "limit", default=current_app.config["FEED_PULL_LIMIT"], type=int
    )
    limit = max(1, min(limit, current_app.config["FEED_PULL_LIMIT"]))
    events = pull_events(user.id, since, limit)
    cursor = events[-1].id if events else since
    return jsonify(
        {
            "events": [event.as_dict() for event in events],
            "cursor": cursor,
            "has_more": len(events) == limit,
        }
    )


@api_bp.route("/feed/ack", methods=["POST"])
@api_auth_required()
def feed_ack():
    user = g.api_user
    payload = request.get_json(silent=True) or {}
    client_id = (payload.get("client_id") or "").strip()
    cursor = payload.get("cursor")
    if not client_id or cursor is None:
        return jsonify({"error": "client_id and cursor are required"}), 400
    try:
        cursor = int(cursor)
    except (TypeError, ValueError):
        return jsonify({"error": "cursor must be an integer"}), 400

    subscription = ensure_feed_subscription(user.id, client_id)
    subscription.last_cursor = max(subscription.last_cursor, cursor)
    db.session.commit()
    return jsonify({"status": "acknowledged", "cursor": subscription.last_cursor})
