from __future__ import annotations

from datetime import timedelta

from itsdangerous import BadData, URLSafeTimedSerializer

from smartmarks.extensions import db
from smartmarks.models import Bookmark, ChangeEvent, FeedSubscription, utcnow


FEED_ACTION_INSERT = "insert"
FEED_ACTION_DELETE = "delete"

SUBSCRIPTION_HEADER = "X-Feed-Subscription"


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=secret_key, salt="change-feed")


def create_subscription_token(secret_key: str, user_id: int, client_id: str) -> str:
    return _serializer(secret_key).dumps({"user_id": user_id, "client_id": client_id})


def verify_subscription_token(
    secret_key: str,
    token: str,
    max_age: int,
    expected_user_id: int,
) -> dict | None:
    if not token:
        return None
    try:
        payload = _serializer(secret_key).loads(token, max_age=max_age)
    except BadData:
        return None

    if not isinstance(payload, dict) or payload.get("user_id") != expected_user_id:
        return None
    return payload


def ensure_feed_subscription(user_id: int, client_id: str) -> FeedSubscription:
    subscription = FeedSubscription.query.filter_by(
        user_id=user_id, client_id=client_id
    ).first()
    if not subscription:
        subscription = FeedSubscription(user_id=user_id, client_id=client_id)
        db.session.add(subscription)
        db.session.commit()
    return subscription


def latest_cursor(user_id: int) -> int:
    return (
        db.session.query(db.func.max(ChangeEvent.id)).filter_by(user_id=user_id).scalar()
        or 0
    )


def log_insert_event(bookmark: Bookmark) -> None:
    db.session.add(
        ChangeEvent(
            user_id=bookmark.user_id,
            action=FEED_ACTION_INSERT,
            bookmark_id=bookmark.id,
            payload=bookmark.as_dict(),
        )
    )


def log_delete_event(user_id: int, bookmark_id: str) -> None:
    db.session.add(
        ChangeEvent(
            user_id=user_id,
            action=FEED_ACTION_DELETE,
            bookmark_id=bookmark_id,
            payload={"id": bookmark_id},
        )
    )


def pull_events(user_id: int, since: int, limit: int) -> list[ChangeEvent]:
    return (
        ChangeEvent.query.filter_by(user_id=user_id)
        .filter(ChangeEvent.id > since)
        .order_by(ChangeEvent.id.asc())
        .limit(limit)
        .all()
    )


def prune_events(retention_hours: int) -> int:
    cutoff = utcnow() - timedelta(hours=retention_hours)
    removed = ChangeEvent.query.filter(ChangeEvent.created_at < cutoff).delete(
        synchronize_session=False
    )
    db.session.commit()
    return removed
