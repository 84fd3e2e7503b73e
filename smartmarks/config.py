import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'smartmarks.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "1") == "1"
    FEED_SUBSCRIPTION_TTL_SECONDS = int(
        os.environ.get("FEED_SUBSCRIPTION_TTL_SECONDS", "86400")
    )
    FEED_PULL_LIMIT = int(os.environ.get("FEED_PULL_LIMIT", "200"))
    FEED_RETENTION_HOURS = int(os.environ.get("FEED_RETENTION_HOURS", "168"))
    FEED_PRUNE_INTERVAL_MINUTES = int(
        os.environ.get("FEED_PRUNE_INTERVAL_MINUTES", "60")
    )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SCHEDULER_ENABLED = False


class ClientConfig:
    BASE_URL = os.environ.get("SMARTMARKS_URL", "http://127.0.0.1:8072")
    REQUEST_TIMEOUT = float(os.environ.get("SMARTMARKS_REQUEST_TIMEOUT", "10"))
    FEED_POLL_INTERVAL = float(os.environ.get("SMARTMARKS_FEED_POLL_INTERVAL", "2"))
    SUCCESS_NOTICE_SECONDS = float(
        os.environ.get("SMARTMARKS_SUCCESS_NOTICE_SECONDS", "2")
    )
