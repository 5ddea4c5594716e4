# backend/hkinv/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/hkinv.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///hkinv.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "leave": deleting/editing a transaction keeps current stock as-is
    # "reverse": deleting/editing a transaction undoes its stock effect
    STOCK_REVERSAL_POLICY = os.environ.get("STOCK_REVERSAL_POLICY", "leave")

    SYNC_INTERVAL_SECONDS = float(os.environ.get("SYNC_INTERVAL_SECONDS", "30"))
    LOW_STOCK_DASHBOARD_LIMIT = int(os.environ.get("LOW_STOCK_DASHBOARD_LIMIT", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "DEBUG"
