# backend/pharmapos/config.py
from __future__ import annotations
import os


def _optional_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Hosted Postgres in production (postgresql+psycopg2://...), SQLite locally
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pharmapos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Dashboard: products at or below this quantity are "low stock"
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "5"))
    # None means all-time sales feed the top product
    DASHBOARD_SALES_WINDOW_DAYS = _optional_int("DASHBOARD_SALES_WINDOW_DAYS")

    # Compare-and-swap attempts per sale line before giving up
    SALE_WRITE_ATTEMPTS = int(os.environ.get("SALE_WRITE_ATTEMPTS", "3"))

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
