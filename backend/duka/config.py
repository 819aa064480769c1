# backend/duka/config.py
from __future__ import annotations
import os


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/duka.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///duka.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Tender types accepted at the till (matched case-insensitively)
    PAYMENT_METHODS = _csv(os.environ.get("DUKA_PAYMENT_METHODS", "Cash,Mpesa,Card"))

    # Allowed VAT percentages; empty tuple accepts any rate >= 0
    VAT_RATES = tuple(int(v) for v in _csv(os.environ.get("DUKA_VAT_RATES", "0,8,16")))

    # "verify": recompute total from product data and reject mismatches
    # "trust": store the caller's total as given
    SALE_TOTAL_POLICY = os.environ.get("DUKA_SALE_TOTAL_POLICY", "verify")

    SESSION_ABSOLUTE_HOURS = int(os.environ.get("DUKA_SESSION_ABSOLUTE_HOURS", "24"))
    SESSION_IDLE_HOURS = int(os.environ.get("DUKA_SESSION_IDLE_HOURS", "2"))

    BCRYPT_ROUNDS = int(os.environ.get("DUKA_BCRYPT_ROUNDS", "12"))

    # Inventory status flags products at or below this level
    LOW_STOCK_THRESHOLD = int(os.environ.get("DUKA_LOW_STOCK_THRESHOLD", "5"))

    # Front-end dev servers allowed to call the API
    CORS_ORIGINS = _csv(os.environ.get(
        "DUKA_CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    ))
