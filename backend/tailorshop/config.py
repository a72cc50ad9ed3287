# backend/tailorshop/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tailorshop.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tailorshop.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Number of measurement snapshots kept per measurement
    MEASUREMENT_VERSION_CAP = int(os.environ.get("MEASUREMENT_VERSION_CAP", "3"))

    # Basis points applied to the discounted subtotal (0 = tax-inclusive prices)
    ORDER_TAX_RATE_BPS = int(os.environ.get("ORDER_TAX_RATE_BPS", "0"))

    # WhatsApp messaging proxy
    WA_PROXY_URL = os.environ.get("WA_PROXY_URL", "http://localhost:4001")
    WA_DISABLED = _env_bool("WA_DISABLED")
    WA_LANGUAGE = os.environ.get("WA_LANGUAGE", "en")
    WA_TIMEOUT_SECONDS = float(os.environ.get("WA_TIMEOUT_SECONDS", "5"))
    WA_DEFAULT_COUNTRY_CODE = os.environ.get("WA_DEFAULT_COUNTRY_CODE", "")
    WA_LOCATION_TEXT = os.environ.get("WA_LOCATION_TEXT", "Required Update")
    WA_FEEDBACK_LINK = os.environ.get("WA_FEEDBACK_LINK", "Required Update")

    # Uploaded material images and invoice logo
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    PUBLIC_UPLOAD_URL = os.environ.get("PUBLIC_UPLOAD_URL", "/uploads")
