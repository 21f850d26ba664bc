"""Application configuration.

Environment variables override all defaults. Spreadsheet credentials can
also be saved at runtime through the session store (see
``medstock.services.session_store``); values saved there win over the ones
configured here.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env for local development
_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


class Settings:
    # Remote row store (Google Sheets values API)
    GOOGLE_SHEETS_API_KEY: str = os.getenv("GOOGLE_SHEETS_API_KEY", "")
    SHEET_ID: str = os.getenv("SHEET_ID", "")
    SHEETS_BASE_URL: str = os.getenv(
        "SHEETS_BASE_URL", "https://sheets.googleapis.com/v4/spreadsheets"
    )
    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))

    # Local key/value session cache
    SESSION_DB_URL: str = os.getenv("SESSION_DB_URL", "sqlite:///./medstock_session.db")

    # Optimistic write retries for stock rows (whole read-modify-write cycle)
    MAX_WRITE_RETRIES: int = int(os.getenv("MAX_WRITE_RETRIES", "3"))

    # Dashboard windows
    EXPIRY_WINDOW_DAYS: int = 60
    EXPIRING_DAYS: int = 30

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
        "http://127.0.0.1:8081",
    ]

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"


settings = Settings()
