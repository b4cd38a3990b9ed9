"""
core/config.py
Centralized configuration using environment variables.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # App
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", 5000))
    FRONTEND_ORIGIN: str = os.getenv("CLIENT_URL", "http://localhost:5173")
    API_PREFIX: str = "/api/auth"

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'registry.db'}")

    # Auth
    TOKEN_SECRET: str = os.getenv("JWT_SECRET", "change-me-in-production")
    TOKEN_SALT: str = "registry-auth-token"
    TOKEN_MAX_AGE_DAYS: int = int(os.getenv("TOKEN_MAX_AGE_DAYS", 30))
    COOKIE_NAME: str = "token"
    COOKIE_SECURE: bool = _as_bool(os.getenv("COOKIE_SECURE", "true"))
    COOKIE_SAMESITE: str = os.getenv("COOKIE_SAMESITE", "none")

    # Paths
    ASSETS_DIR: Path = Path(os.getenv("ASSETS_DIR", BASE_DIR / "assets"))
    DOH_LOGO_PATH: Path = ASSETS_DIR / "doh-logo.png"
    RESCUE_LOGO_PATH: Path = ASSETS_DIR / "rescue-logo.png"
    PILIPINAS_LOGO_PATH: Path = ASSETS_DIR / "bagong-pilipinas-logo.png"

    # Certificates
    CERT_CODE_PREFIX: str = os.getenv("CERT_CODE_PREFIX", "DOHCHD-1")
    REG_NO_ISSUER: str = os.getenv("REG_NO_ISSUER", "DOHROI")
    DEFAULT_YEAR: str = "2026"
    ID_CARDS_PER_PAGE: int = 8
    SIGNATURE_MIN_LENGTH: int = 1000
    SIGNATURE_WIDTH_PX: int = 400
    SIGNATURE_ASPECT_RATIO: float = 3.0

    # Registry listing
    BATCHES_PER_PAGE: int = int(os.getenv("BATCHES_PER_PAGE", 10))

    # Leaks raw database errors from the update route; for operator debugging only
    EXPOSE_UPDATE_ERRORS: bool = _as_bool(os.getenv("EXPOSE_UPDATE_ERRORS", "false"))

settings = Settings()
