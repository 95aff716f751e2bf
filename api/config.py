"""
Environment-aware configuration.
Values come from the process environment, with .env read first if present.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _csv(value: str) -> list:
    return [item.strip() for item in value.split(",") if item.strip()]


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///magic-stream.db")
    SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

    # jwt configurations; access and refresh tokens are signed with different secrets
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")))
    REFRESH_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("REFRESH_TOKEN_EXPIRE_HOURS", "168")))

    ALLOWED_ROLES = _csv(os.getenv("ALLOWED_ROLES", "admin,user"))
    # users registering with one of these emails get the admin role
    ADMIN_EMAILS = [e.lower() for e in _csv(os.getenv("ADMIN_EMAILS", ""))]


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    # In dev, propagate exceptions so our error handler has full context
    PROPAGATE_EXCEPTIONS = True
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "dev-access-secret-change-me")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me")


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    JWT_ACCESS_SECRET = "test-access-secret"
    JWT_REFRESH_SECRET = "test-refresh-secret"
    JWT_ALGORITHM = "HS256"
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)
    REFRESH_TOKEN_EXPIRES = timedelta(hours=168)
    ALLOWED_ROLES = ["admin", "user"]
    ADMIN_EMAILS = ["admin@example.com"]


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
