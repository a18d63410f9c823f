"""
Configuration for the team board service.

One class per environment. Most settings read an environment variable
and fall back to a local development default.

Two data store backends are supported:

- ``sql``: a local relational database reached through Flask-SQLAlchemy
  (SQLite by default). Used for development and the test-suite.
- ``rest``: the hosted database service reached over its PostgREST
  table API with ``requests``.
"""

from __future__ import annotations

import os
from pathlib import Path

# Repository root; the local databases live under instance/
BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration with default settings."""

    SECRET_KEY: str = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-production")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    DATA_STORE_BACKEND: str = os.environ.get("DATA_STORE_BACKEND", "sql")

    # Default database location for the local backend
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'teamboard.db'}?check_same_thread=False"
    )

    # Hosted database service (used when DATA_STORE_BACKEND=rest)
    SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "http://localhost:54321")
    SUPABASE_KEY: str = os.environ.get("SUPABASE_KEY", "")
    DATA_STORE_TIMEOUT: int = int(os.environ.get("DATA_STORE_TIMEOUT", "10"))

    # Access tokens are issued by the hosted auth service and signed with
    # the project's JWT secret.
    SUPABASE_JWT_SECRET: str = os.environ.get(
        "SUPABASE_JWT_SECRET", "dev-jwt-secret-change-in-production"
    )
    JWT_AUDIENCE: str = os.environ.get("JWT_AUDIENCE", "authenticated")
    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", "30"))

    NOTIFICATION_LOG_SIZE: int = int(os.environ.get("NOTIFICATION_LOG_SIZE", "100"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """Testing environment configuration."""

    DEBUG: bool = True
    TESTING: bool = True

    DATA_STORE_BACKEND: str = "sql"

    # Persistence calls run in worker threads, so the SQLite connection
    # must be shareable across threads.
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'test_teamboard.db'}?check_same_thread=False"
    )

    SQLALCHEMY_ENGINE_OPTIONS: dict = {
        "pool_pre_ping": True,
    }

    SUPABASE_URL: str = "http://datastore.test"
    SUPABASE_KEY: str = "test-anon-key"
    DATA_STORE_TIMEOUT: int = 1
    SUPABASE_JWT_SECRET: str = os.environ.get(
        "TEST_SUPABASE_JWT_SECRET", "test-jwt-secret-with-at-least-32-bytes!"
    )


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG: bool = False
    TESTING: bool = False

    DATA_STORE_BACKEND: str = os.environ.get("DATA_STORE_BACKEND", "rest")


# FLASK_ENV value -> configuration class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Resolve the configuration class for ``env``.

    Falls back to ``FLASK_ENV`` when ``env`` is None, and to the development
    settings for unknown names.
    """
    name = env if env is not None else os.environ.get("FLASK_ENV", "development")
    return config.get(name, config["default"])
