#!/usr/bin/env python

import os
from datetime import timedelta


class Config:
    """
    Base configuration class. Contains default configuration settings + configuration settings applicable to all environments.
    """

    # Default Flask settings
    DEBUG = False
    TESTING = False

    # The API authenticates with bearer tokens, there is no session cookie to protect
    WTF_CSRF_ENABLED = False

    # Flask secret key
    SECRET_KEY = os.getenv("SECRET_KEY")

    # JWT settings
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_REFRESH_SECRET_KEY = os.getenv("JWT_REFRESH_SECRET_KEY")
    JWT_ALGORITHM = "HS256"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)

    # DB login details
    DB_HOST = os.getenv("DB_HOST")
    DB_USER = os.getenv("DB_USER")
    DB_PASS = os.getenv("DB_PASS")
    DB_NAME = os.getenv("DB_NAME")
    DB_PORT = os.getenv("DB_PORT", "5432")

    # DB settings
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 20,
    }

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sync settings
    SYNC_DOWNLOAD_PAGE_SIZE = 100
    SYNC_STATUS_DEFAULT_PAGE_SIZE = 50

    # Default admin created by `flask create-admin`
    DEFAULT_ADMIN_USERNAME = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@supervision.local")
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD")

    # Open `POST /api/register` to anyone, otherwise users are created by admins
    ALLOW_SELF_REGISTRATION = False

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s [%(process)d] [%(levelname)s] in %(module)s: %(message)s",
                "datefmt": "[%Y-%m-%d %H:%M:%S %z]",
                "class": "logging.Formatter",
            },
        },
        "handlers": {
            "stream": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "default",
            },
        },
        "root": {"handlers": ["stream"], "level": "INFO"},
    }

    SENTRY_CONFIG = {"dsn": ""}


class DevelopmentConfig(Config):
    DEBUG = True
    ALLOW_SELF_REGISTRATION = True

    SQLALCHEMY_DATABASE_URI = "postgresql://%s:%s@%s:%s/%s" % (
        Config.DB_USER,
        Config.DB_PASS,
        "host.docker.internal",
        5432,
        Config.DB_NAME,
    )


class UnitTestConfig(Config):
    TESTING = True
    ALLOW_SELF_REGISTRATION = True

    SECRET_KEY = "unit-test-secret"
    JWT_SECRET_KEY = "unit-test-jwt-secret"
    JWT_REFRESH_SECRET_KEY = "unit-test-jwt-refresh-secret"

    # In-memory SQLite, a single connection shared across the test session
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}

    LOGGING_CONFIG = {
        "version": 1,
        "disable_existing_loggers": False,
        "root": {"level": "WARNING"},
    }


class StagingConfig(Config):
    SQLALCHEMY_DATABASE_URI = "postgresql://%s:%s@%s:%s/%s" % (
        Config.DB_USER,
        Config.DB_PASS,
        Config.DB_HOST,
        Config.DB_PORT,
        Config.DB_NAME,
    )

    SENTRY_CONFIG = {
        "dsn": os.getenv("SENTRY_DSN", ""),
        "traces_sample_rate": 1.0,
        "environment": "staging",
    }


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = "postgresql://%s:%s@%s:%s/%s" % (
        Config.DB_USER,
        Config.DB_PASS,
        Config.DB_HOST,
        Config.DB_PORT,
        Config.DB_NAME,
    )

    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=8)

    SENTRY_CONFIG = {
        "dsn": os.getenv("SENTRY_DSN", ""),
        "traces_sample_rate": 1.0,
        "environment": "production",
    }
