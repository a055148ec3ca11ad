"""Logging configuration based on environment."""

import logging.config

from campusauth.config.settings import Settings

# Development format: cleaner
DEV_FORMAT = "%(levelname)s:     %(name)s - %(message)s"

# Production format: full details for debugging
PROD_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_log_config(settings: Settings) -> dict:
    """Build a dictConfig for the application loggers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": DEV_FORMAT if settings.is_development else PROD_FORMAT,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "campusauth": {"level": settings.log_level},
            # Quiet noisy third-party loggers
            "psycopg.pool": {"level": "WARNING"},
        },
        "root": {
            "handlers": ["default"],
            "level": "WARNING",
        },
    }


def configure_logging(settings: Settings) -> None:
    """Apply logging configuration at startup."""
    logging.config.dictConfig(get_log_config(settings))
