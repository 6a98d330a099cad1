"""Logging configuration.

A single ``dictConfig`` layout serves both the application and uvicorn, so every
line written while handling a request carries that request's id.
"""

import logging.config
from typing import Any

from userhub.config import settings

DEV_FORMAT = "%(levelname)s:     %(name)s - %(message)s"
PROD_FORMAT = "%(asctime)s [%(request_id)s] %(levelname)s %(name)s: %(message)s"

# Third-party loggers that only get through at WARNING and above
QUIET_LOGGERS = ("aiosmtplib", "sqlalchemy.engine")


def build_log_config(for_uvicorn: bool = False) -> dict[str, Any]:
    """Build the ``dictConfig`` mapping for the current environment."""
    dev = settings.is_development
    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {"()": "userhub.api.middleware.RequestContextFilter"},
        },
        "formatters": {
            "app": {"format": DEV_FORMAT if dev else PROD_FORMAT},
        },
        "handlers": {
            "app": {
                "class": "logging.StreamHandler",
                "formatter": "app",
                "filters": ["request_context"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"handlers": ["app"], "level": settings.log_level},
    }

    if for_uvicorn:
        # Access lines are written after the request context is gone
        config["formatters"]["access"] = {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s "%(request_line)s" %(status_code)s'
            if dev
            else '%(asctime)s %(levelprefix)s %(client_addr)s - "%(request_line)s" %(status_code)s',
        }
        config["handlers"]["access"] = {
            "class": "logging.StreamHandler",
            "formatter": "access",
            "stream": "ext://sys.stdout",
        }
        config["loggers"]["uvicorn.access"] = {
            "handlers": ["access"],
            "level": "INFO",
            "propagate": False,
        }
        config["loggers"]["uvicorn.error"] = {
            "handlers": ["app"],
            "level": "INFO",
            "propagate": False,
        }

    return config


def get_uvicorn_log_config() -> dict[str, Any]:
    """Log config to hand to ``uvicorn.run``."""
    return build_log_config(for_uvicorn=True)


def setup_logging() -> None:
    """Configure logging for the application."""
    logging.config.dictConfig(build_log_config())
