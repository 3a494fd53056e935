"""
Custom logging configuration to suppress setup server lifecycle logs
"""

import logging
import logging.config
from typing import Dict, Any

# Emitted by uvicorn every time a setup server starts or stops
LIFECYCLE_MESSAGES = (
    "Started server process",
    "Waiting for application startup",
    "Application startup complete",
    "Uvicorn running on",
    "Shutting down",
    "Waiting for application shutdown",
    "Application shutdown complete",
    "Finished server process",
    "Waiting for connections to close",
)


class SetupServerNoiseFilter(logging.Filter):
    """Filter to suppress uvicorn lifecycle logs from short-lived setup servers."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out startup/shutdown chatter from uvicorn error logs."""
        if record.name == "uvicorn.error":
            message = record.getMessage()
            if message.startswith(LIFECYCLE_MESSAGES):
                return False
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with setup server noise suppression."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "setup_server_filter": {
                "()": SetupServerNoiseFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {
                "format": "%(asctime)s - setup - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
                "filters": ["setup_server_filter"]
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            "uvicorn.error": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            "uvicorn.access": {
                "handlers": ["access"],
                "level": "INFO",
                "propagate": False
            },
            "interceptly": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "INFO",
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration to the running process."""
    logging.config.dictConfig(get_logging_config(level))
