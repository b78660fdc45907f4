import logging
import os
from logging.config import dictConfig

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Outbound HTTP libraries log every request at INFO; keep them quiet unless asked.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging() -> None:
    """Configure catalog service logging from TUTOR_* environment flags."""
    level = os.getenv("TUTOR_LOG_LEVEL", "INFO").upper()
    telemetry_level = os.getenv("TUTOR_TELEMETRY_LOG_LEVEL", level).upper()
    debug_http = os.getenv("TUTOR_DEBUG_HTTP", "0") == "1"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": os.getenv("TUTOR_LOG_FORMAT", DEFAULT_LOG_FORMAT),
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "tutor.telemetry": {"level": telemetry_level},
                **{
                    name: {"level": "DEBUG" if debug_http else "WARNING"}
                    for name in _NOISY_LOGGERS
                },
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )

    if debug_http:
        logging.getLogger("uvicorn.access").setLevel(logging.DEBUG)
