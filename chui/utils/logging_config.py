import logging
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO", json_logs: bool = False):
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": LOG_FORMAT,
                },
                "json": {  # structured logs for prod
                    "format": '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "default",
                },
            },
            "loggers": {
                # supabase-py's http client is chatty at INFO
                "httpx": {"level": "WARNING"},
            },
            "root": {
                "level": level.upper(),
                "handlers": ["console"],
            },
        }
    )
    logging.getLogger(__name__).debug(f"logging_configured level={level}")
