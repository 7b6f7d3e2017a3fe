"""
Django LOGGING configuration.

LOG_FORMAT=console gives human readable lines (default while DEBUG),
LOG_FORMAT=kv gives one key=value line per record for log shippers.
LOG_LEVEL overrides the level of the ledger loggers.
"""
import logging
import os


class KeyValueFormatter(logging.Formatter):
    """Render a record as `ts=... level=... logger=... msg="..."`."""

    def format(self, record):
        message = record.getMessage().replace('"', "'")
        parts = [
            f"ts={self.formatTime(record, '%Y-%m-%dT%H:%M:%S')}",
            f"level={record.levelname}",
            f"logger={record.name}",
            f'msg="{message}"',
        ]
        if record.exc_info:
            exc = self.formatException(record.exc_info).replace("\n", " | ")
            parts.append(f'exc="{exc}"')
        return " ".join(parts)


def get_logging_config(debug: bool = False) -> dict:
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "kv")

    formatter = "verbose" if log_format == "console" else "kv"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
            "kv": {
                "()": "ledger_project.logging_config.KeyValueFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": "WARNING",
            },
            "django": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            "django.request": {
                "handlers": ["console"],
                "level": "ERROR" if not debug else log_level,
                "propagate": False,
            },
            # services, tasks and views all log under ledger_core.*
            "ledger_core": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "celery": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }
