import logging
import os

import structlog

# Credential fields that must never reach the log stream
_SECRET_KEYS = frozenset({"password", "PASSWORD", "MQ_PASSWORD", "REDIS_PASSWORD"})


def _mask_secrets(logger, method_name, event_dict):
    for key in _SECRET_KEYS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def setup_logging(service: str = None, log_level: str = None) -> None:
    """
    JSON logs on stdout.

    ``service`` is bound to every event of this process so that front-end and
    worker output can be told apart when both are collected together.
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _mask_secrets,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    if service:
        structlog.contextvars.bind_contextvars(service=service)


def get_logger(name: str):
    return structlog.get_logger(name)
