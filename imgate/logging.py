import logging
import sys

from imgate.settings import settings

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

SERVICE_NAME = "imgate"

# Storage client libraries log every request and retry at INFO/DEBUG.
CLIENT_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpx", "httpcore")


def configure_logging() -> None:
    """Set up the root logger from ``IMGATE_LOG_LEVEL`` and ``IMGATE_LOG_JSON``.

    Called once by the entry point before uvicorn starts. Storage client
    loggers stay at WARNING unless the gateway itself runs at DEBUG.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)

    if settings.log_json:
        from pythonjsonlogger.json import JsonFormatter

        handler.setFormatter(
            JsonFormatter(
                fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
                static_fields={"service": SERVICE_NAME},
            )
        )
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    client_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)

    # Routes log each request themselves.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
