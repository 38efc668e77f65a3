"""Logging setup shared by the API process, the worker and scripts."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
