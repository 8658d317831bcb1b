import logging

from .config import get_settings

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format=LOG_FORMAT,
)

# Reduce noise from the database driver and the gateway SDK.
logging.getLogger("pymongo").setLevel(logging.WARNING)
logging.getLogger("braintree").setLevel(logging.WARNING)


def get_logger(name: str):
    return logging.getLogger(name)
