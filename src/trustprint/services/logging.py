import logging
from typing import Literal

LOG_FORMAT_DEBUG = (
    "[%(levelname)7s]: %(name)s - %(message)s --- %(pathname)s:%(lineno)d"
)
LOG_FORMAT_PROD = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends the ``extra={...}`` fields of a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if not context:
            return message
        pairs = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        return f"{message} [{pairs}]"


def setup_logging(env: Literal["local", "dev", "prod"]) -> None:
    """Setup logging configuration based on the environment."""
    handler = logging.StreamHandler()
    if env in ("local", "dev"):
        handler.setFormatter(ContextFormatter(LOG_FORMAT_DEBUG))
        logging.basicConfig(level=logging.DEBUG, handlers=[handler])
    else:
        handler.setFormatter(ContextFormatter(LOG_FORMAT_PROD))
        logging.basicConfig(level=logging.INFO, handlers=[handler])
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
