"""
Logging setup. Importing this module configures the root logger once.
"""
import logging
import sys

from pythonjsonlogger import jsonlogger

from app.services.risk_assessment.config import get_config

PLAIN_FORMAT = "%(asctime)s | %(levelname)s | [%(name)s] %(message)s"
JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s %(lineno)d %(funcName)s"

_configured = False


def setup_logging(level: str = None, json_logs: bool = None) -> logging.Logger:
    """Attach a single stdout handler to the root logger."""
    global _configured
    config = get_config()
    level = level or config.log_level
    json_logs = config.log_json if json_logs is None else json_logs

    root = logging.getLogger()
    root.setLevel(level.upper())

    if _configured:
        return root

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(jsonlogger.JsonFormatter(
            JSON_FORMAT,
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        ))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
    return root


setup_logging()
