"""Logging setup for the gateway process."""

import json
import logging
import sys
from datetime import datetime, timezone


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "line": record.lineno,
        }
        error_id = getattr(record, "error_id", None)
        if error_id:
            log_data["error_id"] = error_id
        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": str(record.exc_info[0].__name__),
                "message": str(record.exc_info[1]),
            }
        return json.dumps(log_data)


def setup_logging(level: str = "INFO", json_output: bool = True) -> logging.Logger:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    if json_output:
        console_handler.setFormatter(JsonFormatter())
    else:
        console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(console_handler)

    return logging.getLogger("fixturecast")
