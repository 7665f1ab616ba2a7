# log.py
# Logging setup + helpers for logging model output

import logging
import logging.config

NOISY_LIBS = ["httpx", "httpcore", "openai", "urllib3"]


def setup_logging(level: str = "INFO"):
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "root": {"handlers": ["console"], "level": level},
    }
    logging.config.dictConfig(config)

    for name in NOISY_LIBS:
        # show only WARNING+ from client libraries
        logging.getLogger(name).setLevel(logging.WARNING)


def preview(text: str, limit: int = 200) -> str:
    """Single-line, truncated rendering of model output for log messages."""
    if text is None:
        return ""
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."
