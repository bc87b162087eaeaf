import logging
import logging.config
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE = os.getenv("LOG_FILE")


def build_logging_config(level=None, log_file=None):
    """
    Build a dictConfig mapping with a console handler and, when a log file is
    given, an additional file handler.
    """
    level = (level or LOG_LEVEL).upper()
    log_file = log_file if log_file is not None else LOG_FILE
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
        },
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": log_file,
            "formatter": "default",
            "level": level,
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": LOG_FORMAT,
            },
        },
        "handlers": handlers,
        "root": {
            "handlers": list(handlers),
            "level": level,
        },
    }


LOGGING_CONFIG = build_logging_config()


def setup_logging(level=None, log_file=None):
    if level is None and log_file is None:
        logging.config.dictConfig(LOGGING_CONFIG)
    else:
        logging.config.dictConfig(build_logging_config(level, log_file))
