# pantryreco/core/logging.py
import logging
import sys
import colorlog

# driver chatter: heartbeats, every command, pool events
QUIET_LOGGERS = ("pymongo", "motor")


def configure_logging(level="INFO"):
    """
    Coloured single-handler setup. `level` is a logging level or its name
    (LOG_LEVEL in the env file); the Mongo driver stays at WARNING unless the
    service itself runs at DEBUG.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for name in ("uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)
