# rostering/logger.py
import logging
import sys

logger = logging.getLogger("rostering")


def get_logger(name: str) -> logging.Logger:
    """Child logger under the package logger, e.g. ``rostering.solver``."""
    return logger.getChild(name.rsplit(".", 1)[-1])


def configure_logging(level=logging.INFO) -> logging.Logger:
    """Attach a stdout handler to the package logger.

    Library modules only emit records; entry points (the API app and the
    scripts) call this once at startup.
    """
    logger.setLevel(level)

    # Prevent duplicate handlers if called multiple times
    if not logger.handlers:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_formatter = logging.Formatter("[%(levelname)s] %(name)s - %(message)s")
        stream_handler.setFormatter(stream_formatter)
        logger.addHandler(stream_handler)

    return logger
