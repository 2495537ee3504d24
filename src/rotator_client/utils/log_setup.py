# src/rotator_client/utils/log_setup.py

import logging
import sys

import colorlog

LOGGER_NAME = "rotator_client"


def setup_logging(debug: bool = False) -> logging.Logger:
    """
    Attaches a coloured console handler to the library logger.

    Calling it again only adjusts the level, so repeated initialisation does
    not duplicate output.

    Args:
        debug: Show DEBUG messages (rotation decisions, service responses)

    Returns:
        The configured library logger
    """
    lib_logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if debug else logging.INFO
    lib_logger.setLevel(level)

    for handler in lib_logger.handlers:
        if getattr(handler, "_rotator_console", False):
            handler.setLevel(level)
            return lib_logger

    console_handler = colorlog.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s[%(name)s] %(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    console_handler._rotator_console = True
    lib_logger.addHandler(console_handler)

    # Silence httpx request lines; the service calls are logged by the library itself
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return lib_logger
