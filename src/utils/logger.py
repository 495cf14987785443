"""
Console logging setup used by the actions.
"""

import logging
import sys


def setup_logger(name: str = "seaice", level=logging.INFO):
    """
    Sets up a named logger that writes to the console (stdout).

    Library modules use logging.getLogger(__name__); actions call this once so
    those records actually reach the terminal.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate output if setup is called more than once
    if logger.handlers:
        return logger

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger
