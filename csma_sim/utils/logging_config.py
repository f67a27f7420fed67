"""
Logging configuration for the CSMA/CD simulator.
"""

import logging
import os

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name="csma_sim", log_file=None, level=logging.INFO):
    """Setup a logger for a component, optionally mirrored to logs/<log_file>.log"""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(console_handler)

    if log_file:
        os.makedirs('logs', exist_ok=True)
        file_handler = logging.FileHandler(f"logs/{log_file}.log")
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        logger.addHandler(file_handler)

    return logger
