import sys
import logging

import config

LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%H:%M:%S'


def setup_logging(level=None):
    """
    Configure the root logger once for the CLI and the web server.

    Modules log through logging.getLogger(__name__); calling this more than
    once only adjusts the level.
    """
    level = level or config.LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            stream=sys.stdout,
            level=level,
            format=LOG_FORMAT,
            datefmt=DATE_FORMAT,
        )
    root.setLevel(level)
    return root
