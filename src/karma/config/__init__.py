"""Application configuration"""

import logging
from dotenv import load_dotenv

from karma.logs import DATE_FORMAT, LOG_FORMAT

from .loader import load_raw_config
from .core import Core

load_dotenv()

logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, level=logging.INFO)
logging.getLogger("discord").setLevel(logging.WARNING)
logging.getLogger("watchdog").setLevel(logging.WARNING)

_RAW_CONFIG = load_raw_config()

core = Core(_RAW_CONFIG)


class Config:
    core = core


__all__ = ["core", "Config", "LOG_FORMAT", "DATE_FORMAT"]
