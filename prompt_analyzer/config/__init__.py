from .ini_config import AppSettings, IniConfig
from .logging_setup import setup_logging

__all__ = [
    "AppSettings",
    "IniConfig",
    "setup_logging",
]
