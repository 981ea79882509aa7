"""
StreamFlow - Core Module

Configuration and logging shared by the proxy components.
"""

from .config import Config
from .logging_config import setup_logging

__all__ = ["Config", "setup_logging"]
