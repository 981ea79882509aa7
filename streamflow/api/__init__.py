"""
API module for the StreamFlow proxy.

This module provides the REST API the browser player talks to.
"""

from .server import APIServer, create_app
from .models import HealthResponse

__all__ = ["APIServer", "create_app", "HealthResponse"]
