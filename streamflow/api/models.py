"""
Data models for the StreamFlow API.

This module defines Pydantic models for service-level API responses.
"""

from typing import Any, Dict, List

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness and capability descriptor"""

    status: str
    message: str
    timestamp: str
    uptime_seconds: float
    endpoints: List[str]
    capabilities: Dict[str, Any]
