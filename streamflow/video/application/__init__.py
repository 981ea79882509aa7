"""
Video Application Layer.

Contains use cases and application services that orchestrate domain logic
and coordinate between domain and infrastructure layers.
"""

from .proxy_service import RangeAwareProxy, ProxiedStream, UpstreamFetch
from .resolution_service import ResolutionService
from .orchestrator import FallbackOrchestrator, Delivery, DeliveryState

__all__ = [
    "RangeAwareProxy",
    "ProxiedStream",
    "UpstreamFetch",
    "ResolutionService",
    "FallbackOrchestrator",
    "Delivery",
    "DeliveryState",
]
