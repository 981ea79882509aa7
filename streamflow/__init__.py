"""
StreamFlow

A streaming media proxy that resolves arbitrary video URLs and re-serves them
to browser video players with correct HTTP partial-content semantics.
"""

__version__ = "1.0.0"

from .main import StreamFlowApp

__all__ = ["StreamFlowApp"]
