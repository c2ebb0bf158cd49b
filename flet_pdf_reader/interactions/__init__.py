"""
User interaction handlers - zoom and pinch.
"""

from .zoom import ZoomHandler, pinch_distance

__all__ = ["ZoomHandler", "pinch_distance"]
