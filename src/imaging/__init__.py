"""
Image utilities.
"""

from .resize import resize_keeping_aspect_ratio

__all__ = ["resize_keeping_aspect_ratio"]
