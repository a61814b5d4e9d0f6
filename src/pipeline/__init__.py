"""
Stream pipeline: capture, detection and consumer stages connected by mailboxes.
"""

from .engine import PipelineStats, StreamPipeline
from .rate import RateMeter

__all__ = [
    "PipelineStats",
    "StreamPipeline",
    "RateMeter",
]
