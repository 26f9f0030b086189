"""
Timeline Package - Event intensity over time
"""
from .aggregator import Intensity, TimelineData, build_timeline, intensity

__all__ = [
    'Intensity',
    'TimelineData',
    'build_timeline',
    'intensity',
]
