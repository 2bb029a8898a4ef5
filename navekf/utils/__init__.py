"""
Utility functions for the navigation filter.
"""

from .angles import angle_diff, wrap_angle

__all__ = [
    'angle_diff',
    'wrap_angle',
]
