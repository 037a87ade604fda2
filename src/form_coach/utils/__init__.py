"""
Utility functions for the Form Coach project.
"""

from .geometry import angle, distance, vertical_deviation
from .io_utils import load_config, save_report

__all__ = [
    'angle',
    'distance',
    'vertical_deviation',
    'load_config',
    'save_report',
]
