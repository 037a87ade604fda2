"""
Form Coach: pose-based strength-training form analysis.
"""

__version__ = "1.0.0"
