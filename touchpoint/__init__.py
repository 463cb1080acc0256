"""
touchpoint: recurring contact cadence tracker.
"""

__version__ = "1.0.0"
