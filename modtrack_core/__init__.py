"""
modtrack command line package.
"""

__all__ = [
    "logger",
    "main",
]
