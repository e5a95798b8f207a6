"""
Models package for the application.
"""

from .durable_entry import DurableEntry

__all__ = [
    "DurableEntry",
]
