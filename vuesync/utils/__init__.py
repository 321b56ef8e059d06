"""
Utility modules for vuesync.

This package contains small helpers that are used across the clients
and services.
"""

from .atom import Atom

__all__ = ["Atom"]
