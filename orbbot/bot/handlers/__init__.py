"""Handlers for ORB bot"""

from . import automation

__all__ = [
    "automation",
]
