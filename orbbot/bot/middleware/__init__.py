"""Middleware for ORB bot"""

from .database import DatabaseMiddleware
from .admin import AdminMiddleware

__all__ = [
    "DatabaseMiddleware",
    "AdminMiddleware",
]
