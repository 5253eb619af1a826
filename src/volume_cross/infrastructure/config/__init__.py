"""
Infrastructure Configuration - Unified Configuration System
===========================================================
AppSettings is the single source of truth. It is created once at the
composition root and passed down; nothing reads it from a global.
"""

from .settings import AppSettings

__all__ = ['AppSettings']
