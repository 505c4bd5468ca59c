"""Core utilities and configuration for CRM Hub.

This module contains:
- Configuration and settings management
- The Supabase authentication collaborator (see ``crmhub.core.supabase``)
"""
from .config import Settings, get_settings, settings

__all__ = [
    "settings",
    "Settings",
    "get_settings",
]
