"""
Handlers package for the job tracker API.

Each module groups the endpoints of one resource; `routes` maps them onto the
single API entry point.
"""

from . import cards, profile, settings, views

__all__ = ["cards", "profile", "settings", "views"]
