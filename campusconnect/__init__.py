"""CampusConnect: a campus services portal over flat JSON files."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings
from .store import Entity, RecordStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the portal API application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Entity",
    "RecordStore",
    "Settings",
    "create_app",
    "load_settings",
]
