"""
Elevation Module

Сессии прав администратора: одна активная сессия на процесс,
один запрос к брокеру одновременно.
"""

from .core.types import (
    ElevationMethod, ElevationOutcome, ElevationSession, ElevationConfig, ElevationBroker
)
from .core.privileges import requires_elevation, strip_sudo, wrap_for_session
from .core.elevation_manager import ElevationManager
from .macos.elevation_broker import MacOSElevationBroker

__all__ = [
    'ElevationMethod',
    'ElevationOutcome',
    'ElevationSession',
    'ElevationConfig',
    'ElevationBroker',
    'ElevationManager',
    'MacOSElevationBroker',
    'requires_elevation',
    'strip_sudo',
    'wrap_for_session',
]
