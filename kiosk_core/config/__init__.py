"""
Конфигурация kiosk_core
"""

from .unified_config_loader import (
    AppConfig,
    ExecutionConfig,
    LoggingConfig,
    UnifiedConfigLoader,
    parse_size,
    unified_config,
)

__all__ = [
    'AppConfig',
    'ExecutionConfig',
    'LoggingConfig',
    'UnifiedConfigLoader',
    'parse_size',
    'unified_config',
]
