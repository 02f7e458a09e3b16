"""
Script Generator Module

Генерация bash-скриптов для применения или отката настроек.
Только построение текста, команды не выполняются.
"""

from .core.types import ScriptMode, ScriptSpec, GeneratedScript, ScriptConfig
from .core.script_generator import ScriptGenerator

__all__ = [
    'ScriptMode',
    'ScriptSpec',
    'GeneratedScript',
    'ScriptConfig',
    'ScriptGenerator',
]
