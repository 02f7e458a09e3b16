"""
Process Status Module

Разбор `launchctl list` и сопоставление агентов с их файлами.
"""

from .core.types import AgentCategory, AgentOverview, ProcessStatus
from .core.status_correlator import StatusCorrelator, categorize, parse_launchctl_list

__all__ = [
    'AgentCategory',
    'AgentOverview',
    'ProcessStatus',
    'StatusCorrelator',
    'categorize',
    'parse_launchctl_list',
]
