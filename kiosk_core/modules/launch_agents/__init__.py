"""
Launch Agents Module

Создание, загрузка и удаление LaunchAgents для приложений инсталляции.
"""

from .core.types import (
    BundleInfo,
    KeepAlivePolicy,
    LaunchAgentDescriptor,
    LaunchAgentRecord,
    LaunchAgentsConfig,
    LifecycleResult,
    LifecycleStep,
)
from .core.plist_codec import decode_descriptor, encode_descriptor
from .core.config import LaunchAgentsConfigManager
from .core.launch_agent_manager import LaunchAgentManager
from .macos.bundle_reader import read_bundle_info, read_bundle_metadata, resolve_executable

__all__ = [
    'BundleInfo',
    'KeepAlivePolicy',
    'LaunchAgentDescriptor',
    'LaunchAgentRecord',
    'LaunchAgentsConfig',
    'LifecycleResult',
    'LifecycleStep',
    'decode_descriptor',
    'encode_descriptor',
    'LaunchAgentsConfigManager',
    'LaunchAgentManager',
    'read_bundle_info',
    'read_bundle_metadata',
    'resolve_executable',
]
