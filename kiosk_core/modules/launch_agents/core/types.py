"""
Типы данных для модуля launch_agents
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class KeepAlivePolicy(Enum):
    """Политика перезапуска процесса launchd"""
    ALWAYS = "always"                    # KeepAlive = true
    SUCCESSFUL_EXIT = "successful_exit"  # KeepAlive = {SuccessfulExit: true}


@dataclass
class LaunchAgentDescriptor:
    """Описание LaunchAgent, сохраняемое как plist"""
    label: str
    program_path: str
    arguments: List[str] = field(default_factory=list)
    keep_alive: Optional[KeepAlivePolicy] = KeepAlivePolicy.SUCCESSFUL_EXIT
    process_type: str = "Interactive"
    run_at_load: bool = True
    environment: Dict[str, str] = field(default_factory=dict)
    working_directory: Optional[str] = None

    def filename(self, suffix: str = ".plist") -> str:
        return f"{self.label}{suffix}"


@dataclass
class LaunchAgentRecord:
    """Файл агента в каталоге LaunchAgents"""
    filename: str
    filepath: str
    label: Optional[str] = None
    size_bytes: Optional[int] = None
    modified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def readable(self) -> bool:
        return self.error is None


@dataclass
class BundleInfo:
    """Метаданные .app бандла"""
    bundle_path: str
    app_name: str
    bundle_identifier: Optional[str] = None
    display_name: Optional[str] = None
    version: str = "Unknown"
    icon_file: Optional[str] = None
    executable_path: Optional[str] = None


class LifecycleStep(Enum):
    """Шаг установки/удаления агента"""
    WRITE = "write"
    LOAD = "load"
    UNLOAD = "unload"
    DELETE = "delete"


@dataclass
class LifecycleResult:
    """Результат операции над агентом.

    partial=True означает, что первый шаг выполнен, а failed_step
    не выполнен (например, файл записан, но launchctl load упал).
    """
    success: bool
    message: str
    filepath: Optional[str] = None
    partial: bool = False
    failed_step: Optional[LifecycleStep] = None
    raw_output: str = ""
    raw_error: str = ""


@dataclass
class LaunchAgentsConfig:
    """Конфигурация модуля launch_agents"""
    agents_dir: str = "~/Library/LaunchAgents"
    suffix: str = ".plist"
    label_suffix: str = "up4evr"
    default_process_type: str = "Interactive"
