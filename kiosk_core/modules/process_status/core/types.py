"""
Типы данных для модуля process_status
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from kiosk_core.modules.launch_agents.core.types import LaunchAgentRecord


class AgentCategory(Enum):
    """Группа агента для отображения"""
    USER = "user"
    APPLICATION = "application"
    SYSTEM = "system"


@dataclass(frozen=True)
class ProcessStatus:
    """Строка из `launchctl list`"""
    label: str
    pid: Optional[int] = None
    last_exit_code: Optional[int] = None

    @property
    def is_loaded(self) -> bool:
        # launchctl list показывает только загруженные задания
        return True

    @property
    def is_running(self) -> bool:
        return self.pid is not None

    @property
    def exited_with_error(self) -> bool:
        return not self.is_running and self.last_exit_code not in (None, 0)


@dataclass
class AgentOverview:
    """Файл агента вместе с состоянием в launchd"""
    record: "LaunchAgentRecord"
    status: Optional[ProcessStatus]
    category: AgentCategory
    content: Optional[str] = None

    @property
    def label(self) -> Optional[str]:
        return self.record.label

    @property
    def loaded(self) -> bool:
        return self.status is not None

    @property
    def running(self) -> bool:
        return self.status is not None and self.status.is_running
