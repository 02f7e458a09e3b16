"""
Опрос launchd и сопоставление агентов с файлами дескрипторов
"""

import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from kiosk_core.modules.execution_gateway.core.gateway import ExecutionGateway
from .types import AgentCategory, AgentOverview, ProcessStatus

if TYPE_CHECKING:
    from kiosk_core.modules.launch_agents.core.types import LaunchAgentRecord

logger = logging.getLogger(__name__)

LIST_COMMAND = "launchctl list"

USER_MARKERS = ("installation-", "custom")
SYSTEM_PREFIXES = ("com.apple.", "com.openssh.", "org.cups.", "org.openbsd.", "org.ntp.")
SYSTEM_KEYWORDS = ("apple", "system", "macos")


def _parse_column(value: str) -> Optional[int]:
    if value == "-":
        return None
    return int(value)


def parse_launchctl_list(output: str, label_filter: Optional[str] = None) -> List[ProcessStatus]:
    """Разобрать колонки PID / Status / Label.

    Строки короче трёх колонок и строки с нечисловым PID (заголовок)
    пропускаются.
    """
    statuses: List[ProcessStatus] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 3:
            continue
        try:
            pid = _parse_column(parts[0])
            last_exit_code = _parse_column(parts[1])
        except ValueError:
            continue
        label = parts[2]
        if label_filter and label_filter not in label:
            continue
        statuses.append(ProcessStatus(label=label, pid=pid, last_exit_code=last_exit_code))
    return statuses


def categorize(label: str, tool_suffix: Optional[str] = "up4evr") -> AgentCategory:
    """Группа агента по метке. Порядок проверок важен."""
    lowered = label.lower()
    markers = USER_MARKERS + ((tool_suffix.lower(),) if tool_suffix else ())
    if any(marker in lowered for marker in markers):
        return AgentCategory.USER
    if lowered.startswith(SYSTEM_PREFIXES) or any(k in lowered for k in SYSTEM_KEYWORDS):
        return AgentCategory.SYSTEM
    return AgentCategory.APPLICATION


class StatusCorrelator:
    """Состояние агентов по данным launchctl"""

    def __init__(self, gateway: ExecutionGateway, tool_suffix: Optional[str] = "up4evr"):
        self.gateway = gateway
        self.tool_suffix = tool_suffix

    async def query(self, label_filter: Optional[str] = None) -> List[ProcessStatus]:
        """Список загруженных заданий. Любая ошибка даёт пустой список."""
        try:
            result = await self.gateway.run(LIST_COMMAND)
        except Exception as e:
            logger.warning(f"⚠️ launchctl list недоступен: {e}")
            return []
        if result.exit_code != 0:
            logger.warning(f"⚠️ launchctl list завершился с кодом {result.exit_code}")
            return []
        try:
            return parse_launchctl_list(result.stdout, label_filter)
        except Exception as e:
            logger.error(f"❌ Ошибка разбора launchctl list: {e}")
            return []

    async def status_of(self, label: str) -> Optional[ProcessStatus]:
        """Точное совпадение метки"""
        for status in await self.query(label):
            if status.label == label:
                return status
        return None

    def categorize(self, label: str) -> AgentCategory:
        return categorize(label, self.tool_suffix)

    def correlate(
        self,
        records: Iterable["LaunchAgentRecord"],
        statuses: Sequence[ProcessStatus],
    ) -> List[AgentOverview]:
        """Сопоставить файлы агентов со статусами по метке"""
        by_label: Dict[str, ProcessStatus] = {s.label: s for s in statuses}
        overviews = []
        for record in records:
            label = record.label
            status = by_label.get(label) if label else None
            category = self.categorize(label) if label else AgentCategory.APPLICATION
            overviews.append(AgentOverview(record=record, status=status, category=category))
        return overviews

    async def overview(self, records: Iterable["LaunchAgentRecord"]) -> List[AgentOverview]:
        """correlate() по свежему снимку launchctl list"""
        return self.correlate(records, await self.query())
