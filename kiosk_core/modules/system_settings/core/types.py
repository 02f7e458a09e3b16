"""
Типы данных для модуля system_settings
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Union

from kiosk_core.errors import ElevationDeclinedError, ExecutionFailedError
from kiosk_core.modules.elevation.core.privileges import requires_elevation


class SettingCategory(Enum):
    """Категории системных настроек"""
    POWER = "power"
    UI = "ui"
    PERFORMANCE = "performance"
    NETWORK = "network"
    SECURITY = "security"
    GENERAL = "general"

    @property
    def title(self) -> str:
        return "UI" if self is SettingCategory.UI else self.value.capitalize()


class Classification(Enum):
    """Результат сверки настройки с системой"""
    APPLIED = "applied"
    NOT_APPLIED = "not_applied"
    ERROR = "error"
    UNVERIFIABLE = "unverifiable"


# (exit_code, stdout) -> Classification
Classifier = Callable[[int, str], Classification]


@dataclass(frozen=True)
class CommandCheck:
    """Настройку можно проверить командой"""
    command: str
    classifier: Classifier

    @property
    def elevation_required(self) -> bool:
        return requires_elevation(self.command)


@dataclass(frozen=True)
class NoCheck:
    """Состояние настройки нельзя запросить у системы"""
    reason: str = "No verify command available"


Verification = Union[CommandCheck, NoCheck]


@dataclass(frozen=True)
class RestoreCommand:
    """Команда возврата к значению по умолчанию"""
    command: str


@dataclass(frozen=True)
class NotRestorable:
    """Настройку нельзя вернуть автоматически"""
    reason: str = "Not automatically restorable"


Restoration = Union[RestoreCommand, NotRestorable]


@dataclass(frozen=True)
class SettingDefinition:
    """Описание одной системной настройки"""
    id: str
    display_name: str
    description: str
    category: SettingCategory
    required: bool
    apply_command: str
    verification: Verification = field(default_factory=NoCheck)
    restoration: Restoration = field(default_factory=NotRestorable)

    @property
    def elevation_required(self) -> bool:
        return requires_elevation(self.apply_command)

    @property
    def verify_command(self) -> Optional[str]:
        if isinstance(self.verification, CommandCheck):
            return self.verification.command
        return None

    @property
    def restore_command(self) -> Optional[str]:
        if isinstance(self.restoration, RestoreCommand):
            return self.restoration.command
        return None

    @property
    def is_verifiable(self) -> bool:
        return isinstance(self.verification, CommandCheck)

    @property
    def is_restorable(self) -> bool:
        return isinstance(self.restoration, RestoreCommand)


@dataclass
class SettingStatus:
    """Результат проверки настройки за один проход"""
    setting_id: str
    classification: Classification
    raw_observation: str = ""
    observed_at: datetime = field(default_factory=datetime.now)
    message: str = ""

    @property
    def is_applied(self) -> bool:
        return self.classification == Classification.APPLIED


class ApplyErrorKind(Enum):
    """Вид ошибки применения: от него зависит способ восстановления"""
    EXECUTION_FAILED = "execution_failed"      # показать команду для ручного запуска
    ELEVATION_DECLINED = "elevation_declined"  # повторить авторизацию


@dataclass
class ApplyOutcome:
    """Результат применения (или восстановления) одной настройки"""
    setting_id: str
    succeeded: bool
    message: str
    raw_output: str = ""
    raw_error: str = ""
    error_kind: Optional[ApplyErrorKind] = None

    @property
    def declined(self) -> bool:
        return self.error_kind == ApplyErrorKind.ELEVATION_DECLINED

    def raise_for_error(self) -> None:
        """Бросить исключение, соответствующее виду ошибки"""
        if self.succeeded:
            return
        if self.error_kind == ApplyErrorKind.ELEVATION_DECLINED:
            raise ElevationDeclinedError(self.message)
        raise ExecutionFailedError(self.message, stderr=self.raw_error)


@dataclass
class SettingsConfig:
    """Конфигурация сверки настроек"""
    max_concurrency: int = 4
    stop_on_first_failure: bool = False


@dataclass
class SipStatus:
    """Состояние System Integrity Protection"""
    enabled: Optional[bool]
    status: str
    message: str
    recommendation: Optional[str] = None


@dataclass
class SystemReport:
    """Отчёт о системе и состоянии всех настроек"""
    timestamp: datetime
    hostname: str
    platform: str
    version: str
    build: str
    computer_name: str
    settings: List[SettingStatus] = field(default_factory=list)

    def count(self, classification: Classification) -> int:
        return sum(1 for s in self.settings if s.classification == classification)
