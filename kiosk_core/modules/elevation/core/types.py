"""
Типы данных для модуля elevation
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class ElevationMethod(Enum):
    """Способ получения прав администратора"""
    NATIVE = "native"      # Системный диалог macOS
    PASSWORD = "password"  # Пароль администратора через sudo -S


@dataclass(frozen=True)
class ElevationOutcome:
    """Результат запроса прав"""
    granted: bool
    reason: Optional[str] = None
    method: Optional[ElevationMethod] = None


@dataclass
class ElevationSession:
    """Активная сессия администратора"""
    method: ElevationMethod
    created_at: datetime
    expires_at: datetime
    warning_issued: bool = False

    @classmethod
    def start(cls, method: ElevationMethod, minutes: float, now: Optional[datetime] = None) -> 'ElevationSession':
        now = now or datetime.now()
        return cls(method=method, created_at=now, expires_at=now + timedelta(minutes=minutes))

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) < self.expires_at

    def remaining(self, now: Optional[datetime] = None) -> timedelta:
        left = self.expires_at - (now or datetime.now())
        return max(left, timedelta(0))

    def remaining_minutes(self, now: Optional[datetime] = None) -> int:
        seconds = self.remaining(now).total_seconds()
        return int(-(-seconds // 60))

    def extend(self, minutes: float, now: Optional[datetime] = None) -> None:
        """Продлить сессию на minutes от текущего момента"""
        self.expires_at = (now or datetime.now()) + timedelta(minutes=minutes)
        self.warning_issued = False


@dataclass
class ElevationConfig:
    """Конфигурация сессий администратора"""
    session_minutes: float = 45.0
    warning_minutes: float = 5.0
    default_method: ElevationMethod = ElevationMethod.NATIVE
    prompt_name: str = "Installation Up 4evr"


@runtime_checkable
class ElevationBroker(Protocol):
    """Запрашивает права у ОС. Пароль живёт только в рамках одного вызова."""

    async def request_elevation(
        self, method: ElevationMethod, credential: Optional[str] = None
    ) -> ElevationOutcome:
        ...
