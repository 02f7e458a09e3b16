"""
Менеджер сессии администратора

Сессия передаётся явно (как контекст) во все операции, которым нужны права.
Одновременные запросы прав объединяются: первый вызов обращается к брокеру,
остальные ждут и получают тот же результат.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from .types import ElevationBroker, ElevationConfig, ElevationMethod, ElevationOutcome, ElevationSession
from .privileges import wrap_for_session

logger = logging.getLogger(__name__)


class ElevationManager:
    """Хранит единственную активную ElevationSession"""

    def __init__(
        self,
        broker: ElevationBroker,
        config: Optional[ElevationConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.broker = broker
        self.config = config or ElevationConfig()
        self._clock = clock
        self._session: Optional[ElevationSession] = None
        self._inflight: Optional[asyncio.Future] = None

    # =====================================================
    # СОСТОЯНИЕ СЕССИИ
    # =====================================================

    def active_session(self) -> Optional[ElevationSession]:
        """Текущая сессия или None, если её нет или она истекла"""
        session = self._session
        if session is None:
            return None

        now = self._clock()
        if not session.is_active(now):
            logger.info("🔒 Сессия администратора истекла")
            self._session = None
            return None

        warning_at = self.config.warning_minutes * 60
        if not session.warning_issued and session.remaining(now).total_seconds() < warning_at:
            session.warning_issued = True
            logger.warning(f"⚠️ Права администратора истекают через {session.remaining_minutes(now)} мин")

        return session

    @property
    def has_active_session(self) -> bool:
        return self.active_session() is not None

    def revoke(self) -> None:
        """Завершить сессию досрочно"""
        if self._session is not None:
            logger.info("🔒 Сессия администратора отозвана")
        self._session = None

    def extend(self, minutes: Optional[float] = None) -> bool:
        """Продлить активную сессию"""
        session = self.active_session()
        if session is None:
            return False
        session.extend(minutes or self.config.session_minutes, self._clock())
        logger.info(f"🔓 Сессия продлена до {session.expires_at.isoformat()}")
        return True

    def wrap(self, command: str) -> str:
        """Обернуть команду для запуска в рамках активной сессии"""
        session = self.active_session()
        if session is None:
            return command
        return wrap_for_session(command, session.method)

    # =====================================================
    # ЗАПРОС ПРАВ
    # =====================================================

    async def request_elevation(
        self,
        method: Optional[ElevationMethod] = None,
        credential: Optional[str] = None,
    ) -> ElevationOutcome:
        """Получить права администратора.

        Если сессия активна - возвращает её без обращения к брокеру.
        Если запрос уже выполняется - ждёт его и возвращает тот же результат.
        """
        session = self.active_session()
        if session is not None:
            return ElevationOutcome(granted=True, reason="Session already active", method=session.method)

        if self._inflight is not None:
            logger.debug("Запрос прав уже выполняется, ожидаем результат")
            return await asyncio.shield(self._inflight)

        method = method or self.config.default_method
        future = asyncio.get_running_loop().create_future()
        self._inflight = future
        outcome = ElevationOutcome(granted=False, reason="Elevation request interrupted", method=method)
        try:
            logger.info(f"🔐 Запрос прав администратора ({method.value})")
            outcome = await self.broker.request_elevation(method, credential)
            if outcome.granted:
                self._session = ElevationSession.start(method, self.config.session_minutes, self._clock())
                logger.info(f"✅ Права получены, сессия до {self._session.expires_at.isoformat()}")
            else:
                logger.warning(f"❌ В правах отказано: {outcome.reason}")
            return outcome
        except Exception as e:
            logger.error(f"❌ Ошибка запроса прав: {e}")
            outcome = ElevationOutcome(granted=False, reason=f"Elevation failed: {e}", method=method)
            return outcome
        finally:
            self._inflight = None
            if not future.done():
                future.set_result(outcome)
