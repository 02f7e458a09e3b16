"""
Setting Reconciler - сверка и применение системных настроек

verify не запрашивает права сам: проверка, которой нужен sudo, без активной
сессии возвращает UNVERIFIABLE, чтобы массовая проверка не вызывала
неожиданных системных диалогов. apply запрашивает права при необходимости.
"""

from __future__ import annotations

import asyncio
import logging
import platform
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from kiosk_core.modules.elevation.core.elevation_manager import ElevationManager
from kiosk_core.modules.elevation.core.privileges import requires_elevation
from kiosk_core.modules.execution_gateway.core.gateway import ExecutionGateway
from .catalog import DEFAULT_CATALOG, SettingCatalog
from .types import (
    ApplyErrorKind, ApplyOutcome, Classification, CommandCheck, RestoreCommand,
    SettingDefinition, SettingStatus, SettingsConfig, SipStatus, SystemReport
)

logger = logging.getLogger(__name__)

_PAST_TENSE = {"apply": "applied", "restore": "restored"}


class SettingReconciler:
    """Сверка каталога настроек с текущим состоянием системы"""

    def __init__(
        self,
        gateway: ExecutionGateway,
        elevation: ElevationManager,
        catalog: Optional[SettingCatalog] = None,
        config: Optional[SettingsConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.gateway = gateway
        self.elevation = elevation
        self.catalog = catalog or DEFAULT_CATALOG
        self.config = config or SettingsConfig()
        self._clock = clock

    # =====================================================
    # ПРОВЕРКА
    # =====================================================

    async def verify(self, setting_id: str) -> SettingStatus:
        """Проверить одну настройку"""
        definition = self.catalog.get(setting_id)
        return await self._verify_definition(definition)

    async def verify_all(
        self,
        setting_ids: Optional[Iterable[str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[SettingStatus]:
        """Проверить набор настроек (по умолчанию - весь каталог).

        Проверки идут параллельно с ограничением max_concurrency.
        После cancel_event новые команды не запускаются; уже запущенные
        завершаются, непроверенные настройки в результат не попадают.
        Проверки с правами администратора выполняются строго по одной:
        каждая из них может показать системный диалог.
        """
        definitions = list(self.catalog) if setting_ids is None else self.catalog.resolve(setting_ids)
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))
        elevated_lock = asyncio.Lock()

        async def run_check(definition: SettingDefinition) -> Optional[SettingStatus]:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return None
                return await self._verify_definition(definition)

        async def guarded(definition: SettingDefinition) -> Optional[SettingStatus]:
            check = definition.verification
            if isinstance(check, CommandCheck) and check.elevation_required:
                async with elevated_lock:
                    return await run_check(definition)
            return await run_check(definition)

        results = await asyncio.gather(*(guarded(d) for d in definitions))
        statuses = [status for status in results if status is not None]
        if len(statuses) < len(definitions):
            logger.info(f"⏹️ Проверка отменена: {len(statuses)} из {len(definitions)} настроек проверено")
        return statuses

    async def _verify_definition(self, definition: SettingDefinition) -> SettingStatus:
        check = definition.verification
        if not isinstance(check, CommandCheck):
            return self._status(definition, Classification.UNVERIFIABLE, message=check.reason)

        if check.elevation_required and not self.elevation.has_active_session:
            return self._status(definition, Classification.UNVERIFIABLE, message="Requires administrator access")

        try:
            result = await self.gateway.run(self.elevation.wrap(check.command))
        except Exception as e:
            logger.error(f"❌ Ошибка проверки {definition.id}: {e}")
            return self._status(definition, Classification.ERROR, message=str(e))

        classification = check.classifier(result.exit_code, result.stdout)
        observation = result.stdout.strip() or result.stderr.strip()
        message = {
            Classification.APPLIED: "Applied",
            Classification.NOT_APPLIED: "Needs to be applied",
        }.get(classification, f"Error checking status (exit {result.exit_code})")
        return self._status(definition, classification, observation, message)

    def _status(
        self,
        definition: SettingDefinition,
        classification: Classification,
        observation: str = "",
        message: str = "",
    ) -> SettingStatus:
        return SettingStatus(
            setting_id=definition.id,
            classification=classification,
            raw_observation=observation,
            observed_at=self._clock(),
            message=message,
        )

    # =====================================================
    # ПРИМЕНЕНИЕ И ВОССТАНОВЛЕНИЕ
    # =====================================================

    async def apply(self, setting_id: str) -> ApplyOutcome:
        """Применить одну настройку. Повторная проверка не выполняется."""
        definition = self.catalog.get(setting_id)
        return await self._run_mutation(definition, definition.apply_command, "apply")

    async def restore(self, setting_id: str) -> ApplyOutcome:
        """Вернуть настройку к значению по умолчанию"""
        definition = self.catalog.get(setting_id)
        restoration = definition.restoration
        if not isinstance(restoration, RestoreCommand):
            return ApplyOutcome(
                setting_id=definition.id,
                succeeded=False,
                message=f"{definition.display_name} is not automatically restorable: {restoration.reason}",
                error_kind=ApplyErrorKind.EXECUTION_FAILED,
            )
        return await self._run_mutation(definition, restoration.command, "restore")

    async def apply_many(
        self,
        setting_ids: Iterable[str],
        stop_on_first_failure: Optional[bool] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ApplyOutcome]:
        """Последовательно применить набор настроек"""
        return await self._mutate_many(self.apply, setting_ids, stop_on_first_failure, cancel_event)

    async def restore_many(
        self,
        setting_ids: Iterable[str],
        stop_on_first_failure: Optional[bool] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ApplyOutcome]:
        """Последовательно восстановить набор настроек"""
        return await self._mutate_many(self.restore, setting_ids, stop_on_first_failure, cancel_event)

    async def apply_required(self, cancel_event: Optional[asyncio.Event] = None) -> List[ApplyOutcome]:
        """Применить все обязательные настройки"""
        return await self.apply_many([d.id for d in self.catalog.required()], cancel_event=cancel_event)

    async def _mutate_many(self, operation, setting_ids, stop_on_first_failure, cancel_event) -> List[ApplyOutcome]:
        # Порядок наблюдаем: общие права и взаимное влияние настроек
        definitions = self.catalog.resolve(setting_ids)
        stop = self.config.stop_on_first_failure if stop_on_first_failure is None else stop_on_first_failure

        outcomes: List[ApplyOutcome] = []
        for definition in definitions:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"⏹️ Применение отменено после {len(outcomes)} из {len(definitions)} настроек")
                break
            outcome = await operation(definition.id)
            outcomes.append(outcome)
            if stop and not outcome.succeeded:
                logger.warning(f"⏹️ Остановка на первой ошибке: {definition.id}")
                break
        return outcomes

    async def _run_mutation(self, definition: SettingDefinition, command: str, action: str) -> ApplyOutcome:
        if requires_elevation(command) and not self.elevation.has_active_session:
            elevation = await self.elevation.request_elevation()
            if not elevation.granted:
                return ApplyOutcome(
                    setting_id=definition.id,
                    succeeded=False,
                    message=f"Administrator access declined for {definition.display_name}: {elevation.reason}",
                    error_kind=ApplyErrorKind.ELEVATION_DECLINED,
                )

        logger.info(f"⚙️ {action} {definition.display_name}: {definition.description}")
        try:
            # Запущенная команда доводится до конца даже при отмене задачи
            result = await asyncio.shield(self.gateway.run(self.elevation.wrap(command)))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"❌ Ошибка выполнения {definition.id}: {e}")
            return ApplyOutcome(
                setting_id=definition.id,
                succeeded=False,
                message=f"Failed to {action} {definition.display_name}: {e}",
                raw_error=str(e),
                error_kind=ApplyErrorKind.EXECUTION_FAILED,
            )

        if result.succeeded:
            if result.stderr.strip():
                logger.warning(f"Warning for {definition.display_name}: {result.stderr.strip()}")
            return ApplyOutcome(
                setting_id=definition.id,
                succeeded=True,
                message=f"Successfully {_PAST_TENSE[action]} {definition.display_name}",
                raw_output=result.stdout,
                raw_error=result.stderr,
            )

        logger.error(f"❌ {action} {definition.id} exit={result.exit_code}: {result.stderr.strip()}")
        return ApplyOutcome(
            setting_id=definition.id,
            succeeded=False,
            message=f"Failed to {action} {definition.display_name}: exit code {result.exit_code}",
            raw_output=result.stdout,
            raw_error=result.stderr,
            error_kind=ApplyErrorKind.EXECUTION_FAILED,
        )

    # =====================================================
    # ОТЧЁТЫ
    # =====================================================

    async def system_report(self) -> SystemReport:
        """Сведения о системе плюс проверка всех настроек"""
        version = await self._read_value("sw_vers -productVersion")
        build = await self._read_value("sw_vers -buildVersion")
        computer_name = await self._read_value("scutil --get ComputerName")
        return SystemReport(
            timestamp=self._clock(),
            hostname=platform.node(),
            platform="macOS",
            version=version,
            build=build,
            computer_name=computer_name,
            settings=await self.verify_all(),
        )

    async def check_sip_status(self) -> SipStatus:
        """Состояние SIP: часть настроек требует его отключения"""
        try:
            result = await self.gateway.run("csrutil status")
        except Exception as e:
            return SipStatus(enabled=None, status="unknown", message=f"Unable to check SIP status: {e}")

        if not result.succeeded:
            return SipStatus(enabled=None, status="unknown", message="Unable to check SIP status")

        disabled = "disabled" in result.stdout
        return SipStatus(
            enabled=not disabled,
            status="disabled" if disabled else "enabled",
            message=result.stdout.strip(),
            recommendation=(
                "SIP is disabled - system modifications are allowed" if disabled
                else "SIP is enabled - some system modifications may require disabling SIP"
            ),
        )

    async def _read_value(self, command: str) -> str:
        try:
            result = await self.gateway.run(command)
        except Exception as e:
            logger.debug(f"{command} failed: {e}")
            return "Unknown"
        return result.stdout.strip() if result.succeeded and result.stdout.strip() else "Unknown"
