"""
Launch Agent Manager - создание, загрузка и удаление LaunchAgents

Запись файла и launchctl load (как и unload с удалением) не транзакционны:
при ошибке второго шага файл остаётся, результат помечается partial.
"""

import logging
import os
import re
import shlex
from datetime import datetime
from typing import Dict, List, Optional, Sequence
from xml.sax.saxutils import unescape

from kiosk_core.errors import ValidationError
from kiosk_core.modules.execution_gateway.core.gateway import ExecutionGateway
from kiosk_core.modules.execution_gateway.core.types import CommandResult
from kiosk_core.modules.process_status.core.status_correlator import StatusCorrelator
from kiosk_core.modules.process_status.core.types import AgentOverview
from ..macos.bundle_reader import read_bundle_info
from .plist_codec import encode_descriptor
from .types import (
    KeepAlivePolicy, LaunchAgentDescriptor, LaunchAgentRecord, LaunchAgentsConfig,
    LifecycleResult, LifecycleStep
)

logger = logging.getLogger(__name__)

LABEL_PATTERN = re.compile(r'<key>Label</key>\s*<string>([^<]+)</string>')

# Сообщения launchctl unload, означающие "уже не загружен"
NOT_LOADED_MARKERS = (
    "Could not find specified service",
    "not loaded",
    "No such process",
)
LOAD_FAILED_MARKER = "Load failed"

# &amp; &lt; &gt; saxutils.unescape обрабатывает сам
XML_ENTITIES = {"&quot;": '"', "&apos;": "'"}


class LaunchAgentManager:
    """Менеджер LaunchAgents пользователя"""

    def __init__(
        self,
        gateway: ExecutionGateway,
        config: Optional[LaunchAgentsConfig] = None,
        correlator: Optional[StatusCorrelator] = None,
    ):
        self.gateway = gateway
        self.config = config or LaunchAgentsConfig()
        self.agents_dir = os.path.expanduser(self.config.agents_dir)
        self.correlator = correlator or StatusCorrelator(gateway, self.config.label_suffix)

    # =====================================================
    # ПУТИ
    # =====================================================

    def filename_for(self, label_or_filename: str) -> str:
        if label_or_filename.endswith(self.config.suffix):
            return label_or_filename
        return f"{label_or_filename}{self.config.suffix}"

    def path_for(self, label_or_path: str) -> str:
        """Метка, имя файла или путь -> полный путь к plist"""
        if "/" in label_or_path:
            return os.path.expanduser(label_or_path)
        return os.path.join(self.agents_dir, self.filename_for(label_or_path))

    # =====================================================
    # ФАЙЛЫ
    # =====================================================

    def create_descriptor_file(self, descriptor: LaunchAgentDescriptor) -> str:
        """Записать plist в каталог агентов, вернуть путь.

        Метка используется как имя файла без проверки уникальности,
        существующий файл перезаписывается.
        """
        if not descriptor.label:
            raise ValidationError("Launch agent label is required")
        if "/" in descriptor.label or os.sep in descriptor.label:
            raise ValidationError(f"Launch agent label must not contain path separators: {descriptor.label}")
        if not descriptor.program_path:
            raise ValidationError("Launch agent program path is required")

        os.makedirs(self.agents_dir, exist_ok=True)
        filepath = os.path.join(self.agents_dir, descriptor.filename(self.config.suffix))
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(encode_descriptor(descriptor))
        logger.info(f"📝 LaunchAgent записан: {filepath}")
        return filepath

    def list(self) -> List[LaunchAgentRecord]:
        """Все plist-файлы каталога агентов.

        Метка извлекается регулярным выражением по сырому тексту; если
        не найдена, берётся имя файла. Нечитаемый файл даёт запись с error.
        """
        if not os.path.isdir(self.agents_dir):
            logger.debug(f"Каталог {self.agents_dir} отсутствует")
            return []

        records = []
        for filename in sorted(os.listdir(self.agents_dir)):
            if not filename.endswith(self.config.suffix):
                continue
            records.append(self._read_record(os.path.join(self.agents_dir, filename)))
        return records

    def _read_record(self, filepath: str) -> LaunchAgentRecord:
        filename = os.path.basename(filepath)
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                content = f.read()
            stats = os.stat(filepath)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"⚠️ Не удалось прочитать {filepath}: {e}")
            return LaunchAgentRecord(filename=filename, filepath=filepath, error=str(e))

        return LaunchAgentRecord(
            filename=filename,
            filepath=filepath,
            label=self._extract_label(content, filename),
            size_bytes=stats.st_size,
            modified_at=datetime.fromtimestamp(stats.st_mtime),
            created_at=datetime.fromtimestamp(getattr(stats, "st_birthtime", stats.st_ctime)),
        )

    def _extract_label(self, content: str, filename: str) -> str:
        match = LABEL_PATTERN.search(content)
        if match:
            return unescape(match.group(1), XML_ENTITIES)
        return filename[:-len(self.config.suffix)]

    # =====================================================
    # LAUNCHCTL
    # =====================================================

    async def _launchctl(self, verb: str, filepath: str) -> CommandResult:
        command = f"launchctl {verb} {shlex.quote(filepath)}"
        try:
            return await self.gateway.run(command)
        except Exception as e:
            logger.error(f"❌ launchctl {verb} не выполнен: {e}")
            return CommandResult(exit_code=-1, stderr=str(e))

    async def load(self, label_or_path: str) -> LifecycleResult:
        """launchctl load"""
        filepath = self.path_for(label_or_path)
        result = await self._launchctl("load", filepath)
        output = f"{result.stdout}\n{result.stderr}"
        if result.exit_code != 0 or LOAD_FAILED_MARKER in output:
            error = (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"
            logger.warning(f"⚠️ Не удалось загрузить {filepath}: {error}")
            return LifecycleResult(
                success=False,
                message=f"Failed to load launch agent: {error}",
                filepath=filepath,
                failed_step=LifecycleStep.LOAD,
                raw_output=result.stdout,
                raw_error=result.stderr,
            )
        logger.info(f"✅ LaunchAgent загружен: {filepath}")
        return LifecycleResult(
            success=True,
            message="Launch agent loaded successfully",
            filepath=filepath,
            raw_output=result.stdout,
            raw_error=result.stderr,
        )

    async def unload(self, label_or_path: str) -> LifecycleResult:
        """launchctl unload; "уже не загружен" считается успехом"""
        filepath = self.path_for(label_or_path)
        result = await self._launchctl("unload", filepath)
        output = f"{result.stdout}\n{result.stderr}"
        if result.exit_code == 0 and "Unload failed" not in output:
            logger.info(f"✅ LaunchAgent выгружен: {filepath}")
            message = "Launch agent unloaded successfully"
        elif any(marker in output for marker in NOT_LOADED_MARKERS):
            logger.info(f"ℹ️ LaunchAgent не был загружен: {filepath}")
            message = "Launch agent was not loaded"
        else:
            error = (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"
            logger.warning(f"⚠️ Не удалось выгрузить {filepath}: {error}")
            return LifecycleResult(
                success=False,
                message=f"Failed to unload launch agent: {error}",
                filepath=filepath,
                failed_step=LifecycleStep.UNLOAD,
                raw_output=result.stdout,
                raw_error=result.stderr,
            )
        return LifecycleResult(
            success=True,
            message=message,
            filepath=filepath,
            raw_output=result.stdout,
            raw_error=result.stderr,
        )

    # =====================================================
    # УСТАНОВКА / УДАЛЕНИЕ
    # =====================================================

    async def install(self, descriptor: LaunchAgentDescriptor) -> LifecycleResult:
        """Записать plist и загрузить его. Откат не выполняется."""
        try:
            filepath = self.create_descriptor_file(descriptor)
        except OSError as e:
            logger.error(f"❌ Не удалось записать LaunchAgent {descriptor.label}: {e}")
            return LifecycleResult(
                success=False,
                message=f"Failed to write launch agent: {e}",
                failed_step=LifecycleStep.WRITE,
                raw_error=str(e),
            )

        loaded = await self.load(filepath)
        if not loaded.success:
            return LifecycleResult(
                success=False,
                partial=True,
                message=f"Launch agent created but failed to load: {loaded.message}",
                filepath=filepath,
                failed_step=LifecycleStep.LOAD,
                raw_output=loaded.raw_output,
                raw_error=loaded.raw_error,
            )
        return LifecycleResult(
            success=True,
            message="Launch agent created and loaded successfully",
            filepath=filepath,
            raw_output=loaded.raw_output,
            raw_error=loaded.raw_error,
        )

    async def uninstall(self, label_or_filename: str) -> LifecycleResult:
        """Выгрузить агента и удалить его файл"""
        filepath = self.path_for(label_or_filename)
        if not os.path.exists(filepath):
            return LifecycleResult(
                success=False,
                message=f"Launch agent {os.path.basename(filepath)} not found",
                filepath=filepath,
            )

        unloaded = await self.unload(filepath)
        if not unloaded.success:
            return unloaded

        try:
            os.remove(filepath)
        except OSError as e:
            logger.error(f"❌ Агент выгружен, но файл не удалён: {e}")
            return LifecycleResult(
                success=False,
                partial=True,
                message=f"Launch agent unloaded but failed to delete file: {e}",
                filepath=filepath,
                failed_step=LifecycleStep.DELETE,
                raw_output=unloaded.raw_output,
                raw_error=str(e),
            )

        logger.info(f"🗑️ LaunchAgent удалён: {filepath}")
        return LifecycleResult(
            success=True,
            message="Launch agent deleted successfully",
            filepath=filepath,
            raw_output=unloaded.raw_output,
            raw_error=unloaded.raw_error,
        )

    # =====================================================
    # БАНДЛЫ
    # =====================================================

    def default_label(self, bundle_identifier: Optional[str], app_name: str) -> str:
        base = bundle_identifier or app_name
        return f"{base}.{self.config.label_suffix}" if self.config.label_suffix else base

    def descriptor_from_bundle(
        self,
        bundle_path: str,
        label: Optional[str] = None,
        arguments: Sequence[str] = (),
        keep_alive: Optional[KeepAlivePolicy] = KeepAlivePolicy.SUCCESSFUL_EXIT,
        process_type: Optional[str] = None,
        run_at_load: bool = True,
        environment: Optional[Dict[str, str]] = None,
        working_directory: Optional[str] = None,
    ) -> LaunchAgentDescriptor:
        """Дескриптор для .app бандла.

        Raises:
            ExecutableNotFoundError: в бандле нет исполняемого файла
            MetadataUnreadableError: Info.plist не читается
        """
        info = read_bundle_info(bundle_path)
        return LaunchAgentDescriptor(
            label=label or self.default_label(info.bundle_identifier, info.app_name),
            program_path=info.executable_path,
            arguments=list(arguments),
            keep_alive=keep_alive,
            process_type=process_type or self.config.default_process_type,
            run_at_load=run_at_load,
            environment=dict(environment or {}),
            working_directory=working_directory,
        )

    async def install_from_bundle(self, bundle_path: str, **options) -> LifecycleResult:
        """descriptor_from_bundle + install"""
        descriptor = self.descriptor_from_bundle(bundle_path, **options)
        return await self.install(descriptor)

    async def agent_info(self, label_or_filename: str) -> AgentOverview:
        """Содержимое файла, его атрибуты и состояние в launchd"""
        filepath = self.path_for(label_or_filename)
        if not os.path.exists(filepath):
            raise ValidationError(f"Launch agent {os.path.basename(filepath)} not found")

        record = self._read_record(filepath)
        content = None
        if record.readable:
            with open(filepath, "r", encoding="utf-8") as f:
                content = f.read()

        label = record.label or os.path.basename(filepath)[:-len(self.config.suffix)]
        status = await self.correlator.status_of(label)
        return AgentOverview(
            record=record,
            status=status,
            category=self.correlator.categorize(label),
            content=content,
        )

    async def overview(self) -> List[AgentOverview]:
        """Все агенты каталога с состоянием из launchctl list"""
        return await self.correlator.overview(self.list())
