"""
Генератор apply/restore скриптов по каталогу настроек

Идемпотентность обеспечивается каталогом: каждая команда выставляет
абсолютное значение.
"""

import logging
import shlex
from datetime import datetime
from typing import Callable, Dict, List, Optional

from kiosk_core.errors import ValidationError
from kiosk_core.modules.system_settings.core.catalog import DEFAULT_CATALOG, SettingCatalog
from kiosk_core.modules.system_settings.core.types import SettingCategory, SettingDefinition
from .types import GeneratedScript, ScriptConfig, ScriptMode, ScriptSpec

logger = logging.getLogger(__name__)

CHECK_PREFIX = "#CHECK:"
NOT_RESTORABLE_PREFIX = "# NOT AUTO-RESTORABLE:"


class ScriptGenerator:
    """Строит текст bash-скрипта для выбранных настроек"""

    def __init__(
        self,
        catalog: Optional[SettingCatalog] = None,
        config: Optional[ScriptConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.catalog = catalog or DEFAULT_CATALOG
        self.config = config or ScriptConfig()
        self._clock = clock

    def generate(self, spec: ScriptSpec) -> GeneratedScript:
        """Сгенерировать скрипт.

        Raises:
            ValidationError: пустой выбор, неизвестный id или режим
        """
        mode = self._parse_mode(spec.mode)
        if not spec.selected_setting_ids:
            raise ValidationError("No settings provided")

        # Повторы схлопываются в первое вхождение
        unique_ids = list(dict.fromkeys(spec.selected_setting_ids))
        selected = {d.id for d in self.catalog.resolve(unique_ids)}

        groups: Dict[SettingCategory, List[SettingDefinition]] = {}
        not_restorable: List[SettingDefinition] = []
        for definition in self.catalog:
            if definition.id not in selected:
                continue
            if mode == ScriptMode.RESTORE and not definition.is_restorable:
                not_restorable.append(definition)
                continue
            groups.setdefault(definition.category, []).append(definition)

        generated_at = self._clock()
        emitted = sum(len(items) for items in groups.values())
        lines = self._header(mode, generated_at, emitted)
        for category, definitions in groups.items():
            lines.extend(self._section(category, definitions, mode, spec.include_verification))
        lines.extend(self._footer())
        if not_restorable:
            lines.append("")
            lines.extend(f"{NOT_RESTORABLE_PREFIX} {d.display_name}" for d in not_restorable)

        logger.info(f"📝 Скрипт ({mode.value}) сгенерирован: {emitted} настроек, {len(groups)} категорий")
        return GeneratedScript(
            script_body="\n".join(lines) + "\n",
            settings_count=emitted,
            categories_touched=list(groups),
            generated_at=generated_at,
            mode=mode,
            not_restorable=[d.id for d in not_restorable],
        )

    def generate_all(self, mode=ScriptMode.APPLY, include_verification: Optional[bool] = None) -> GeneratedScript:
        """Скрипт для всего каталога"""
        if include_verification is None:
            include_verification = self.config.include_verification
        return self.generate(ScriptSpec(self.catalog.ids(), mode, include_verification))

    @staticmethod
    def _parse_mode(mode) -> ScriptMode:
        if isinstance(mode, ScriptMode):
            return mode
        try:
            return ScriptMode(str(mode).lower())
        except ValueError:
            raise ValidationError(f"Unknown script mode: {mode}") from None

    def _header(self, mode: ScriptMode, generated_at: datetime, count: int) -> List[str]:
        title = self.config.title
        lines = [
            self.config.shebang,
            f"# {title} - System Configuration Script",
            f"# Generated: {generated_at.isoformat()}",
            f"# Mode: {mode.value}",
            "#",
            "# This script contains macOS system configuration commands.",
            "# Review each command before execution.",
            "# Some commands require administrator privileges.",
            "",
        ]
        if self.config.exit_on_error:
            lines.extend(["set -e", ""])
        lines.extend([
            f"echo {shlex.quote(f'{title} - System Configuration')}",
            f"echo {shlex.quote(f'Settings to {mode.value}: {count}')}",
            'echo "====================================="',
        ])
        return lines

    @staticmethod
    def _section(
        category: SettingCategory,
        definitions: List[SettingDefinition],
        mode: ScriptMode,
        include_verification: bool,
    ) -> List[str]:
        verb = "Applying" if mode == ScriptMode.APPLY else "Restoring"
        lines = [
            "",
            f"# === {category.title} ===",
            f"echo {shlex.quote(f'{verb} {category.title} settings...')}",
        ]
        for definition in definitions:
            command = definition.apply_command if mode == ScriptMode.APPLY else definition.restore_command
            lines.append(f"echo {shlex.quote(f'  → {definition.display_name}')}")
            lines.append(command)
            if include_verification and definition.verify_command:
                lines.append(f"{CHECK_PREFIX} {definition.verify_command}")
        return lines

    @staticmethod
    def _footer() -> List[str]:
        return [
            "",
            'echo "Script execution completed!"',
            'echo "Review the output above for any errors."',
        ]
