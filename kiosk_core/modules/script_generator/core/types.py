"""
Типы данных для модуля script_generator
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Union

from kiosk_core.modules.system_settings.core.types import SettingCategory


class ScriptMode(Enum):
    """Режим генерации"""
    APPLY = "apply"
    RESTORE = "restore"


@dataclass
class ScriptSpec:
    """Запрос на генерацию скрипта"""
    selected_setting_ids: List[str]
    mode: Union[ScriptMode, str] = ScriptMode.APPLY
    include_verification: bool = True


@dataclass
class GeneratedScript:
    """Сгенерированный скрипт"""
    script_body: str
    settings_count: int
    categories_touched: List[SettingCategory]
    generated_at: datetime
    mode: ScriptMode
    not_restorable: List[str] = field(default_factory=list)


@dataclass
class ScriptConfig:
    """Конфигурация генератора"""
    shebang: str = "#!/bin/bash"
    title: str = "Installation Up 4evr"
    include_verification: bool = True
    exit_on_error: bool = True
