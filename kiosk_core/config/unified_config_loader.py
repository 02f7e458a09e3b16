"""
Единый загрузчик конфигурации kiosk_core
Читает unified_config.yaml и раздаёт типизированные секции модулям
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from kiosk_core.modules.elevation.core.types import ElevationConfig, ElevationMethod
from kiosk_core.modules.launch_agents.core.config import LaunchAgentsConfigManager
from kiosk_core.modules.launch_agents.core.types import LaunchAgentsConfig
from kiosk_core.modules.script_generator.core.types import ScriptConfig
from kiosk_core.modules.system_settings.core.config import SettingsConfigManager
from kiosk_core.modules.system_settings.core.types import SettingsConfig

_SIZE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([KMG]?B)?\s*$', re.IGNORECASE)
_SIZE_UNITS = {None: 1, 'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}


def parse_size(value: Union[str, int]) -> int:
    """'10MB' -> 10485760"""
    if isinstance(value, int):
        return value
    match = _SIZE_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid size: {value}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.upper() if unit else None])


@dataclass
class AppConfig:
    """Основные настройки приложения"""
    name: str = "Installation Up 4evr"
    version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@dataclass
class ExecutionConfig:
    """Настройки запуска команд"""
    shell: str = "/bin/bash"
    timeout: Optional[float] = None


@dataclass
class LoggingConfig:
    """Настройки логирования"""
    level: str = "INFO"
    dir: str = "~/Library/Logs/InstallationUp4evr"
    file: str = "kiosk_core.log"
    error_file: str = "errors.log"
    max_size: str = "10MB"
    backup_count: int = 5
    format: str = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    loggers: Dict[str, str] = field(default_factory=dict)

    @property
    def log_dir(self) -> Path:
        return Path(os.path.expanduser(self.dir))

    @property
    def max_bytes(self) -> int:
        return parse_size(self.max_size)


class UnifiedConfigLoader:
    """Единый загрузчик конфигурации с автоматической синхронизацией"""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        # По умолчанию - файл рядом с модулем, независимо от рабочего каталога
        if config_file is None:
            self.config_file = Path(__file__).resolve().parent / "unified_config.yaml"
        else:
            self.config_file = Path(config_file)
        self._config_cache: Optional[Dict[str, Any]] = None
        self._last_modified: Optional[float] = None

    def _load_config(self) -> Dict[str, Any]:
        """Загружает конфигурацию с проверкой изменений.

        Отсутствующий файл даёт пустую конфигурацию (все секции по умолчанию).
        """
        if not self.config_file.exists():
            self._config_cache = {}
            self._last_modified = None
            return self._config_cache
        if self._config_cache is None or self._is_config_modified():
            with open(self.config_file, 'r', encoding='utf-8') as f:
                self._config_cache = yaml.safe_load(f) or {}
            self._last_modified = self.config_file.stat().st_mtime
        return self._config_cache

    def _is_config_modified(self) -> bool:
        """Проверяет, был ли файл конфигурации изменен"""
        if not self.config_file.exists():
            return True
        current_mtime = self.config_file.stat().st_mtime
        return self._last_modified is None or current_mtime > self._last_modified

    def reload(self):
        """Принудительно перезагружает конфигурацию"""
        self._config_cache = None
        self._last_modified = None

    def _section(self, name: str) -> Dict[str, Any]:
        return self._load_config().get(name) or {}

    # =====================================================
    # ОСНОВНЫЕ НАСТРОЙКИ ПРИЛОЖЕНИЯ
    # =====================================================

    def get_app_config(self) -> AppConfig:
        data = self._section('app')
        defaults = AppConfig()
        return AppConfig(
            name=data.get('name', defaults.name),
            version=str(data.get('version', defaults.version)),
            debug=bool(data.get('debug', defaults.debug)),
            environment=data.get('environment', defaults.environment),
        )

    def get_version(self) -> str:
        return self.get_app_config().version

    # =====================================================
    # МОДУЛИ
    # =====================================================

    def get_elevation_config(self) -> ElevationConfig:
        """Настройки сессии администратора"""
        data = self._section('elevation')
        defaults = ElevationConfig()
        method = data.get('default_method', defaults.default_method.value)
        try:
            default_method = ElevationMethod(str(method).lower())
        except ValueError:
            raise ValueError(f"Unknown elevation method in config: {method}") from None
        return ElevationConfig(
            session_minutes=float(data.get('session_minutes', defaults.session_minutes)),
            warning_minutes=float(data.get('warning_minutes', defaults.warning_minutes)),
            default_method=default_method,
            prompt_name=data.get('prompt_name', defaults.prompt_name),
        )

    def get_settings_config(self) -> SettingsConfig:
        return SettingsConfigManager.parse_config(self._load_config())

    def get_script_config(self) -> ScriptConfig:
        data = self._section('script_generator')
        defaults = ScriptConfig()
        return ScriptConfig(
            shebang=data.get('shebang', defaults.shebang),
            title=data.get('title', defaults.title),
            include_verification=bool(data.get('include_verification', defaults.include_verification)),
            exit_on_error=bool(data.get('exit_on_error', defaults.exit_on_error)),
        )

    def get_launch_agents_config(self) -> LaunchAgentsConfig:
        return LaunchAgentsConfigManager.parse_config(self._load_config())

    def get_execution_config(self) -> ExecutionConfig:
        data = self._section('execution')
        timeout = data.get('timeout')
        return ExecutionConfig(
            shell=data.get('shell', ExecutionConfig.shell),
            timeout=float(timeout) if timeout else None,
        )

    # =====================================================
    # ЛОГИРОВАНИЕ
    # =====================================================

    def get_logging_config(self) -> LoggingConfig:
        data = self._section('logging')
        defaults = LoggingConfig()
        return LoggingConfig(
            level=str(data.get('level', defaults.level)).upper(),
            dir=data.get('dir', defaults.dir),
            file=data.get('file', defaults.file),
            error_file=data.get('error_file', defaults.error_file),
            max_size=str(data.get('max_size', defaults.max_size)),
            backup_count=int(data.get('backup_count', defaults.backup_count)),
            format=data.get('format', defaults.format),
            loggers=dict(data.get('loggers') or {}),
        )


# Глобальный экземпляр
unified_config = UnifiedConfigLoader()
