"""
Конфигурация для модуля system_settings
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from .types import SettingsConfig

logger = logging.getLogger(__name__)


class SettingsConfigManager:
    """Менеджер конфигурации сверки настроек"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None

    def get_config(self) -> SettingsConfig:
        """Получить конфигурацию"""
        if self.config_path is None or not self.config_path.exists():
            return self._get_default_config()
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
            return self.parse_config(data)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Ошибка загрузки конфигурации настроек: {e}")
            return self._get_default_config()

    @staticmethod
    def parse_config(data: dict) -> SettingsConfig:
        """Распарсить секцию system_settings"""
        section = data.get('system_settings', {}) or {}
        return SettingsConfig(
            max_concurrency=max(1, int(section.get('max_concurrency', 4))),
            stop_on_first_failure=bool(section.get('stop_on_first_failure', False)),
        )

    @staticmethod
    def _get_default_config() -> SettingsConfig:
        return SettingsConfig()
