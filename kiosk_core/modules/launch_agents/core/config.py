"""
Конфигурация для модуля launch_agents
"""

import logging
from pathlib import Path
from typing import Optional

import yaml

from .types import LaunchAgentsConfig

logger = logging.getLogger(__name__)


class LaunchAgentsConfigManager:
    """Менеджер конфигурации LaunchAgents"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None

    def get_config(self) -> LaunchAgentsConfig:
        """Получить конфигурацию"""
        if self.config_path is None or not self.config_path.exists():
            return LaunchAgentsConfig()
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
            return self.parse_config(data)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Ошибка загрузки конфигурации launch_agents: {e}")
            return LaunchAgentsConfig()

    @staticmethod
    def parse_config(data: dict) -> LaunchAgentsConfig:
        """Распарсить секцию launch_agents"""
        section = data.get('launch_agents', {}) or {}
        defaults = LaunchAgentsConfig()
        suffix = section.get('suffix', defaults.suffix)
        if not suffix.startswith('.'):
            suffix = f'.{suffix}'
        return LaunchAgentsConfig(
            agents_dir=section.get('agents_dir', defaults.agents_dir),
            suffix=suffix,
            label_suffix=section.get('label_suffix', defaults.label_suffix),
            default_process_type=section.get('default_process_type', defaults.default_process_type),
        )
