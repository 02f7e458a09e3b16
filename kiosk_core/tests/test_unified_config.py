"""
Тесты единого загрузчика конфигурации
"""

import os

import pytest
import yaml

from kiosk_core.config import UnifiedConfigLoader, parse_size
from kiosk_core.modules.elevation import ElevationMethod


def write_config(path, data):
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f)
    return path


class TestUnifiedConfigLoader:
    """Тесты для UnifiedConfigLoader"""

    def test_bundled_config(self):
        loader = UnifiedConfigLoader()

        assert loader.get_app_config().name == "Installation Up 4evr"
        assert loader.get_app_config().is_development is False
        assert loader.get_elevation_config().session_minutes == 45
        assert loader.get_elevation_config().default_method == ElevationMethod.NATIVE
        assert loader.get_settings_config().max_concurrency == 4
        assert loader.get_script_config().shebang == "#!/bin/bash"
        assert loader.get_launch_agents_config().suffix == ".plist"
        assert loader.get_execution_config().timeout is None

    def test_missing_file_gives_defaults(self, tmp_path):
        loader = UnifiedConfigLoader(tmp_path / "absent.yaml")

        assert loader.get_elevation_config().warning_minutes == 5
        assert loader.get_launch_agents_config().label_suffix == "up4evr"
        assert loader.get_logging_config().level == "INFO"

    def test_overrides(self, tmp_path):
        path = write_config(tmp_path / "config.yaml", {
            "elevation": {"session_minutes": 10, "default_method": "password"},
            "system_settings": {"max_concurrency": 0, "stop_on_first_failure": True},
            "launch_agents": {"agents_dir": str(tmp_path), "suffix": "plist", "label_suffix": "kiosk"},
            "execution": {"timeout": 30},
            "logging": {"level": "debug", "max_size": "1MB"},
        })
        loader = UnifiedConfigLoader(path)

        elevation = loader.get_elevation_config()
        assert elevation.session_minutes == 10
        assert elevation.default_method == ElevationMethod.PASSWORD
        settings = loader.get_settings_config()
        assert settings.max_concurrency == 1
        assert settings.stop_on_first_failure is True
        agents = loader.get_launch_agents_config()
        assert agents.suffix == ".plist"
        assert agents.label_suffix == "kiosk"
        assert loader.get_execution_config().timeout == 30.0
        logging_config = loader.get_logging_config()
        assert logging_config.level == "DEBUG"
        assert logging_config.max_bytes == 1024 * 1024

    def test_unknown_elevation_method(self, tmp_path):
        path = write_config(tmp_path / "config.yaml", {"elevation": {"default_method": "telepathy"}})

        with pytest.raises(ValueError):
            UnifiedConfigLoader(path).get_elevation_config()

    def test_reloads_modified_file(self, tmp_path):
        path = write_config(tmp_path / "config.yaml", {"app": {"version": "1.0.0"}})
        loader = UnifiedConfigLoader(path)
        assert loader.get_version() == "1.0.0"

        write_config(path, {"app": {"version": "2.0.0"}})
        stat = os.stat(path)
        os.utime(path, (stat.st_atime, stat.st_mtime + 10))

        assert loader.get_version() == "2.0.0"

    def test_parse_size(self):
        assert parse_size("10MB") == 10 * 1024 * 1024
        assert parse_size("512 kb") == 512 * 1024
        assert parse_size(100) == 100
        with pytest.raises(ValueError):
            parse_size("lots")
