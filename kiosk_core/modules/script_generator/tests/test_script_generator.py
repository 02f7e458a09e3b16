"""
Тесты для ScriptGenerator
"""

from datetime import datetime

import pytest

from kiosk_core.errors import ValidationError
from kiosk_core.modules.script_generator import ScriptConfig, ScriptGenerator, ScriptMode, ScriptSpec
from kiosk_core.modules.system_settings import DEFAULT_CATALOG, SettingCategory

FIXED_TIME = datetime(2024, 5, 1, 9, 30, 0)


@pytest.fixture
def generator():
    return ScriptGenerator(clock=lambda: FIXED_TIME)


def body_lines(script):
    return script.script_body.splitlines()


class TestApplyScript:
    """Тесты генерации скрипта применения"""

    def test_header(self, generator):
        script = generator.generate(ScriptSpec(["screensaver"]))

        lines = body_lines(script)
        assert lines[0] == "#!/bin/bash"
        assert f"# Generated: {FIXED_TIME.isoformat()}" in lines
        assert "set -e" in lines
        assert script.generated_at == FIXED_TIME
        assert script.mode == ScriptMode.APPLY

    def test_grouped_by_category_in_catalog_order(self, generator):
        # Порядок выбора не влияет на порядок секций
        script = generator.generate(ScriptSpec(["autohide_dock", "disable_gatekeeper", "screensaver"]))

        headers = [line for line in body_lines(script) if line.startswith("# === ")]
        assert headers == ["# === Power ===", "# === UI ===", "# === Security ==="]
        assert script.categories_touched == [SettingCategory.POWER, SettingCategory.UI, SettingCategory.SECURITY]
        assert script.settings_count == 3

    def test_commands_followed_by_check(self, generator):
        script = generator.generate(ScriptSpec(["screensaver"]))

        lines = body_lines(script)
        definition = DEFAULT_CATALOG.get("screensaver")
        index = lines.index(definition.apply_command)
        assert lines[index + 1] == f"#CHECK: {definition.verify_command}"

    def test_without_verification(self, generator):
        script = generator.generate(ScriptSpec(["screensaver", "autohide_dock"], include_verification=False))

        assert "#CHECK:" not in script.script_body

    def test_unverifiable_setting_has_no_check(self, generator):
        script = generator.generate(ScriptSpec(["desktop_background"]))

        assert DEFAULT_CATALOG.get("desktop_background").apply_command in body_lines(script)
        assert "#CHECK:" not in script.script_body

    def test_duplicates_collapse(self, generator):
        script = generator.generate(ScriptSpec(["screensaver", "screensaver"]))

        assert script.settings_count == 1
        assert body_lines(script).count(DEFAULT_CATALOG.get("screensaver").apply_command) == 1

    def test_mode_from_string(self, generator):
        script = generator.generate(ScriptSpec(["screensaver"], mode="RESTORE"))

        assert script.mode == ScriptMode.RESTORE

    def test_config_controls_header(self):
        generator = ScriptGenerator(config=ScriptConfig(shebang="#!/bin/zsh", exit_on_error=False))

        script = generator.generate(ScriptSpec(["screensaver"]))

        assert body_lines(script)[0] == "#!/bin/zsh"
        assert "set -e" not in body_lines(script)


class TestRestoreScript:
    """Тесты генерации скрипта восстановления"""

    def test_restore_commands(self, generator):
        script = generator.generate(ScriptSpec(["screensaver"], mode=ScriptMode.RESTORE))

        lines = body_lines(script)
        assert DEFAULT_CATALOG.get("screensaver").restore_command in lines
        assert DEFAULT_CATALOG.get("screensaver").apply_command not in lines

    def test_not_restorable_listed_in_trailer(self, generator):
        script = generator.generate(ScriptSpec(["desktop_background", "screensaver"], mode=ScriptMode.RESTORE))

        lines = body_lines(script)
        assert lines[-1] == "# NOT AUTO-RESTORABLE: Desktop Background"
        assert DEFAULT_CATALOG.get("desktop_background").apply_command not in lines
        assert script.not_restorable == ["desktop_background"]
        assert script.settings_count == 1
        assert script.categories_touched == [SettingCategory.POWER]

    def test_generate_all_restore(self, generator):
        script = generator.generate_all(ScriptMode.RESTORE)

        restorable = [d for d in DEFAULT_CATALOG if d.is_restorable]
        assert script.settings_count == len(restorable)
        for definition in restorable:
            assert definition.restore_command in script.script_body


class TestValidation:
    """Тесты ошибок валидации"""

    def test_empty_selection(self, generator):
        with pytest.raises(ValidationError):
            generator.generate(ScriptSpec([]))

    def test_unknown_id(self, generator):
        with pytest.raises(ValidationError):
            generator.generate(ScriptSpec(["screensaver", "does_not_exist"]))

    def test_invalid_mode(self, generator):
        with pytest.raises(ValidationError):
            generator.generate(ScriptSpec(["screensaver"], mode="explode"))
