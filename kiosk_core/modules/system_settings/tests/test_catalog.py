"""
Тесты каталога настроек
"""

import pytest

from kiosk_core.errors import SettingNotFoundError, ValidationError
from kiosk_core.modules.system_settings import (
    DEFAULT_CATALOG, NoCheck, NotRestorable, SettingCatalog, SettingCategory, SettingDefinition
)


class TestSettingCatalog:

    def test_ids_are_unique_and_ordered(self):
        ids = DEFAULT_CATALOG.ids()
        assert len(ids) == len(set(ids))
        assert ids[0] == "screensaver"

    def test_required_settings(self):
        required = {d.id for d in DEFAULT_CATALOG.required()}
        assert required == {
            "screensaver", "display_sleep", "computer_sleep", "desktop_background", "disable_software_updates"
        }

    def test_categories_in_declaration_order(self):
        assert DEFAULT_CATALOG.categories() == [
            SettingCategory.POWER,
            SettingCategory.UI,
            SettingCategory.PERFORMANCE,
            SettingCategory.NETWORK,
            SettingCategory.SECURITY,
            SettingCategory.GENERAL,
        ]

    def test_elevation_derived_from_apply_command(self):
        assert DEFAULT_CATALOG.get("display_sleep").elevation_required is True
        assert DEFAULT_CATALOG.get("autohide_dock").elevation_required is False

    def test_apply_commands_set_absolute_values(self):
        for definition in DEFAULT_CATALOG:
            assert "toggle" not in definition.apply_command
            assert definition.apply_command.strip()

    def test_desktop_background_has_no_check_and_no_restore(self):
        definition = DEFAULT_CATALOG.get("desktop_background")
        assert isinstance(definition.verification, NoCheck)
        assert isinstance(definition.restoration, NotRestorable)
        assert definition.verify_command is None
        assert definition.restore_command is None

    def test_get_unknown(self):
        with pytest.raises(SettingNotFoundError):
            DEFAULT_CATALOG.get("nope")

    def test_resolve_several_unknown(self):
        with pytest.raises(ValidationError) as exc_info:
            DEFAULT_CATALOG.resolve(["screensaver", "nope", "nada"])
        assert "nope" in str(exc_info.value)

    def test_duplicate_ids_rejected(self):
        definition = SettingDefinition(
            id="x", display_name="X", description="", category=SettingCategory.GENERAL,
            required=False, apply_command="true",
        )
        with pytest.raises(ValueError):
            SettingCatalog([definition, definition])

    def test_ui_title(self):
        assert SettingCategory.UI.title == "UI"
        assert SettingCategory.POWER.title == "Power"
