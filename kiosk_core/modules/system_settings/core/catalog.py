"""
Каталог системных настроек macOS для инсталляций

Каждая apply-команда устанавливает абсолютное значение (никаких
переключателей), поэтому повторное применение безопасно.
"""

from collections import OrderedDict
from typing import Dict, Iterable, Iterator, List

from kiosk_core.errors import SettingNotFoundError, ValidationError
from . import classifiers
from .types import (
    CommandCheck, NoCheck, NotRestorable, RestoreCommand, SettingCategory, SettingDefinition
)

_CRASH_REPORTER = '"/System/Library/CoreServices/Problem Reporter.app"'
_AIRPORT_PREFS = "/Library/Preferences/SystemConfiguration/com.apple.airport"
_BLUETOOTH_PREFS = "/Library/Preferences/com.apple.Bluetooth"
_BLACK_BACKGROUND = "/System/Library/Desktop Pictures/Solid Colors/Black.png"


class SettingCatalog:
    """Статическая таблица настроек, порядок объявления сохраняется"""

    def __init__(self, definitions: Iterable[SettingDefinition]):
        self._definitions: Dict[str, SettingDefinition] = OrderedDict()
        for definition in definitions:
            if definition.id in self._definitions:
                raise ValueError(f"Duplicate setting id: {definition.id}")
            self._definitions[definition.id] = definition

    def __contains__(self, setting_id: str) -> bool:
        return setting_id in self._definitions

    def __iter__(self) -> Iterator[SettingDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def ids(self) -> List[str]:
        return list(self._definitions)

    def get(self, setting_id: str) -> SettingDefinition:
        try:
            return self._definitions[setting_id]
        except KeyError:
            raise SettingNotFoundError(setting_id) from None

    def resolve(self, setting_ids: Iterable[str]) -> List[SettingDefinition]:
        """Разрешить список id; неизвестный id - ошибка валидации"""
        ids = list(setting_ids)
        unknown = [sid for sid in ids if sid not in self._definitions]
        if unknown:
            if len(unknown) == 1:
                raise SettingNotFoundError(unknown[0])
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}")
        return [self._definitions[sid] for sid in ids]

    def required(self) -> List[SettingDefinition]:
        return [d for d in self if d.required]

    def by_category(self, category: SettingCategory) -> List[SettingDefinition]:
        return [d for d in self if d.category == category]

    def categories(self) -> List[SettingCategory]:
        """Категории в порядке первого появления в каталоге"""
        seen: List[SettingCategory] = []
        for definition in self:
            if definition.category not in seen:
                seen.append(definition.category)
        return seen


_DEFINITIONS = [
    # =====================================================
    # ПИТАНИЕ
    # =====================================================
    SettingDefinition(
        id="screensaver",
        display_name="Screensaver",
        description="Set screensaver to Never",
        category=SettingCategory.POWER,
        required=True,
        apply_command="defaults -currentHost write com.apple.screensaver idleTime 0",
        verification=CommandCheck(
            'defaults -currentHost read com.apple.screensaver idleTime 2>/dev/null || echo "1200"',
            classifiers.integer(0),
        ),
        restoration=RestoreCommand("defaults -currentHost write com.apple.screensaver idleTime 600"),
    ),
    SettingDefinition(
        id="display_sleep",
        display_name="Display Sleep",
        description="Set display sleep to Never",
        category=SettingCategory.POWER,
        required=True,
        apply_command="sudo pmset -c displaysleep 0",
        verification=CommandCheck("pmset -g", classifiers.pmset_value("displaysleep", "0")),
        restoration=RestoreCommand("sudo pmset -c displaysleep 10"),
    ),
    SettingDefinition(
        id="computer_sleep",
        display_name="Computer Sleep",
        description="Set computer sleep to Never",
        category=SettingCategory.POWER,
        required=True,
        apply_command="sudo pmset -c sleep 0",
        verification=CommandCheck("pmset -g", classifiers.pmset_value("sleep", "0")),
        restoration=RestoreCommand("sudo pmset -c sleep 30"),
    ),
    SettingDefinition(
        id="restart_on_freeze",
        display_name="Auto Restart on Freeze",
        description="Restart automatically if system freezes",
        category=SettingCategory.POWER,
        required=False,
        apply_command="sudo systemsetup -setrestartfreeze on",
        verification=CommandCheck(
            "sudo systemsetup -getrestartfreeze",
            classifiers.contains(": On", ": Off"),
        ),
        restoration=RestoreCommand("sudo systemsetup -setrestartfreeze off"),
    ),
    SettingDefinition(
        id="power_failure_restart",
        display_name="Restart after Power Failure",
        description="Restart automatically after power failure",
        category=SettingCategory.POWER,
        required=False,
        apply_command="sudo pmset -c autorestart 1",
        verification=CommandCheck("pmset -g", classifiers.pmset_value("autorestart", "1")),
        restoration=RestoreCommand("sudo pmset -c autorestart 0"),
    ),
    # =====================================================
    # ИНТЕРФЕЙС
    # =====================================================
    SettingDefinition(
        id="desktop_background",
        display_name="Desktop Background",
        description="Set desktop background to solid black",
        category=SettingCategory.UI,
        required=True,
        apply_command=(
            'osascript -e "tell application \\"System Events\\" to tell every desktop '
            f'to set picture to \\"{_BLACK_BACKGROUND}\\""'
        ),
        verification=NoCheck("Desktop picture cannot be queried reliably"),
        restoration=NotRestorable("Previous desktop picture is not recorded"),
    ),
    SettingDefinition(
        id="do_not_disturb",
        display_name="Enable Do Not Disturb",
        description="Prevent notifications from appearing over applications",
        category=SettingCategory.UI,
        required=False,
        apply_command="defaults -currentHost write com.apple.notificationcenterui doNotDisturb -boolean true",
        verification=CommandCheck(
            'defaults -currentHost read com.apple.notificationcenterui doNotDisturb 2>/dev/null || echo "0"',
            classifiers.boolean(True),
        ),
        restoration=RestoreCommand(
            "defaults -currentHost write com.apple.notificationcenterui doNotDisturb -boolean false"
        ),
    ),
    SettingDefinition(
        id="hide_menu_bar",
        display_name="Hide Menu Bar",
        description="Auto-hide menu bar in full screen",
        category=SettingCategory.UI,
        required=False,
        apply_command="defaults write NSGlobalDomain _HIHideMenuBar -bool true",
        verification=CommandCheck(
            'defaults read NSGlobalDomain _HIHideMenuBar 2>/dev/null || echo "0"',
            classifiers.boolean(True),
        ),
        restoration=RestoreCommand("defaults write NSGlobalDomain _HIHideMenuBar -bool false"),
    ),
    SettingDefinition(
        id="hide_desktop_icons",
        display_name="Hide Desktop Icons",
        description="Hide desktop icons for cleaner installation appearance",
        category=SettingCategory.UI,
        required=False,
        apply_command="defaults write com.apple.finder CreateDesktop -bool false && killall Finder",
        verification=CommandCheck(
            'defaults read com.apple.finder CreateDesktop 2>/dev/null || echo "1"',
            classifiers.boolean(False),
        ),
        restoration=RestoreCommand("defaults write com.apple.finder CreateDesktop -bool true && killall Finder"),
    ),
    SettingDefinition(
        id="autohide_dock",
        display_name="Auto-hide Dock",
        description="Automatically show and hide Dock",
        category=SettingCategory.UI,
        required=False,
        apply_command="defaults write com.apple.dock autohide -bool true && killall Dock",
        verification=CommandCheck(
            'defaults read com.apple.dock autohide 2>/dev/null || echo "0"',
            classifiers.boolean(True),
        ),
        restoration=RestoreCommand("defaults write com.apple.dock autohide -bool false && killall Dock"),
    ),
    SettingDefinition(
        id="disable_stage_manager",
        display_name="Disable Stage Manager",
        description="Disable Stage Manager to prevent windowing interference",
        category=SettingCategory.UI,
        required=False,
        apply_command="defaults write com.apple.WindowManager GloballyEnabled -bool false && killall Dock",
        verification=CommandCheck(
            'defaults read com.apple.WindowManager GloballyEnabled 2>/dev/null || echo "0"',
            classifiers.boolean(False),
        ),
        restoration=RestoreCommand(
            "defaults write com.apple.WindowManager GloballyEnabled -bool true && killall Dock"
        ),
    ),
    # =====================================================
    # ПРОИЗВОДИТЕЛЬНОСТЬ
    # =====================================================
    SettingDefinition(
        id="disable_app_nap",
        display_name="Disable App Nap",
        description="Prevent macOS from putting apps to sleep",
        category=SettingCategory.PERFORMANCE,
        required=False,
        apply_command="defaults write NSGlobalDomain NSAppSleepDisabled -bool YES",
        verification=CommandCheck(
            'defaults read NSGlobalDomain NSAppSleepDisabled 2>/dev/null || echo "0"',
            classifiers.boolean(True),
        ),
        restoration=RestoreCommand("defaults write NSGlobalDomain NSAppSleepDisabled -bool NO"),
    ),
    SettingDefinition(
        id="disable_spotlight",
        display_name="Disable Spotlight",
        description="Disable Spotlight indexing",
        category=SettingCategory.PERFORMANCE,
        required=False,
        apply_command="sudo mdutil -a -i off",
        verification=CommandCheck("mdutil -s /", classifiers.contains("Indexing disabled", "Indexing enabled")),
        restoration=RestoreCommand("sudo mdutil -a -i on"),
    ),
    # =====================================================
    # СЕТЬ
    # =====================================================
    SettingDefinition(
        id="disable_network_prompts",
        display_name="Disable WiFi Network Prompts",
        description="Prevent 'Ask to join new networks' prompts",
        category=SettingCategory.NETWORK,
        required=False,
        apply_command=f'sudo defaults write {_AIRPORT_PREFS} JoinMode -string "Automatic"',
        verification=CommandCheck(
            f'defaults read {_AIRPORT_PREFS} JoinMode 2>/dev/null || echo "Prompt"',
            classifiers.exact("Automatic"),
        ),
        restoration=RestoreCommand(f'sudo defaults write {_AIRPORT_PREFS} JoinMode -string "Prompt"'),
    ),
    SettingDefinition(
        id="file_sharing",
        display_name="File Sharing",
        description="Enable file sharing for remote access",
        category=SettingCategory.NETWORK,
        required=False,
        apply_command="sudo launchctl load -w /System/Library/LaunchDaemons/com.apple.smbd.plist",
        verification=CommandCheck(
            "sudo launchctl list | grep -c com.apple.smbd || true",
            classifiers.positive_count(),
        ),
        restoration=RestoreCommand("sudo launchctl unload -w /System/Library/LaunchDaemons/com.apple.smbd.plist"),
    ),
    SettingDefinition(
        id="screen_sharing",
        display_name="Screen Sharing",
        description="Enable screen sharing for remote access",
        category=SettingCategory.NETWORK,
        required=False,
        apply_command="sudo launchctl load -w /System/Library/LaunchDaemons/com.apple.screensharing.plist",
        verification=CommandCheck(
            "sudo launchctl list | grep -c com.apple.screensharing || true",
            classifiers.positive_count(),
        ),
        restoration=RestoreCommand(
            "sudo launchctl unload -w /System/Library/LaunchDaemons/com.apple.screensharing.plist"
        ),
    ),
    # =====================================================
    # БЕЗОПАСНОСТЬ
    # =====================================================
    SettingDefinition(
        id="disable_gatekeeper",
        display_name="Disable Gatekeeper",
        description="SECURITY RISK: Allow apps from unidentified developers",
        category=SettingCategory.SECURITY,
        required=False,
        apply_command="sudo spctl --master-disable",
        verification=CommandCheck(
            "spctl --status",
            classifiers.contains("assessments disabled", "assessments enabled"),
        ),
        restoration=RestoreCommand("sudo spctl --master-enable"),
    ),
    SettingDefinition(
        id="disable_crash_reporter",
        display_name="Disable Application Crash Reporter",
        description="DANGER: Prevent 'Application Unexpectedly Quit' dialogs (requires SIP disabled)",
        category=SettingCategory.SECURITY,
        required=False,
        apply_command=f"sudo chmod 000 {_CRASH_REPORTER}",
        verification=CommandCheck(
            f"ls -ld {_CRASH_REPORTER} | awk '{{print $1}}'",
            classifiers.prefix("d---------", "d"),
        ),
        restoration=RestoreCommand(f"sudo chmod 755 {_CRASH_REPORTER}"),
    ),
    # =====================================================
    # ОБЩИЕ
    # =====================================================
    SettingDefinition(
        id="disable_software_updates",
        display_name="Software Updates",
        description="Disable automatic software updates",
        category=SettingCategory.GENERAL,
        required=True,
        apply_command="sudo softwareupdate --schedule off",
        verification=CommandCheck(
            "sudo softwareupdate --schedule",
            classifiers.contains("is off", "is on"),
        ),
        restoration=RestoreCommand("sudo softwareupdate --schedule on"),
    ),
    SettingDefinition(
        id="disable_bluetooth_setup",
        display_name="Disable Bluetooth Setup Assistant",
        description="Prevent Bluetooth Setup Assistant from appearing when no keyboard or mouse is found",
        category=SettingCategory.GENERAL,
        required=False,
        apply_command=(
            f"sudo defaults write {_BLUETOOTH_PREFS} BluetoothAutoSeekPointingDevice -bool false && "
            f"sudo defaults write {_BLUETOOTH_PREFS} BluetoothAutoSeekKeyboard -bool false"
        ),
        verification=CommandCheck(
            f'defaults read {_BLUETOOTH_PREFS} BluetoothAutoSeekPointingDevice 2>/dev/null || echo "1"',
            classifiers.boolean(False),
        ),
        restoration=RestoreCommand(
            f"sudo defaults write {_BLUETOOTH_PREFS} BluetoothAutoSeekPointingDevice -bool true && "
            f"sudo defaults write {_BLUETOOTH_PREFS} BluetoothAutoSeekKeyboard -bool true"
        ),
    ),
    SettingDefinition(
        id="bluetooth_setup_assistant",
        display_name="Bluetooth Setup Assistant Popup",
        description="Disable Bluetooth setup assistant popup",
        category=SettingCategory.GENERAL,
        required=False,
        apply_command="defaults write com.apple.BluetoothSetupAssistant DontShowSetupAssistant -bool true",
        verification=CommandCheck(
            'defaults read com.apple.BluetoothSetupAssistant DontShowSetupAssistant 2>/dev/null || echo "0"',
            classifiers.boolean(True),
        ),
        restoration=RestoreCommand(
            "defaults write com.apple.BluetoothSetupAssistant DontShowSetupAssistant -bool false"
        ),
    ),
]

DEFAULT_CATALOG = SettingCatalog(_DEFINITIONS)
