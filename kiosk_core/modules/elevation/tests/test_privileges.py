"""
Тесты определения и оборачивания sudo-команд
"""

import shlex

from kiosk_core.modules.elevation import ElevationMethod, requires_elevation, strip_sudo, wrap_for_session


class TestRequiresElevation:

    def test_plain_command(self):
        assert requires_elevation("defaults write com.apple.dock autohide -bool true") is False

    def test_leading_sudo(self):
        assert requires_elevation("sudo pmset -c sleep 0") is True

    def test_sudo_in_later_segment(self):
        assert requires_elevation("defaults write x y -bool true && sudo killall Dock") is True
        assert requires_elevation("true; sudo pmset -a sleep 0") is True
        assert requires_elevation("false || sudo pmset -a sleep 0") is True

    def test_sudo_inside_argument_is_ignored(self):
        assert requires_elevation("echo pseudo sudoers") is False

    def test_empty(self):
        assert requires_elevation("") is False


class TestWrapForSession:

    def test_non_elevated_command_unchanged(self):
        command = "defaults read com.apple.dock autohide"
        assert wrap_for_session(command, ElevationMethod.NATIVE) == command
        assert wrap_for_session(command, ElevationMethod.PASSWORD) == command

    def test_password_uses_non_interactive_sudo(self):
        wrapped = wrap_for_session("sudo pmset -c sleep 0 && sudo pmset -c displaysleep 0", ElevationMethod.PASSWORD)

        assert wrapped == "sudo -n pmset -c sleep 0 && sudo -n pmset -c displaysleep 0"

    def test_native_uses_osascript(self):
        wrapped = wrap_for_session('sudo launchctl unload -w "/System/x.plist"', ElevationMethod.NATIVE)

        argv = shlex.split(wrapped)
        assert argv[:2] == ["osascript", "-e"]
        assert argv[2] == (
            'do shell script "launchctl unload -w \\"/System/x.plist\\"" with administrator privileges'
        )

    def test_strip_sudo(self):
        assert strip_sudo("sudo pmset -c sleep 0; sudo pmset -c autorestart 1") == \
            "pmset -c sleep 0; pmset -c autorestart 1"
