"""
Тесты для LaunchAgentManager
"""

import os
import plistlib
import shlex
from unittest.mock import AsyncMock, patch

import pytest

from kiosk_core.errors import ExecutableNotFoundError, MetadataUnreadableError, ValidationError
from kiosk_core.modules.execution_gateway import CommandResult
from kiosk_core.modules.launch_agents import (
    KeepAlivePolicy, LaunchAgentDescriptor, LaunchAgentManager, LaunchAgentsConfig, LifecycleStep,
    decode_descriptor, read_bundle_metadata, resolve_executable
)
from kiosk_core.modules.process_status import AgentCategory

TEXTEDIT = "/Applications/TextEdit.app/Contents/MacOS/TextEdit"
LABEL_WITH_QUOTES = 'com.example."gallery" <it\'s>'


def make_gateway(result=None, side_effect=None):
    gateway = AsyncMock()
    if side_effect is not None:
        gateway.run = AsyncMock(side_effect=side_effect)
    else:
        gateway.run = AsyncMock(return_value=result or CommandResult(exit_code=0))
    return gateway


@pytest.fixture
def agents_dir(tmp_path):
    return tmp_path / "LaunchAgents"


def make_manager(agents_dir, gateway):
    return LaunchAgentManager(gateway, LaunchAgentsConfig(agents_dir=str(agents_dir)))


def make_bundle(root, name="Gallery", info=None, executable=True):
    bundle = root / f"{name}.app"
    macos = bundle / "Contents" / "MacOS"
    macos.mkdir(parents=True)
    if executable:
        (macos / name).write_text("#!/bin/sh\n")
    if info is not None:
        with open(bundle / "Contents" / "Info.plist", "wb") as f:
            plistlib.dump(info, f)
    return bundle


class TestInstall:
    """Тесты установки агентов"""

    @pytest.mark.asyncio
    async def test_install_writes_and_loads(self, agents_dir):
        gateway = make_gateway()
        manager = make_manager(agents_dir, gateway)
        descriptor = LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT)

        result = await manager.install(descriptor)

        filepath = agents_dir / "com.example.test.plist"
        assert result.success is True
        assert result.partial is False
        assert result.failed_step is None
        assert result.filepath == str(filepath)
        assert decode_descriptor(filepath.read_text(encoding="utf-8")) == descriptor
        gateway.run.assert_awaited_once_with(f"launchctl load {shlex.quote(str(filepath))}")

    @pytest.mark.asyncio
    async def test_load_failure_keeps_file(self, agents_dir):
        gateway = make_gateway(CommandResult(exit_code=1, stderr="Load failed: 5: Input/output error"))
        manager = make_manager(agents_dir, gateway)

        result = await manager.install(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        assert result.success is False
        assert result.partial is True
        assert result.failed_step == LifecycleStep.LOAD
        assert (agents_dir / "com.example.test.plist").exists()
        assert "created but failed to load" in result.message

    @pytest.mark.asyncio
    async def test_load_failed_message_with_zero_exit(self, agents_dir):
        gateway = make_gateway(CommandResult(exit_code=0, stderr="Load failed: 5: Input/output error"))
        manager = make_manager(agents_dir, gateway)

        result = await manager.load("com.example.test")

        assert result.success is False
        assert result.failed_step == LifecycleStep.LOAD

    @pytest.mark.asyncio
    async def test_write_failure(self, agents_dir):
        gateway = make_gateway()
        manager = make_manager(agents_dir, gateway)

        with patch("builtins.open", side_effect=PermissionError("denied")):
            result = await manager.install(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        assert result.success is False
        assert result.partial is False
        assert result.failed_step == LifecycleStep.WRITE
        gateway.run.assert_not_awaited()

    def test_create_overwrites_same_label(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())

        manager.create_descriptor_file(LaunchAgentDescriptor(label="dup", program_path="/bin/a"))
        manager.create_descriptor_file(LaunchAgentDescriptor(label="dup", program_path="/bin/b"))

        assert os.listdir(agents_dir) == ["dup.plist"]
        assert decode_descriptor((agents_dir / "dup.plist").read_text()).program_path == "/bin/b"

    def test_create_requires_label(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())

        with pytest.raises(ValidationError):
            manager.create_descriptor_file(LaunchAgentDescriptor(label="", program_path="/bin/a"))

    @pytest.mark.parametrize("label", ["../../escape", "nested/label"])
    def test_create_rejects_path_in_label(self, agents_dir, tmp_path, label):
        manager = make_manager(agents_dir, make_gateway())

        with pytest.raises(ValidationError):
            manager.create_descriptor_file(LaunchAgentDescriptor(label=label, program_path="/bin/a"))

        assert not agents_dir.exists()
        assert not (tmp_path.parent / "escape.plist").exists()


class TestUninstall:
    """Тесты удаления агентов"""

    @pytest.mark.asyncio
    async def test_uninstall_unloads_and_deletes(self, agents_dir):
        gateway = make_gateway()
        manager = make_manager(agents_dir, gateway)
        filepath = manager.create_descriptor_file(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        result = await manager.uninstall("com.example.test")

        assert result.success is True
        assert not os.path.exists(filepath)
        gateway.run.assert_awaited_once_with(f"launchctl unload {shlex.quote(filepath)}")

    @pytest.mark.asyncio
    async def test_not_loaded_is_tolerated(self, agents_dir):
        gateway = make_gateway(CommandResult(
            exit_code=1, stderr="Could not find specified service"
        ))
        manager = make_manager(agents_dir, gateway)
        filepath = manager.create_descriptor_file(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        result = await manager.uninstall("com.example.test.plist")

        assert result.success is True
        assert not os.path.exists(filepath)

    @pytest.mark.asyncio
    async def test_genuine_unload_failure_keeps_file(self, agents_dir):
        gateway = make_gateway(CommandResult(exit_code=1, stderr="Operation not permitted"))
        manager = make_manager(agents_dir, gateway)
        filepath = manager.create_descriptor_file(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        result = await manager.uninstall("com.example.test")

        assert result.success is False
        assert result.partial is False
        assert result.failed_step == LifecycleStep.UNLOAD
        assert os.path.exists(filepath)

    @pytest.mark.asyncio
    async def test_delete_failure_is_partial(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())
        manager.create_descriptor_file(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        with patch("os.remove", side_effect=PermissionError("read-only")):
            result = await manager.uninstall("com.example.test")

        assert result.success is False
        assert result.partial is True
        assert result.failed_step == LifecycleStep.DELETE
        assert "read-only" in result.raw_error

    @pytest.mark.asyncio
    async def test_missing_file(self, agents_dir):
        gateway = make_gateway()
        manager = make_manager(agents_dir, gateway)

        result = await manager.uninstall("com.example.ghost")

        assert result.success is False
        assert "not found" in result.message
        gateway.run.assert_not_awaited()


class TestList:
    """Тесты перечисления агентов"""

    def test_missing_directory(self, agents_dir):
        assert make_manager(agents_dir, make_gateway()).list() == []

    def test_list_records(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())
        manager.create_descriptor_file(LaunchAgentDescriptor(label="com.example.one", program_path="/bin/a"))
        (agents_dir / "no-label.plist").write_text("<plist><dict></dict></plist>")
        (agents_dir / "broken.plist").write_bytes(b"\xff\xfe\x00garbage")
        (agents_dir / "notes.txt").write_text("ignored")

        records = {r.filename: r for r in manager.list()}

        assert set(records) == {"com.example.one.plist", "no-label.plist", "broken.plist"}
        assert records["com.example.one.plist"].label == "com.example.one"
        assert records["com.example.one.plist"].size_bytes > 0
        assert records["com.example.one.plist"].modified_at is not None
        assert records["no-label.plist"].label == "no-label"
        assert records["broken.plist"].error
        assert records["broken.plist"].label is None

    def test_label_differs_from_filename(self, agents_dir):
        agents_dir.mkdir()
        (agents_dir / "renamed.plist").write_text(
            "<dict>\n  <key>Label</key>\n    <string>com.example.real</string>\n</dict>"
        )

        records = make_manager(agents_dir, make_gateway()).list()

        assert records[0].label == "com.example.real"

    @pytest.mark.asyncio
    async def test_label_with_xml_characters_is_unescaped(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())

        result = await manager.install(LaunchAgentDescriptor(label="com.acme.r&d", program_path="/bin/true"))

        assert result.success is True
        assert [r.label for r in manager.list()] == ["com.acme.r&d"]

    def test_label_with_quotes_is_unescaped(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())
        manager.create_descriptor_file(LaunchAgentDescriptor(label=LABEL_WITH_QUOTES, program_path="/bin/a"))

        assert [r.label for r in manager.list()] == [LABEL_WITH_QUOTES]


class TestBundles:
    """Тесты чтения .app бандлов"""

    def test_resolve_named_executable(self, tmp_path):
        bundle = make_bundle(tmp_path)

        assert resolve_executable(str(bundle)) == str(bundle / "Contents" / "MacOS" / "Gallery")

    def test_resolve_first_visible_entry(self, tmp_path):
        bundle = make_bundle(tmp_path, executable=False)
        macos = bundle / "Contents" / "MacOS"
        (macos / ".hidden").write_text("")
        (macos / "zeta").write_text("")
        (macos / "alpha").write_text("")

        assert resolve_executable(str(bundle)) == str(macos / "alpha")

    def test_resolve_requires_app(self, tmp_path):
        with pytest.raises(ExecutableNotFoundError):
            resolve_executable(str(tmp_path))

    def test_resolve_empty_macos_dir(self, tmp_path):
        bundle = make_bundle(tmp_path, executable=False)

        with pytest.raises(ExecutableNotFoundError):
            resolve_executable(str(bundle))

    def test_read_metadata(self, tmp_path):
        bundle = make_bundle(tmp_path, info={
            "CFBundleIdentifier": "com.example.gallery",
            "CFBundleName": "Gallery Player",
            "CFBundleVersion": "42",
            "CFBundleIconFile": "AppIcon",
        })

        info = read_bundle_metadata(str(bundle))

        assert info.bundle_identifier == "com.example.gallery"
        assert info.display_name == "Gallery Player"
        assert info.version == "42"
        assert info.icon_file == "AppIcon"
        assert info.app_name == "Gallery"

    def test_unreadable_metadata(self, tmp_path):
        bundle = make_bundle(tmp_path)

        with pytest.raises(MetadataUnreadableError):
            read_bundle_metadata(str(bundle))

    def test_descriptor_from_bundle_default_label(self, tmp_path, agents_dir):
        bundle = make_bundle(tmp_path, info={"CFBundleIdentifier": "com.example.gallery"})
        manager = make_manager(agents_dir, make_gateway())

        descriptor = manager.descriptor_from_bundle(str(bundle), arguments=["--fullscreen"])

        assert descriptor.label == "com.example.gallery.up4evr"
        assert descriptor.program_path == str(bundle / "Contents" / "MacOS" / "Gallery")
        assert descriptor.arguments == ["--fullscreen"]
        assert descriptor.keep_alive == KeepAlivePolicy.SUCCESSFUL_EXIT
        assert descriptor.process_type == "Interactive"

    def test_descriptor_from_bundle_without_identifier(self, tmp_path, agents_dir):
        bundle = make_bundle(tmp_path, info={"CFBundleName": "Gallery"})
        manager = make_manager(agents_dir, make_gateway())

        assert manager.descriptor_from_bundle(str(bundle)).label == "Gallery.up4evr"

    @pytest.mark.asyncio
    async def test_install_from_bundle(self, tmp_path, agents_dir):
        bundle = make_bundle(tmp_path, info={"CFBundleIdentifier": "com.example.gallery"})
        manager = make_manager(agents_dir, make_gateway())

        result = await manager.install_from_bundle(str(bundle), label="custom.label")

        assert result.success is True
        assert (agents_dir / "custom.label.plist").exists()


class TestAgentInfo:
    """Тесты сводной информации об агенте"""

    @pytest.mark.asyncio
    async def test_agent_info_running(self, agents_dir):
        listing = "PID\tStatus\tLabel\n512\t0\tcom.example.test\n-\t0\tcom.example.test.helper\n"

        async def run(command):
            if command == "launchctl list":
                return CommandResult(exit_code=0, stdout=listing)
            return CommandResult(exit_code=0)

        manager = make_manager(agents_dir, make_gateway(side_effect=run))
        manager.create_descriptor_file(LaunchAgentDescriptor(label="com.example.test", program_path=TEXTEDIT))

        info = await manager.agent_info("com.example.test")

        assert info.loaded is True
        assert info.running is True
        assert info.status.pid == 512
        assert info.category == AgentCategory.APPLICATION
        assert "<string>com.example.test</string>" in info.content

    @pytest.mark.asyncio
    async def test_agent_info_not_loaded(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway(CommandResult(exit_code=0, stdout="")))
        manager.create_descriptor_file(LaunchAgentDescriptor(label="gallery.up4evr", program_path=TEXTEDIT))

        info = await manager.agent_info("gallery.up4evr.plist")

        assert info.loaded is False
        assert info.running is False
        assert info.category == AgentCategory.USER

    @pytest.mark.asyncio
    async def test_agent_info_missing(self, agents_dir):
        manager = make_manager(agents_dir, make_gateway())

        with pytest.raises(ValidationError):
            await manager.agent_info("ghost")
