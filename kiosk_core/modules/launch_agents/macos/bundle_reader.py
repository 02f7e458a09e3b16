"""
Чтение .app бандлов macOS: исполняемый файл и Info.plist
"""

import logging
import os
import plistlib
from xml.parsers.expat import ExpatError

from kiosk_core.errors import ExecutableNotFoundError, MetadataUnreadableError
from ..core.types import BundleInfo

logger = logging.getLogger(__name__)


def app_name(bundle_path: str) -> str:
    name = os.path.basename(os.path.normpath(bundle_path))
    return name[:-len(".app")] if name.endswith(".app") else name


def resolve_executable(bundle_path: str) -> str:
    """Путь к исполняемому файлу внутри бандла.

    Сначала Contents/MacOS/<имя бандла>, иначе первый не скрытый файл
    в Contents/MacOS.
    """
    if not os.path.normpath(bundle_path).endswith(".app"):
        raise ExecutableNotFoundError("Path must point to a .app bundle")

    macos_dir = os.path.join(bundle_path, "Contents", "MacOS")
    executable = os.path.join(macos_dir, app_name(bundle_path))
    if os.path.isfile(executable):
        return executable

    try:
        entries = sorted(e for e in os.listdir(macos_dir) if not e.startswith("."))
    except OSError:
        raise ExecutableNotFoundError(f"Could not find executable in {bundle_path}") from None

    if not entries:
        raise ExecutableNotFoundError(f"Executable not found at {executable}")

    logger.debug(f"Исполняемый файл {executable} не найден, используем {entries[0]}")
    return os.path.join(macos_dir, entries[0])


def read_bundle_metadata(bundle_path: str) -> BundleInfo:
    """Разобрать Contents/Info.plist (XML или бинарный)"""
    info_path = os.path.join(bundle_path, "Contents", "Info.plist")
    try:
        with open(info_path, "rb") as f:
            info = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise MetadataUnreadableError(f"Could not read app info: {e}") from e

    if not isinstance(info, dict):
        raise MetadataUnreadableError(f"Could not read app info: {info_path} is not a dictionary")

    name = app_name(bundle_path)
    return BundleInfo(
        bundle_path=bundle_path,
        app_name=name,
        bundle_identifier=info.get("CFBundleIdentifier"),
        display_name=info.get("CFBundleDisplayName") or info.get("CFBundleName") or name,
        version=info.get("CFBundleShortVersionString") or info.get("CFBundleVersion") or "Unknown",
        icon_file=info.get("CFBundleIconFile"),
    )


def read_bundle_info(bundle_path: str) -> BundleInfo:
    """Метаданные вместе с путём к исполняемому файлу"""
    info = read_bundle_metadata(bundle_path)
    info.executable_path = resolve_executable(bundle_path)
    return info
