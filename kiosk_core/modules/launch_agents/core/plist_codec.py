"""
Кодирование LaunchAgent дескриптора в plist XML и обратно

Формат вывода фиксирован: двухстрочная преамбула, отступ в два пробела,
ключи в порядке вставки. Чтение выполняется стандартным plistlib.
"""

import plistlib
from collections import OrderedDict
from typing import Any, Dict
from xml.parsers.expat import ExpatError

from kiosk_core.errors import DescriptorDecodeError
from .types import KeepAlivePolicy, LaunchAgentDescriptor

PLIST_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
    '"http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
    '<plist version="1.0">'
)
PLIST_FOOTER = '</plist>'
INDENT = '  '

_XML_ESCAPES = (
    ('&', '&amp;'),
    ('<', '&lt;'),
    ('>', '&gt;'),
    ('"', '&quot;'),
    ("'", '&apos;'),
)


def escape_xml(text: str) -> str:
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def encode_value(value: Any, indent: int = 0) -> str:
    """Рекурсивно отрисовать значение в plist-теги"""
    spaces = INDENT * indent
    # bool проверяется раньше int
    if isinstance(value, bool):
        return f"{spaces}<{'true' if value else 'false'}/>"
    if isinstance(value, int):
        return f"{spaces}<integer>{value}</integer>"
    if isinstance(value, float):
        return f"{spaces}<real>{value!r}</real>"
    if isinstance(value, dict):
        lines = [f"{spaces}<dict>"]
        for key, item in value.items():
            lines.append(f"{spaces}{INDENT}<key>{escape_xml(str(key))}</key>")
            lines.append(encode_value(item, indent + 1))
        lines.append(f"{spaces}</dict>")
        return "\n".join(lines)
    if isinstance(value, (list, tuple)):
        lines = [f"{spaces}<array>"]
        lines.extend(encode_value(item, indent + 1) for item in value)
        lines.append(f"{spaces}</array>")
        return "\n".join(lines)
    return f"{spaces}<string>{escape_xml(str(value))}</string>"


def descriptor_to_dict(descriptor: LaunchAgentDescriptor) -> Dict[str, Any]:
    data: Dict[str, Any] = OrderedDict()
    data["Label"] = descriptor.label
    data["ProgramArguments"] = [descriptor.program_path, *descriptor.arguments]
    data["ProcessType"] = descriptor.process_type
    data["RunAtLoad"] = descriptor.run_at_load
    if descriptor.keep_alive == KeepAlivePolicy.ALWAYS:
        data["KeepAlive"] = True
    elif descriptor.keep_alive == KeepAlivePolicy.SUCCESSFUL_EXIT:
        data["KeepAlive"] = OrderedDict([("SuccessfulExit", True)])
    if descriptor.environment:
        data["EnvironmentVariables"] = OrderedDict(descriptor.environment)
    if descriptor.working_directory is not None:
        data["WorkingDirectory"] = descriptor.working_directory
    return data


def encode_descriptor(descriptor: LaunchAgentDescriptor) -> str:
    """Дескриптор -> текст plist (без завершающего перевода строки)"""
    return PLIST_HEADER + "\n" + encode_value(descriptor_to_dict(descriptor)) + "\n" + PLIST_FOOTER


def decode_descriptor(text: str) -> LaunchAgentDescriptor:
    """Текст plist -> дескриптор.

    Raises:
        DescriptorDecodeError: документ не разбирается или не похож на агента
    """
    try:
        data = plistlib.loads(text.encode("utf-8"))
    except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise DescriptorDecodeError(f"Invalid plist document: {e}") from e

    if not isinstance(data, dict):
        raise DescriptorDecodeError("Root element must be a dictionary")

    label = data.get("Label")
    if not isinstance(label, str) or not label:
        raise DescriptorDecodeError("Missing Label")

    program_arguments = data.get("ProgramArguments")
    if not isinstance(program_arguments, list) or not program_arguments:
        raise DescriptorDecodeError("Missing ProgramArguments")

    return LaunchAgentDescriptor(
        label=label,
        program_path=str(program_arguments[0]),
        arguments=[str(arg) for arg in program_arguments[1:]],
        keep_alive=_decode_keep_alive(data.get("KeepAlive")),
        process_type=data.get("ProcessType", "Interactive"),
        run_at_load=bool(data.get("RunAtLoad", False)),
        environment=dict(data.get("EnvironmentVariables") or {}),
        working_directory=data.get("WorkingDirectory"),
    )


def _decode_keep_alive(value: Any):
    if value is None or value is False:
        return None
    if value is True:
        return KeepAlivePolicy.ALWAYS
    if isinstance(value, dict) and value.get("SuccessfulExit") is True:
        return KeepAlivePolicy.SUCCESSFUL_EXIT
    raise DescriptorDecodeError(f"Unsupported KeepAlive value: {value!r}")
