"""
Определение и оборачивание команд, требующих прав администратора
"""

import re
import shlex

from .types import ElevationMethod

# sudo в начале любого сегмента, разделённого ;, && или ||
_SUDO_SEGMENT = re.compile(r'(^|&&|\|\||;)(\s*)sudo\s+')


def requires_elevation(command: str) -> bool:
    """True если команда содержит вызов sudo в начале сегмента"""
    return bool(command) and _SUDO_SEGMENT.search(command) is not None


def strip_sudo(command: str) -> str:
    """Убрать префиксы sudo из всех сегментов команды"""
    return _SUDO_SEGMENT.sub(r'\1\2', command)


def wrap_for_session(command: str, method: ElevationMethod) -> str:
    """Подготовить команду к запуску в рамках активной сессии.

    PASSWORD: sudo уже получил тикет через sudo -S -v, поэтому каждый
    вызов переводится в неинтерактивный режим (sudo -n).
    NATIVE: команда целиком выполняется через osascript
    "with administrator privileges".
    """
    if not requires_elevation(command):
        return command

    if method == ElevationMethod.PASSWORD:
        return _SUDO_SEGMENT.sub(r'\1\2sudo -n ', command)

    inner = strip_sudo(command).strip()
    escaped = inner.replace('\\', '\\\\').replace('"', '\\"')
    script = f'do shell script "{escaped}" with administrator privileges'
    return f"osascript -e {shlex.quote(script)}"
