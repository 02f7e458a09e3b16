"""
Execution Gateway Module

Единая точка запуска shell-команд: run(command) -> CommandResult.
Ненулевой код выхода не является исключением - классификацию делает вызывающий.
"""

from .core.types import CommandResult
from .core.gateway import ExecutionGateway
from .macos.shell_gateway import ShellExecutionGateway

__all__ = [
    'CommandResult',
    'ExecutionGateway',
    'ShellExecutionGateway',
]
