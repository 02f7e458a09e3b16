"""
Execution Gateway - контракт выполнения команд

Реализации не бросают исключений на ненулевой код выхода.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .types import CommandResult


@runtime_checkable
class ExecutionGateway(Protocol):
    """Запускает одну команду и возвращает код выхода, stdout и stderr."""

    async def run(self, command: str) -> CommandResult:
        ...
