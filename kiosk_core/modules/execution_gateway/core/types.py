"""
Типы данных для модуля execution_gateway
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandResult:
    """Результат выполнения одной команды"""
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def has_output(self) -> bool:
        return bool(self.stdout.strip())
