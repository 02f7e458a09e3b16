"""
Выполнение команд через /bin/bash (asyncio subprocess)
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Optional

from ..core.types import CommandResult

logger = logging.getLogger(__name__)


class ShellExecutionGateway:
    """Shell-реализация ExecutionGateway.

    Команды запускаются из домашней директории пользователя, чтобы
    относительные пути в настройках не зависели от текущего каталога.
    """

    def __init__(
        self,
        shell: str = "/bin/bash",
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.shell = shell
        self.cwd = cwd or os.path.expanduser("~")
        self.timeout = timeout

    async def run(self, command: str) -> CommandResult:
        started = time.monotonic()
        logger.debug(f"▶️ exec: {command}")
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                executable=self.shell,
            )
        except OSError as e:
            logger.error(f"❌ Не удалось запустить команду: {e}")
            return CommandResult(exit_code=127, stderr=str(e), duration=time.monotonic() - started)

        try:
            if self.timeout:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
            else:
                stdout, stderr = await proc.communicate()
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning(f"⏱️ Команда превысила таймаут {self.timeout}s: {command}")
            return CommandResult(
                exit_code=-1,
                stderr=f"Command timed out after {self.timeout}s",
                duration=time.monotonic() - started,
            )

        result = CommandResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration=time.monotonic() - started,
        )
        if not result.succeeded:
            logger.debug(f"exit={result.exit_code} stderr={result.stderr.strip()}")
        return result
