"""
macOS Elevation Broker

NATIVE   - системный диалог авторизации через osascript
PASSWORD - проверка пароля через sudo -S -v (пароль передаётся только в stdin)
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import Optional, Tuple

from ..core.types import ElevationMethod, ElevationOutcome

logger = logging.getLogger(__name__)

_CANCEL_MARKERS = ("User canceled", "User cancelled", "(-128)")


class MacOSElevationBroker:
    """Брокер прав администратора для macOS"""

    def __init__(self, prompt_name: str = "Installation Up 4evr"):
        self.prompt_name = prompt_name

    async def request_elevation(
        self, method: ElevationMethod, credential: Optional[str] = None
    ) -> ElevationOutcome:
        if method == ElevationMethod.NATIVE:
            return await self._request_native()
        if method == ElevationMethod.PASSWORD:
            if not credential:
                return ElevationOutcome(granted=False, reason="Password required", method=method)
            return await self._request_password(credential)
        return ElevationOutcome(granted=False, reason=f"Unsupported method: {method}", method=method)

    async def has_cached_credentials(self) -> bool:
        """Есть ли у sudo действующий тикет (sudo -n true)"""
        code, _ = await self._exec(["sudo", "-n", "true"])
        return code == 0

    async def _request_native(self) -> ElevationOutcome:
        prompt = self.prompt_name.replace('"', "'")
        script = (
            'do shell script "/usr/bin/true" with prompt '
            f'"{prompt} needs administrator access" with administrator privileges'
        )
        code, stderr = await self._exec(["osascript", "-e", script])
        if code == 0:
            return ElevationOutcome(granted=True, reason="Administrator access granted via native dialog",
                                    method=ElevationMethod.NATIVE)
        reason = "User cancelled request" if any(m in stderr for m in _CANCEL_MARKERS) else "Invalid credentials"
        return ElevationOutcome(granted=False, reason=reason, method=ElevationMethod.NATIVE)

    async def _request_password(self, credential: str) -> ElevationOutcome:
        code, _ = await self._exec(["sudo", "-S", "-v", "-p", ""], stdin=f"{credential}\n")
        if code == 0:
            return ElevationOutcome(granted=True, reason="Administrator access granted via password",
                                    method=ElevationMethod.PASSWORD)
        return ElevationOutcome(granted=False, reason="Invalid administrator password",
                                method=ElevationMethod.PASSWORD)

    async def _exec(self, argv, stdin: Optional[str] = None) -> Tuple[int, str]:
        # argv логируется, stdin - никогда
        logger.debug(f"▶️ broker exec: {' '.join(shlex.quote(a) for a in argv)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"❌ Не удалось запустить {argv[0]}: {e}")
            return 127, str(e)

        _, stderr = await proc.communicate(stdin.encode("utf-8") if stdin is not None else None)
        return proc.returncode if proc.returncode is not None else -1, stderr.decode("utf-8", errors="replace")
