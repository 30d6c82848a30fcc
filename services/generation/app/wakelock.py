"""Best-effort prevention of host sleep while a generation run is active."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import sys
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class WakeLockHandle:
    """Token returned by a successful acquire; released at most once."""

    backend: str
    resource: Any = None
    id: str = field(default_factory=lambda: uuid4().hex)
    released: bool = False


class WakeLock(ABC):
    """Platform power-management hook."""

    name: str

    @abstractmethod
    async def acquire(self) -> WakeLockHandle | None:
        """Return a handle, or ``None`` when the capability is unavailable."""

    @abstractmethod
    async def release(self, handle: WakeLockHandle) -> None:
        """Drop the lock represented by ``handle``."""


class NullWakeLock(WakeLock):
    """Backend for hosts without any sleep inhibition capability."""

    name = "null"

    async def acquire(self) -> WakeLockHandle | None:
        return None

    async def release(self, handle: WakeLockHandle) -> None:
        return None


class InhibitorWakeLock(WakeLock):
    """Hold a sleep inhibitor subprocess for the lifetime of the handle.

    Uses ``systemd-inhibit`` on Linux and ``caffeinate`` on macOS. The child
    is tied to this process's pid where the tool supports it, so a crashed
    service does not leave the host awake.
    """

    name = "inhibitor"

    def __init__(self, platform: str | None = None) -> None:
        self._platform = platform or sys.platform

    def command(self) -> list[str] | None:
        if self._platform == "darwin":
            binary = shutil.which("caffeinate")
            if binary:
                return [binary, "-i", "-w", str(os.getpid())]
        elif self._platform.startswith("linux"):
            binary = shutil.which("systemd-inhibit")
            if binary:
                return [
                    binary,
                    "--what=sleep:idle",
                    "--who=manuscript-studio",
                    "--why=Chapter generation in progress",
                    "--mode=block",
                    "sleep",
                    "infinity",
                ]
        return None

    async def acquire(self) -> WakeLockHandle | None:
        command = self.command()
        if command is None:
            return None
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        return WakeLockHandle(backend=self.name, resource=process)

    async def release(self, handle: WakeLockHandle) -> None:
        process = handle.resource
        if process is None or process.returncode is not None:
            return
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=5)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()


class WakeLockCoordinator:
    """Acquire/release wrapper that never lets the wake lock fail a run."""

    def __init__(self, backend: WakeLock | None = None) -> None:
        self._backend = backend or NullWakeLock()

    @property
    def backend(self) -> WakeLock:
        return self._backend

    async def acquire(self) -> WakeLockHandle | None:
        try:
            handle = await self._backend.acquire()
        except Exception:  # noqa: BLE001 - wake lock is best-effort
            logger.warning("Wake lock acquisition failed", exc_info=True, extra={"backend": self._backend.name})
            return None
        if handle is None:
            logger.info("Wake lock unavailable, continuing without it", extra={"backend": self._backend.name})
        return handle

    async def release(self, handle: WakeLockHandle | None) -> None:
        if handle is None or handle.released:
            return
        handle.released = True
        try:
            await self._backend.release(handle)
        except Exception:  # noqa: BLE001 - release failures must not mask the run outcome
            logger.warning("Wake lock release failed", exc_info=True, extra={"backend": self._backend.name})

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[WakeLockHandle | None]:
        handle = await self.acquire()
        try:
            yield handle
        finally:
            await self.release(handle)
