from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from klogs.core.models.objects import PodIdentity

logger = logging.getLogger("klogs")

StreamFactory = Callable[[], Awaitable[None]]


@dataclass
class StreamHandle:
    identity: PodIdentity
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class StreamRegistry:
    """
    Keeps at most one running log stream per pod uid.

    The registry is owned by the runner and handed to every watcher.
    It must only be used from the event loop thread: the existence check and the
    placeholder insert in `start_if_absent` happen without any await in between,
    so no two callers can both see a uid as absent.
    """

    def __init__(self) -> None:
        self._streams: dict[str, StreamHandle] = {}
        self._empty = asyncio.Event()
        self._empty.set()

    def __contains__(self, uid: object) -> bool:
        return uid in self._streams

    def __len__(self) -> int:
        return len(self._streams)

    def get(self, uid: str) -> Optional[StreamHandle]:
        return self._streams.get(uid)

    def start_if_absent(self, identity: PodIdentity, factory: StreamFactory) -> bool:
        """Start a stream task for the pod unless one is already registered.

        Returns True when a new task was started.
        """

        if identity.uid in self:
            logger.debug(f"Stream for {identity} is already running")
            return False

        handle = StreamHandle(identity=identity)
        self._streams[identity.uid] = handle
        self._empty.clear()
        handle.task = asyncio.create_task(self._run(handle, factory), name=f"stream {identity}")
        # NOTE: a done callback also fires for a task cancelled before it ever ran
        handle.task.add_done_callback(lambda _: self._release(handle))
        return True

    async def _run(self, handle: StreamHandle, factory: StreamFactory) -> None:
        try:
            await factory()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Stream task for {handle.identity} crashed")

    def _release(self, handle: StreamHandle) -> None:
        if self.get(handle.identity.uid) is handle:
            del self._streams[handle.identity.uid]
            logger.debug(f"Released stream slot for {handle.identity}")
        if not self._streams:
            self._empty.set()

    async def wait_empty(self) -> None:
        await self._empty.wait()

    async def cancel_all(self) -> None:
        """Cancel every running stream and wait until each has cleaned up."""

        tasks = [handle.task for handle in self._streams.values() if handle.task is not None and not handle.done]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["StreamRegistry", "StreamHandle", "StreamFactory"]
