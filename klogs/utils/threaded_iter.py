import asyncio
import logging
import threading
from typing import AsyncIterator, Callable, Iterable, Optional, TypeVar

logger = logging.getLogger("klogs")

T = TypeVar("T")

_DONE = object()


async def iterate_in_thread(
    open_iterable: Callable[[], Iterable[T]],
    close: Optional[Callable[[], None]] = None,
    *,
    name: Optional[str] = None,
) -> AsyncIterator[T]:
    """Drain a blocking iterable on a daemon thread and yield its items on the event loop.

    Every stream gets its own thread, so long-lived streams never starve a shared executor.
    Exceptions raised by the iterable are re-raised here. When the consumer stops early
    (break, cancellation) `close` is called to unblock the thread.
    """

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()
    stopped = threading.Event()

    def put(item: object) -> None:
        try:
            loop.call_soon_threadsafe(queue.put_nowait, item)
        except RuntimeError:
            # the loop is already closed, nobody is listening anymore
            stopped.set()

    def drain() -> None:
        try:
            for item in open_iterable():
                if stopped.is_set():
                    break
                put(item)
        except BaseException as e:
            if not stopped.is_set():
                put(e)
        finally:
            put(_DONE)

    thread = threading.Thread(target=drain, name=name, daemon=True)
    thread.start()

    try:
        while True:
            item = await queue.get()
            if item is _DONE:
                return
            if isinstance(item, BaseException):
                raise item
            yield item
    finally:
        stopped.set()
        if close is not None and thread.is_alive():
            try:
                close()
            except Exception:
                logger.debug(f"Error while closing {name or 'stream'}", exc_info=True)
