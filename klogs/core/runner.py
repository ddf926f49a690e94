import asyncio
import logging
import signal
from typing import Optional

from rich.text import Text

from klogs.core.abstract.cluster_connection import BaseClusterConnection
from klogs.core.abstract.output_sink import BaseOutputSink
from klogs.core.exceptions import ClusterConnectionError
from klogs.core.integrations.kubernetes import KubernetesConnection
from klogs.core.models.config import settings
from klogs.core.models.objects import Scope
from klogs.core.registry import StreamRegistry
from klogs.core.watcher import DiscoveryWatcher
from klogs.utils.output import ConsoleSink
from klogs.utils.print import print as custom_print
from klogs.utils.version import get_version

logger = logging.getLogger("klogs")


class CriticalRunnerException(Exception): ...


class Runner:
    def __init__(
        self, connection: Optional[BaseClusterConnection] = None, sink: Optional[BaseOutputSink] = None
    ) -> None:
        self._connection = connection or KubernetesConnection(kubeconfig=settings.kubeconfig)
        self._sink = sink or ConsoleSink(settings.output_console)
        self._pod_filter = settings.pod_filter
        self._registry = StreamRegistry()
        self._watcher_tasks: list[asyncio.Task] = []

    @property
    def registry(self) -> StreamRegistry:
        return self._registry

    def _greet(self) -> None:
        if settings.quiet:
            return

        logger.debug(f"Running klogs {get_version()}")
        custom_print(Text(settings.description))

    async def _load_scopes(self) -> list[Scope]:
        try:
            scopes = await self._connection.list_scopes(
                all_contexts=self._pod_filter.all_contexts, all_namespaces=self._pod_filter.all_namespaces
            )
        except ClusterConnectionError as e:
            raise CriticalRunnerException(str(e)) from e

        if not scopes:
            raise CriticalRunnerException("No cluster context to watch")

        return scopes

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        main_task = asyncio.current_task()
        installed: list[signal.Signals] = []
        if main_task is None:
            return installed

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, main_task.cancel)
            except (NotImplementedError, RuntimeError, ValueError):
                # Not supported on this platform or not running in the main thread
                logger.debug(f"Could not install a handler for {signum!r}")
            else:
                installed.append(signum)
        return installed

    async def _watch(self, scopes: list[Scope]) -> None:
        watchers = [
            DiscoveryWatcher(self._connection, scope, self._pod_filter, self._registry, self._sink) for scope in scopes
        ]
        self._watcher_tasks = [
            asyncio.create_task(watcher.run(), name=f"watch {watcher.scope}") for watcher in watchers
        ]
        await asyncio.gather(*self._watcher_tasks)

        logger.warning("Every pod watch has closed, waiting for the remaining log streams to end")
        await self._registry.wait_empty()

    async def shutdown(self) -> None:
        """Cancel every watcher and every log stream, waiting for their cleanup."""

        for task in self._watcher_tasks:
            task.cancel()
        await asyncio.gather(*self._watcher_tasks, return_exceptions=True)
        if self._registry:
            logger.debug(f"Stopping {len(self._registry)} open log stream(s)")
        await self._registry.cancel_all()

    async def run(self) -> int:
        """Run the log aggregation until every watch closes or the process is told to stop.

        Returns the exit code.
        """

        self._greet()

        try:
            scopes = await self._load_scopes()
        except CriticalRunnerException as e:
            logger.error(str(e))
            return 1

        installed_signals = self._install_signal_handlers()
        try:
            await self._watch(scopes)
        except asyncio.CancelledError:
            logger.debug("Shutting down")
        finally:
            await self.shutdown()
            loop = asyncio.get_running_loop()
            for signum in installed_signals:
                loop.remove_signal_handler(signum)

        return 0
