import asyncio
import enum
import logging
from contextlib import aclosing

from klogs.core.abstract.cluster_connection import BaseClusterConnection
from klogs.core.abstract.output_sink import BaseOutputSink
from klogs.core.filtering import PodFilter, matches
from klogs.core.models.objects import PodEvent, Scope
from klogs.core.registry import StreamRegistry
from klogs.core.streamer import PodLogStreamer

logger = logging.getLogger("klogs")


class WatcherState(str, enum.Enum):
    SUBSCRIBING = "Subscribing"
    ACTIVE = "Active"
    CLOSED = "Closed"


class DiscoveryWatcher:
    """
    Watches pods of one scope and starts a log stream for every pod that passes the filter.

    Events of any action are evaluated the same way. Deleted or stopped pods simply do not
    match, their streams end when the cluster closes the log connection.
    """

    def __init__(
        self,
        connection: BaseClusterConnection,
        scope: Scope,
        pod_filter: PodFilter,
        registry: StreamRegistry,
        sink: BaseOutputSink,
    ) -> None:
        self.connection = connection
        self.scope = scope
        self.pod_filter = pod_filter
        self.registry = registry
        self.sink = sink
        self.state = WatcherState.SUBSCRIBING

    def handle_event(self, event: PodEvent) -> bool:
        """Returns True if a new stream was started for the event's pod."""

        pod = event.pod
        if not matches(pod, self.pod_filter):
            logger.debug(f"Skipping {event.action} {pod.identity} ({pod.state.value})")
            return False

        def start_streamer():
            streamer = PodLogStreamer(
                self.connection,
                pod.identity,
                self.sink,
                prefixes=self.scope.prefixes(pod.identity, all_contexts=self.pod_filter.all_contexts),
                container=pod.default_container,
            )
            return streamer.run()

        return self.registry.start_if_absent(pod.identity, start_streamer)

    async def run(self) -> None:
        self.state = WatcherState.SUBSCRIBING
        logger.debug(f"Watching pods in {self.scope}")
        try:
            async with aclosing(self.connection.watch_pods(self.scope)) as events:
                self.state = WatcherState.ACTIVE
                async for event in events:
                    self.handle_event(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Pod watch on {self.scope} closed with an error: {e}")
            logger.debug("Pod watch failure details", exc_info=True)
        else:
            logger.debug(f"Pod watch on {self.scope} closed")
        finally:
            self.state = WatcherState.CLOSED


__all__ = ["DiscoveryWatcher", "WatcherState"]
