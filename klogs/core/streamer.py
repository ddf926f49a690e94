import asyncio
import logging
from contextlib import aclosing
from typing import Optional, Sequence

from klogs.core.abstract.cluster_connection import BaseClusterConnection
from klogs.core.abstract.output_sink import BaseOutputSink
from klogs.core.models.objects import PodIdentity
from klogs.utils.colors import PREFIX_DELIMITER, build_prefix, color_for

logger = logging.getLogger("klogs")


class PodLogStreamer:
    """
    Follows the log of one pod and writes every line to the sink, prefixed with
    the pod's colored scope labels and name.

    Start and stop are announced with `+ <prefix>` and `- <prefix>` marker lines.
    A failing stream only ends this pod's task, it never propagates.
    """

    def __init__(
        self,
        connection: BaseClusterConnection,
        pod: PodIdentity,
        sink: BaseOutputSink,
        prefixes: Sequence[str] = (),
        container: Optional[str] = None,
    ) -> None:
        self.connection = connection
        self.pod = pod
        self.sink = sink
        self.container = container
        self.color = color_for(pod.uid)
        self.prefix = build_prefix(prefixes, pod.name, self.color)

    def format_line(self, line: str) -> str:
        return f"{self.prefix}{PREFIX_DELIMITER}{line}"

    async def run(self) -> None:
        self.sink.write_line(f"+ {self.prefix}")
        try:
            async with aclosing(self.connection.open_log_stream(self.pod, self.container)) as lines:
                async for line in lines:
                    self.sink.write_line(self.format_line(line))
        except asyncio.CancelledError:
            logger.debug(f"Log stream for {self.pod} cancelled")
            raise
        except Exception as e:
            logger.warning(f"Log stream for {self.pod} failed: {e}")
            logger.debug("Log stream failure details", exc_info=True)
        finally:
            self.sink.write_line(f"- {self.prefix}")
