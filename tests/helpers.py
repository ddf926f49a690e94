import asyncio
import re
from typing import Optional, Union

from klogs.core.abstract.cluster_connection import BaseClusterConnection
from klogs.core.abstract.output_sink import BaseOutputSink
from klogs.core.models.objects import PodEvent, PodIdentity, PodObservation, PodState, Scope

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub("", text)


def make_pod(
    uid: str = "abc123",
    name: str = "p1",
    namespace: str = "default",
    context: Optional[str] = "kind-dev",
    labels: Optional[dict] = None,
    state: PodState = PodState.RUNNING,
    running_containers: tuple = ("app",),
    containers: tuple = ("app",),
    deleted: bool = False,
) -> PodObservation:
    return PodObservation(
        identity=PodIdentity(uid=uid, name=name, namespace=namespace, context=context),
        labels=labels or {},
        state=state,
        containers=containers,
        running_containers=running_containers,
        deleted=deleted,
    )


def make_event(action: str = "MODIFIED", **kwargs) -> PodEvent:
    return PodEvent(action=action, pod=make_pod(**kwargs))


class ListSink(BaseOutputSink):
    def __init__(self) -> None:
        self.lines: list[str] = []

    def write_line(self, text: str) -> None:
        self.lines.append(text)

    @property
    def plain_lines(self) -> list[str]:
        return [strip_ansi(line) for line in self.lines]

    def markers(self, sign: str) -> list[str]:
        return [line for line in self.plain_lines if line.startswith(f"{sign} ")]


class FakeConnection(BaseClusterConnection):
    """
    In-memory cluster.

    `events` maps a context name to the events its watch delivers, `logs` maps a pod uid to its log lines.
    An exception in either list is raised at that point. Watches and streams listed in `hold`
    stay open until the matching asyncio.Event is set (or the task is cancelled).
    """

    def __init__(
        self,
        scopes: Optional[list[Scope]] = None,
        events: Optional[dict[Optional[str], list[Union[PodEvent, Exception]]]] = None,
        logs: Optional[dict[str, list[Union[str, Exception]]]] = None,
    ) -> None:
        self.scopes = scopes if scopes is not None else [Scope(context="kind-dev", namespace="default")]
        self.events = events or {}
        self.logs = logs or {}
        self.hold: dict[str, asyncio.Event] = {}
        self.scopes_error: Optional[Exception] = None
        self.opened: list[tuple[PodIdentity, Optional[str]]] = []
        self.closed_streams: list[str] = []

    async def list_scopes(self, all_contexts: bool, all_namespaces: bool) -> list[Scope]:
        if self.scopes_error is not None:
            raise self.scopes_error

        scopes = self.scopes if all_contexts else self.scopes[:1]
        return [scope.model_copy(update={"all_namespaces": all_namespaces}) for scope in scopes]

    async def watch_pods(self, scope: Scope):
        for event in self.events.get(scope.context, []):
            if isinstance(event, Exception):
                raise event
            yield event
            await asyncio.sleep(0)

        hold = self.hold.get(f"watch:{scope.context}")
        if hold is not None:
            await hold.wait()

    async def open_log_stream(self, pod: PodIdentity, container: Optional[str] = None):
        self.opened.append((pod, container))
        try:
            for line in self.logs.get(pod.uid, []):
                if isinstance(line, Exception):
                    raise line
                yield line
                await asyncio.sleep(0)

            hold = self.hold.get(pod.uid)
            if hold is not None:
                await hold.wait()
        finally:
            self.closed_streams.append(pod.uid)


async def wait_until(predicate, timeout: float = 1.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)
