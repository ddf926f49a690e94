import asyncio
import codecs
import logging
import os
import threading
from typing import Any, AsyncIterator, Iterator, Optional

from kubernetes import client, config, watch  # type: ignore
from kubernetes.client.models import V1Pod
from kubernetes.config.config_exception import ConfigException

from klogs.core.abstract.cluster_connection import BaseClusterConnection
from klogs.core.exceptions import ClusterConnectionError, WatchError
from klogs.core.models.objects import PodEvent, PodIdentity, PodObservation, PodState, Scope
from klogs.utils.threaded_iter import iterate_in_thread

logger = logging.getLogger("klogs")

SERVICE_ACCOUNT_NAMESPACE_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
# NOTE: every followed log keeps one connection open, the urllib3 default of 4 would keep discarding them
CONNECTION_POOL_MAXSIZE = 64
WATCHED_ACTIONS = ("ADDED", "MODIFIED", "DELETED")


def to_observation(pod: V1Pod, context: Optional[str]) -> PodObservation:
    metadata = pod.metadata
    statuses = (pod.status.container_statuses if pod.status is not None else None) or []
    containers = (pod.spec.containers if pod.spec is not None else None) or []

    return PodObservation(
        identity=PodIdentity(uid=metadata.uid, name=metadata.name, namespace=metadata.namespace, context=context),
        labels=metadata.labels or {},
        annotations=metadata.annotations or {},
        state=PodState.from_phase(pod.status.phase if pod.status is not None else None),
        containers=tuple(container.name for container in containers),
        running_containers=tuple(
            status.name for status in statuses if status.state is not None and status.state.running is not None
        ),
        deleted=metadata.deletion_timestamp is not None,
    )


def iter_lines(response: Any) -> Iterator[str]:
    """Split a streamed HTTP response into text lines."""

    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    try:
        for chunk in response.stream(decode_content=True):
            buffer += decoder.decode(chunk)
            while "\n" in buffer:
                line, buffer = buffer.split("\n", 1)
                yield line.rstrip("\r")

        buffer += decoder.decode(b"", final=True)
        if buffer:
            yield buffer
    finally:
        response.release_conn()


def _read_service_account_namespace() -> str:
    try:
        with open(SERVICE_ACCOUNT_NAMESPACE_PATH) as namespace_file:
            return namespace_file.read().strip() or "default"
    except OSError:
        return "default"


class KubernetesConnection(BaseClusterConnection):
    def __init__(self, kubeconfig: Optional[str] = None) -> None:
        self.kubeconfig = kubeconfig
        self.inside_cluster = False
        self.__api_clients: dict[Optional[str], client.ApiClient] = {}

    def _build_api_client(self, context: Optional[str]) -> client.ApiClient:
        configuration = client.Configuration()
        if self.inside_cluster:
            config.load_incluster_config(client_configuration=configuration)
        else:
            config.load_kube_config(config_file=self.kubeconfig, context=context, client_configuration=configuration)
        configuration.connection_pool_maxsize = CONNECTION_POOL_MAXSIZE
        return client.ApiClient(configuration=configuration)

    def get_api_client(self, context: Optional[str]) -> client.ApiClient:
        if context not in self.__api_clients:
            self.__api_clients[context] = self._build_api_client(context)
        return self.__api_clients[context]

    def get_core(self, context: Optional[str]) -> client.CoreV1Api:
        return client.CoreV1Api(api_client=self.get_api_client(context))

    async def _list_in_cluster_scope(self, all_namespaces: bool) -> Scope:
        try:
            await asyncio.to_thread(config.load_incluster_config)
        except ConfigException as e:
            raise ClusterConnectionError(f"Could not load kubeconfig nor in-cluster config: {e}") from e

        self.inside_cluster = True
        namespace = await asyncio.to_thread(_read_service_account_namespace)
        await asyncio.to_thread(self.get_api_client, None)
        return Scope(context=None, namespace=namespace, all_namespaces=all_namespaces)

    async def list_scopes(self, all_contexts: bool, all_namespaces: bool) -> list[Scope]:
        try:
            contexts, active_context = await asyncio.to_thread(config.list_kube_config_contexts, self.kubeconfig)
        except ConfigException as e:
            logger.debug(f"No usable kubeconfig ({e}), trying in-cluster config")
            return [await self._list_in_cluster_scope(all_namespaces)]

        selected = contexts if all_contexts else [active_context]
        if not selected or selected[0] is None:
            raise ClusterConnectionError("No context found in kubeconfig")

        scopes = []
        for context in selected:
            name = context["name"]
            namespace = (context.get("context") or {}).get("namespace") or "default"
            try:
                await asyncio.to_thread(self.get_api_client, name)
            except Exception as e:
                raise ClusterConnectionError(f"Could not connect to context {name}: {e}") from e

            scopes.append(Scope(context=name, namespace=namespace, all_namespaces=all_namespaces))

        logger.debug(f"Scopes: {', '.join(str(scope) for scope in scopes)}")
        return scopes

    async def watch_pods(self, scope: Scope) -> AsyncIterator[PodEvent]:
        core = self.get_core(scope.context)
        pod_watch = watch.Watch()

        def open_stream():
            if scope.all_namespaces:
                return pod_watch.stream(core.list_pod_for_all_namespaces)
            return pod_watch.stream(core.list_namespaced_pod, namespace=scope.namespace)

        async for event in iterate_in_thread(open_stream, pod_watch.stop, name=f"watch {scope}"):
            if event["type"] == "ERROR":
                raw_object = event.get("raw_object") or {}
                raise WatchError(f"Pod watch on {scope} failed: {raw_object.get('message', raw_object)}")
            if event["type"] not in WATCHED_ACTIONS:
                continue

            yield PodEvent(action=event["type"], pod=to_observation(event["object"], scope.context))

    async def open_log_stream(self, pod: PodIdentity, container: Optional[str] = None) -> AsyncIterator[str]:
        core = self.get_core(pod.context)
        response = None
        closed = False
        lock = threading.Lock()

        def open_lines() -> Iterator[str]:
            nonlocal response
            opened = core.read_namespaced_pod_log(
                name=pod.name,
                namespace=pod.namespace,
                container=container,
                follow=True,
                _preload_content=False,
            )
            with lock:
                if closed:
                    # the consumer went away while the request was in flight
                    opened.close()
                    return iter(())
                response = opened
            return iter_lines(opened)

        def close() -> None:
            nonlocal closed
            with lock:
                closed = True
                if response is not None:
                    response.close()

        async for line in iterate_in_thread(open_lines, close, name=f"logs {pod}"):
            yield line


__all__ = ["KubernetesConnection", "to_observation", "iter_lines"]
