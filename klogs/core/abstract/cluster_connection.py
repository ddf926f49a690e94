from __future__ import annotations

import abc
from typing import AsyncIterator, Optional

from klogs.core.models.objects import PodEvent, PodIdentity, Scope


class BaseClusterConnection(abc.ABC):
    """
    A class that wraps everything klogs needs from a cluster.
    One connection can serve many scopes, for example every context of one kubeconfig.
    """

    @abc.abstractmethod
    async def list_scopes(self, all_contexts: bool, all_namespaces: bool) -> list[Scope]:
        """
        List the scopes to watch: the current context only, or every known context.
        Raise klogs.core.exceptions.ClusterConnectionError if the cluster can not be reached at all.
        """

        pass

    @abc.abstractmethod
    def watch_pods(self, scope: Scope) -> AsyncIterator[PodEvent]:
        """Subscribe to pod lifecycle events in the scope. Ends without error when the watch is closed."""

        pass

    @abc.abstractmethod
    def open_log_stream(self, pod: PodIdentity, container: Optional[str] = None) -> AsyncIterator[str]:
        """Follow the log of a pod, yielding lines without their trailing newline."""

        pass
