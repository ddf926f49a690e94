from __future__ import annotations

import enum
from typing import Literal, Optional

import pydantic as pd

ActionLiteral = Literal["ADDED", "MODIFIED", "DELETED"]

DEFAULT_CONTAINER_ANNOTATION = "kubectl.kubernetes.io/default-container"


class PodState(str, enum.Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    TERMINATED = "Terminated"
    UNKNOWN = "Unknown"

    @classmethod
    def from_phase(cls, phase: Optional[str]) -> PodState:
        if phase == "Pending":
            return cls.PENDING
        if phase == "Running":
            return cls.RUNNING
        if phase in ("Succeeded", "Failed"):
            return cls.TERMINATED
        return cls.UNKNOWN


class PodIdentity(pd.BaseModel):
    model_config = pd.ConfigDict(frozen=True)

    uid: str
    name: str
    namespace: str
    # NOTE: Here None means that we are running inside the cluster
    context: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.context or 'in-cluster'}/{self.namespace}/{self.name}"


class PodObservation(pd.BaseModel):
    """A snapshot of a pod as seen by one discovery event."""

    model_config = pd.ConfigDict(frozen=True)

    identity: PodIdentity
    labels: dict[str, str] = {}
    annotations: dict[str, str] = {}
    state: PodState = PodState.UNKNOWN
    containers: tuple[str, ...] = ()
    running_containers: tuple[str, ...] = ()
    deleted: bool = False

    @property
    def is_loggable(self) -> bool:
        return self.state == PodState.RUNNING and len(self.running_containers) > 0 and not self.deleted

    @property
    def default_container(self) -> Optional[str]:
        annotated = self.annotations.get(DEFAULT_CONTAINER_ANNOTATION)
        if annotated:
            return annotated
        return self.containers[0] if self.containers else None


class PodEvent(pd.BaseModel):
    model_config = pd.ConfigDict(frozen=True)

    action: ActionLiteral
    pod: PodObservation


class Scope(pd.BaseModel):
    """A (context, namespace-or-all) pair over which pods are watched."""

    model_config = pd.ConfigDict(frozen=True)

    context: Optional[str] = None
    namespace: str = "default"
    all_namespaces: bool = False

    def __str__(self) -> str:
        namespace = "*" if self.all_namespaces else self.namespace
        return f"{self.context or 'in-cluster'}/{namespace}"

    def prefixes(self, pod: PodIdentity, *, all_contexts: bool) -> list[str]:
        """Scope labels shown before the pod name.

        When every namespace is watched the pod's own namespace is shown,
        the context is shown only when several contexts are watched.
        """

        result = []
        if all_contexts:
            result.append(self.context or "in-cluster")
        if self.all_namespaces:
            result.append(pod.namespace)
        return result
