from __future__ import annotations

from typing import Optional

import pydantic as pd

from klogs.core.models.objects import PodObservation


class PodFilter(pd.BaseModel):
    """User supplied pod selection criteria, built once at startup."""

    model_config = pd.ConfigDict(frozen=True)

    name: Optional[str] = None
    labels: tuple[str, ...] = ()
    all_namespaces: bool = False
    all_contexts: bool = False


def matches_name(observation: PodObservation, name: Optional[str]) -> bool:
    if not name:
        return True

    return name.lower() in observation.identity.name.lower()


def matches_labels(observation: PodObservation, labels: tuple[str, ...]) -> bool:
    """Every token must equal some label key or some label value of the pod."""

    if not labels:
        return True

    return all(
        any(key == token or value == token for key, value in observation.labels.items()) for token in labels
    )


def matches(observation: PodObservation, pod_filter: PodFilter) -> bool:
    return (
        observation.is_loggable
        and matches_name(observation, pod_filter.name)
        and matches_labels(observation, pod_filter.labels)
    )
