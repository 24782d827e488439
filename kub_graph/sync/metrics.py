"""Resource metric parsing and rollup."""

from __future__ import annotations

from typing import Any, Iterable

from kub_graph.models import Metrics


def aggregate_metrics(metrics: Iterable[Metrics]) -> Metrics:
    """Componentwise sum of container metrics into one pod-level value.

    Trusts the set it is handed: missing containers simply don't contribute.
    """
    cpu_request = cpu_limit = memory_request = memory_limit = 0.0
    for m in metrics:
        cpu_request += m.cpu_request
        cpu_limit += m.cpu_limit
        memory_request += m.memory_request
        memory_limit += m.memory_limit
    return Metrics(
        cpu_request=cpu_request,
        cpu_limit=cpu_limit,
        memory_request=memory_request,
        memory_limit=memory_limit,
    )


def container_metrics(container: Any) -> Metrics:
    """Read requests and limits off a K8s container spec."""
    resources = container.resources
    requests = (resources.requests if resources else None) or {}
    limits = (resources.limits if resources else None) or {}
    return Metrics(
        cpu_request=parse_cpu(requests.get("cpu", "0")),
        cpu_limit=parse_cpu(limits.get("cpu", "0")),
        memory_request=parse_memory(requests.get("memory", "0")),
        memory_limit=parse_memory(limits.get("memory", "0")),
    )


def parse_cpu(val: str | int | float) -> float:
    """Parse K8s CPU value to cores (float)."""
    s = str(val)
    if s.endswith("m"):
        return float(s[:-1]) / 1000
    if s.endswith("n"):
        return float(s[:-1]) / 1_000_000_000
    return float(s)


def parse_memory(val: str | int | float) -> float:
    """Parse K8s memory or storage value to bytes (float)."""
    s = str(val)
    suffixes = {
        "Ki": 1024,
        "Mi": 1024**2,
        "Gi": 1024**3,
        "Ti": 1024**4,
        "Pi": 1024**5,
        "Ei": 1024**6,
        "K": 1000,
        "M": 1000**2,
        "G": 1000**3,
        "T": 1000**4,
        "P": 1000**5,
        "E": 1000**6,
        "k": 1000,
        "m": 0.001,  # millibytes (edge case)
    }
    for suffix, multiplier in sorted(suffixes.items(), key=lambda x: -len(x[0])):
        if s.endswith(suffix):
            return float(s[: -len(suffix)]) * multiplier
    return float(s)
