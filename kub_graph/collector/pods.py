"""Pod collection from the cluster.

Supplies observed pod objects to the synchronization engine, either as one
listing of the current state or as a stream that follows the watch API.
API failures are logged and end the collection; they never reach the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterator

from kubernetes.client.rest import ApiException

from kub_graph.k8s_client import K8sClient

logger = logging.getLogger(__name__)


def _safe_list(func: Any, *args: Any, **kwargs: Any) -> list[Any]:
    """Call a K8s list API and return .items, swallowing 403/404 errors."""
    try:
        result = func(*args, **kwargs)
        return result.items if hasattr(result, "items") else []
    except Exception as exc:
        # Forbidden (RBAC), NotFound, or API group not available
        logger.warning("API call %s failed: %s", func.__name__, exc)
        return []


def list_pods(
    k8s: K8sClient,
    namespace: str | None = None,
    skip_namespaces: list[str] | None = None,
) -> list[Any]:
    """List the pods currently in the cluster (or one namespace)."""
    skip = set(skip_namespaces or [])
    return [p for p in _safe_list(k8s.list_pods, namespace) if p.metadata.namespace not in skip]


def watch_pods(
    k8s: K8sClient,
    namespace: str | None = None,
    skip_namespaces: list[str] | None = None,
    timeout_seconds: int | None = None,
) -> Iterator[Any]:
    """Yield pods as the watch API reports them added, modified or deleted.

    A DELETED event without a deletion timestamp (e.g. a force delete) is
    stamped with the event's own observation so the pod is still ended. The
    stream stops quietly when the API rejects or aborts the watch.
    """
    skip = set(skip_namespaces or [])
    try:
        for event in k8s.watch_pods(namespace, timeout_seconds=timeout_seconds):
            pod = event["object"]
            if pod.metadata.namespace in skip:
                continue
            if event["type"] == "DELETED" and not pod.metadata.deletion_timestamp:
                pod.metadata.deletion_timestamp = datetime.now(timezone.utc)
            logger.debug("%s pod %s/%s", event["type"], pod.metadata.namespace, pod.metadata.name)
            yield pod
    except ApiException as exc:
        logger.warning("Pod watch stopped: (%s) %s", exc.status, exc.reason)
