"""Drives observed pods through the lifecycle manager, one at a time."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable

from kub_graph.errors import KubGraphError
from kub_graph.models import SyncSummary, pod_xid
from kub_graph.sync.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)


def run_sync(
    manager: LifecycleManager,
    pods: Iterable[Any],
    on_pod: Callable[[Any], None] | None = None,
) -> SyncSummary:
    """Synchronize every pod, logging failures and carrying on with the rest."""
    summary = SyncSummary()
    t0 = time.time()

    for pod in pods:
        xid = pod_xid(pod.metadata.namespace, pod.metadata.name)
        try:
            manager.store(pod)
        except KubGraphError as exc:
            logger.error("Failed to sync pod %s: %s", xid, exc)
            summary.failures.append((xid, str(exc)))
        except Exception as exc:
            logger.exception("Unexpected error while syncing pod %s", xid)
            summary.failures.append((xid, f"{type(exc).__name__}: {exc}"))
        else:
            if pod.metadata.deletion_timestamp:
                summary.terminated += 1
            else:
                summary.synced += 1
        if on_pod:
            on_pod(pod)

    summary.duration_ms = (time.time() - t0) * 1000
    return summary
