"""Cluster access for the pod collector.

Owns the kubeconfig / in-cluster connection and the two pod reads the
synchronizer consumes: a point-in-time listing and the watch event stream.
Both read either one namespace or the whole cluster.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from kubernetes import client, config, watch
from kubernetes.config.config_exception import ConfigException


class K8sClient:
    """Connection to one cluster context, scoped to the pod API."""

    def __init__(self, kubeconfig: str | None = None, context: str | None = None):
        self.kubeconfig = kubeconfig
        self.context = context
        self._core: client.CoreV1Api | None = None
        self.in_cluster = False

    def connect(self) -> None:
        """Load kubeconfig, or the pod's service account when running in-cluster."""
        try:
            config.load_kube_config(config_file=self.kubeconfig, context=self.context)
        except ConfigException:
            config.load_incluster_config()
            self.in_cluster = True
        self._core = client.CoreV1Api(client.ApiClient())

    @property
    def core_v1(self) -> client.CoreV1Api:
        if self._core is None:
            raise RuntimeError("K8sClient not connected. Call connect() first.")
        return self._core

    # --------------------------------------------------------
    # Pod reads
    # --------------------------------------------------------

    def pod_list_call(self, namespace: str | None = None) -> tuple[Callable[..., Any], dict[str, Any]]:
        """The list function and arguments covering ``namespace`` (all when None)."""
        if namespace:
            return self.core_v1.list_namespaced_pod, {"namespace": namespace}
        return self.core_v1.list_pod_for_all_namespaces, {}

    def list_pods(self, namespace: str | None = None) -> Any:
        """One listing of the pods currently in scope. Raises ApiException."""
        func, kwargs = self.pod_list_call(namespace)
        return func(**kwargs)

    def watch_pods(
        self,
        namespace: str | None = None,
        timeout_seconds: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield raw watch events (``type`` and ``object``) until the stream ends.

        Raises ApiException on a rejected request or an ERROR event (e.g. 410
        Gone after the resource version expired).
        """
        func, kwargs = self.pod_list_call(namespace)
        if timeout_seconds is not None:
            kwargs["timeout_seconds"] = timeout_seconds
        w = watch.Watch()
        try:
            yield from w.stream(func, **kwargs)
        finally:
            w.stop()

    # --------------------------------------------------------
    # Naming
    # --------------------------------------------------------

    def get_cluster_name(self) -> str:
        """Cluster of the active kubeconfig context."""
        active = self._active_context()
        return active.get("context", {}).get("cluster", "unknown") if active else "in-cluster"

    def get_context_name(self) -> str:
        active = self._active_context()
        return active.get("name", "unknown") if active else "in-cluster"

    def _active_context(self) -> dict[str, Any] | None:
        if self.in_cluster:
            return None
        try:
            contexts, current = config.list_kube_config_contexts(config_file=self.kubeconfig)
        except ConfigException:
            return None
        if self.context:
            return next((c for c in contexts if c.get("name") == self.context), current)
        return current
