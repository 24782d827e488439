"""kub-graph: keep a persistent graph of Kubernetes workloads in sync with the cluster."""

__version__ = "0.1.0"
