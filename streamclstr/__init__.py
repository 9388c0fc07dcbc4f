"""
Top-level for streamclstr clustering package.

This package provides bounded-memory online clustering for streams of numeric vectors.
End users should use the main entry points: OnlineClusterEngine, read_vectors, perform_online_clustering, and related utilities.
"""

from .clusterer import (
    read_vectors,
    perform_online_clustering,
    clusters_to_frame,
    Cluster,
    ClusterDistance,
    OnlineClusterEngine
)

from ._kernel import (
    gaussian_kernel,
    normalized_kernel,
    kernel_distance
)

from .plotting import (
    plot_clusters
)

from .experiment_controller import (
    experiment_controller
)

__all__ = [
    "read_vectors",
    "perform_online_clustering",
    "clusters_to_frame",
    "Cluster",
    "ClusterDistance",
    "OnlineClusterEngine",
    "gaussian_kernel",
    "normalized_kernel",
    "kernel_distance",
    "plot_clusters",
    "experiment_controller"
]

__version__ = "0.1.0"
