"""
Bounded-memory online clustering module.

This module provides the online clustering engine, which keeps at most N
weighted cluster centers for an unbounded stream of numeric vectors, together
with methods for importing vectors and post-processing the surviving
clusters.
"""

import numpy as np
from scipy.spatial.distance import squareform
import os
import bisect
import warnings
import pandas as pd
from dataclasses import dataclass, field
from typing import List, Tuple, Callable, Sequence, Union
from ._vector_ops import vector_add, vector_subtract, vector_scale, vector_divide, vector_resize
from ._kernel import DEFAULT_SIGMA, gaussian_kernel, normalized_kernel, kernel_distance, compute_kernel_distances


def read_vectors(file_path: str) -> List[Tuple[str, np.ndarray]]:
    """
    Import a stream of vectors from .xlsx or .csv files.

    The data file must have the following structure:

    **For Excel files (.xlsx):**

    Sheet 'data': Column A contains labels for each vector, Column B onwards contains the vector components

    **For CSV files (.csv):**

    Column A: Labels for each vector (e.g., "t=0", "Sensor A", "Event 17")

    Column B onwards: Vector components

    Row 1 is a header row and must name as many columns as the longest vector.
    Rows are returned in file order, which is the order they are fed to the
    engine. Vectors may grow in length along the file: trailing empty cells
    are dropped, so a row may be shorter than the header.

    Example data structure:

    +---------+---------+---------+---------+
    | Label   | x0      | x1      | x2      |
    +=========+=========+=========+=========+
    | t=0     | 0.5     | 1.3     |         |
    +---------+---------+---------+---------+
    | t=1     | 0.7     | 1.1     |         |
    +---------+---------+---------+---------+
    | t=2     | 9.8     | 11.9    | 4.5     |
    +---------+---------+---------+---------+

    Parameters
    ----------
    ``file_path`` : str
        Path to the .xlsx or .csv file (can be relative or absolute path).

    Returns
    -------
    List[Tuple[str, np.ndarray]]
        List of (label, vector) tuples.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Could not find file: {file_path}")

    file_extension = os.path.splitext(file_path)[1].lower()

    if file_extension not in ['.xlsx', '.csv']:
        raise ValueError("File must have .xlsx or .csv extension")

    if file_extension == '.xlsx':
        df_data = pd.read_excel(file_path, sheet_name='data')
    else:  # .csv
        df_data = pd.read_csv(file_path)

    labeled_vectors = []

    for row in df_data.values.tolist():
        label = str(row[0])
        values = np.array(row[1:], dtype=float)

        present = np.flatnonzero(~np.isnan(values))
        values = values[:present[-1] + 1] if present.size else values[:0]

        if np.isnan(values).any():
            raise ValueError(f"Vector '{label}' has an empty cell before its last component")

        labeled_vectors.append((label, values))

    return labeled_vectors


def perform_online_clustering(vectors: Sequence[Sequence[float]], max_clusters: int, sigma: float = DEFAULT_SIGMA,
            trim: bool = True) -> Tuple['OnlineClusterEngine', List['Cluster']]:
    """
    Feed a sequence of vectors, in order, into a fresh online clustering engine.

    Parameters
    ----------
    ``vectors`` : Sequence[Sequence[float]]
        Vectors to cluster. They are processed strictly in sequence order.
    ``max_clusters`` : int
        Maximum number of live clusters kept by the engine.
    ``sigma`` : float, default=1e-5
        Width of the Gaussian kernel.
    ``trim`` : bool, default=True
        If True, return only the clusters that survive the weight threshold of
        ``OnlineClusterEngine.trimmed_clusters``; otherwise return every live
        cluster.

    Returns
    -------
    Tuple[OnlineClusterEngine, List[Cluster]]
        Tuple of (engine, cluster_list).
    """
    engine = OnlineClusterEngine(max_clusters, sigma=sigma)

    for vector in vectors:
        engine.cluster(vector)

    cluster_list = engine.trimmed_clusters() if trim else list(engine.clusters)

    return engine, cluster_list


def clusters_to_frame(cluster_list: List['Cluster']) -> pd.DataFrame:
    """
    Tabulate clusters as a DataFrame with a ``weight`` column followed by one
    ``x<i>`` column per center component.
    """
    if not cluster_list:
        return pd.DataFrame(columns=['weight'])

    dim = max(each_cluster.center.shape[0] for each_cluster in cluster_list)
    centers = np.array([vector_resize(each_cluster.center, dim) for each_cluster in cluster_list])

    df = pd.DataFrame(centers, columns=[f'x{i}' for i in range(dim)])
    df.insert(0, 'weight', [each_cluster.weight for each_cluster in cluster_list])
    return df


@dataclass(eq=False)
class Cluster:
    """
    A single incrementally updated weighted centroid.

    Attributes
    ----------
    center : np.ndarray
        Current centroid estimate.
    kernel : Callable
        Normalized kernel used to weigh incoming points.
    weight : float
        Accumulated kernel-weighted mass absorbed by the cluster. This is not
        a point count.
    """

    center: np.ndarray
    kernel: Callable[[np.ndarray, np.ndarray], float] = field(repr=False)
    weight: float = field(init=False)

    def __post_init__(self):
        self.center = np.array(self.center, dtype=float)
        # a zero starting weight would make the first add divide by zero
        self.weight = self.kernel(self.center, self.center)

    def add(self, point: np.ndarray) -> None:
        """Move the center towards ``point`` by a step of ``1 / weight``."""
        point = np.asarray(point, dtype=float)
        self.weight += self.kernel(self.center, point)
        self.center = vector_add(self.center, vector_divide(vector_subtract(point, self.center), self.weight))

    def merge(self, other: 'Cluster') -> None:
        """
        Absorb ``other`` into this cluster.

        The center becomes the weight-weighted average of both centers and the
        weights are summed. ``other`` itself is left untouched.
        """
        total_weight = self.weight + other.weight
        self.center = vector_divide(vector_add(vector_scale(self.center, self.weight),
                                               vector_scale(other.center, other.weight)), total_weight)
        self.weight = total_weight

    def resize(self, dim: int) -> None:
        self.center = vector_resize(self.center, dim)


@dataclass(frozen=True, order=True)
class ClusterDistance:
    """
    Cached kernel distance between two clusters.

    Entries order by ``distance`` only. ``cluster1`` absorbs ``cluster2`` when
    the pair is merged.
    """

    distance: float
    cluster1: Cluster = field(compare=False)
    cluster2: Cluster = field(compare=False)


class OnlineClusterEngine:
    """
    Online kernel clustering with a fixed budget of clusters.

    Each incoming point is added to its nearest cluster and then gets a
    singleton cluster of its own. Whenever the budget is reached the two
    closest clusters are merged first, so at most ``max_clusters`` clusters
    are live between calls.

    Parameters
    ----------
    max_clusters : int
        Maximum number of live clusters. Must be a positive integer.
    sigma : float, default=1e-5
        Width of the Gaussian kernel. Must be positive.

    Attributes
    ----------
    clusters : List[Cluster]
        Live clusters in creation order. Ties in nearest-cluster search go to
        the cluster that comes first in this list.
    distances : List[ClusterDistance]
        One cached distance per unordered pair of live clusters, sorted
        ascending. Entries with equal distances keep their insertion order.
    num_dimensions : int
        Largest vector length seen so far.
    n_points : int
        Number of points processed.
    n_merges : int
        Number of merges performed.
    """

    def __init__(self, max_clusters: int, sigma: float = DEFAULT_SIGMA):
        if isinstance(max_clusters, bool) or not isinstance(max_clusters, (int, np.integer)) or max_clusters <= 0:
            raise ValueError(f"max_clusters must be a positive integer, got {max_clusters!r}")
        if not sigma > 0:
            raise ValueError(f"sigma must be positive, got {sigma!r}")

        self.max_clusters = int(max_clusters)
        self.sigma = sigma
        self.kernel = normalized_kernel(lambda x, y: gaussian_kernel(x, y, sigma=sigma))

        self.clusters: List[Cluster] = []
        self.distances: List[ClusterDistance] = []
        self.num_dimensions = 0
        self.n_points = 0
        self.n_merges = 0

    def __len__(self) -> int:
        return len(self.clusters)

    def resize(self, num_dimensions: int) -> None:
        for each_cluster in self.clusters:
            each_cluster.resize(num_dimensions)
        self.num_dimensions = num_dimensions

    def cluster(self, point: Union[Sequence[float], np.ndarray]) -> None:
        """
        Incorporate one point from the stream.

        Vectors longer than any seen before zero-pad every existing center.
        Shorter vectors are zero-padded themselves, with a warning.

        Parameters
        ----------
        point : Union[Sequence[float], np.ndarray]
            One-dimensional vector of real numbers.
        """
        point = np.array(point, dtype=float)
        if point.ndim != 1:
            raise ValueError(f"Points must be one-dimensional vectors, got shape {point.shape}")
        if not np.isfinite(point).all():
            raise ValueError(f"Points must have finite components, got {point.tolist()}")

        if point.shape[0] > self.num_dimensions:
            self.resize(point.shape[0])
        elif point.shape[0] < self.num_dimensions:
            warnings.warn(f"Point of length {point.shape[0]} is shorter than the {self.num_dimensions} "
                          f"dimensions seen so far and was padded with zeros.", stacklevel=2)
            point = vector_resize(point, self.num_dimensions)

        if self.clusters:
            closest = min(self.clusters, key=lambda x: kernel_distance(x.center, point, self.kernel))
            closest.add(point)
            self._update_distances(closest)

        if len(self.clusters) >= self.max_clusters and self.distances:
            # merge the closest two clusters
            d = self.distances.pop(0)
            d.cluster1.merge(d.cluster2)
            self.clusters = [x for x in self.clusters if x is not d.cluster2]
            self._remove_distances(d.cluster2)
            self._update_distances(d.cluster1)
            self.n_merges += 1

        # with a budget of one the point was already absorbed above
        if self.max_clusters > 1 or not self.clusters:
            new_cluster = Cluster(point, self.kernel)
            self.clusters.append(new_cluster)
            self._update_distances(new_cluster)

        self.n_points += 1

    def _remove_distances(self, changed: Cluster) -> None:
        self.distances = [d for d in self.distances if d.cluster1 is not changed and d.cluster2 is not changed]

    def _update_distances(self, changed: Cluster) -> None:
        self._remove_distances(changed)
        for x in self.clusters:
            if x is not changed:
                d = kernel_distance(x.center, changed.center, self.kernel)
                bisect.insort(self.distances, ClusterDistance(d, x, changed))

    def trimmed_clusters(self) -> List[Cluster]:
        """
        Return the clusters whose weight is at least a tenth of the mean weight.

        The mean is taken over clusters with positive weight. This is a noise
        heuristic and may keep none, some, or all of the clusters.

        Returns
        -------
        List[Cluster]
            Surviving clusters in creation order.
        """
        positive_weights = [x.weight for x in self.clusters if x.weight > 0]
        if not positive_weights:
            return []

        threshold = np.mean(positive_weights) * 0.1
        return [x for x in self.clusters if x.weight >= threshold]

    def centers(self) -> np.ndarray:
        """Current centers as an array of shape (n_clusters, num_dimensions)."""
        if not self.clusters:
            return np.zeros((0, self.num_dimensions))
        return np.array([x.center for x in self.clusters])

    def weights(self) -> np.ndarray:
        return np.array([x.weight for x in self.clusters], dtype=float)

    def distance_matrix(self, square: bool = False) -> np.ndarray:
        """
        Kernel distances between all live cluster centers.

        Parameters
        ----------
        square : bool, default=False
            If True, return the square (n_clusters, n_clusters) form instead
            of the condensed one.

        Returns
        -------
        np.ndarray
            Condensed distance matrix in ``scipy.spatial.distance.pdist``
            order, or its square form.
        """
        dRow = compute_kernel_distances(self.centers(), float(self.sigma))
        if not square:
            return dRow
        if len(self.clusters) < 2:
            return np.zeros((len(self.clusters), len(self.clusters)))
        return squareform(dRow, checks=False)
