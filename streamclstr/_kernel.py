import math
import numpy as np
from numba import njit
from typing import Callable
from ._vector_ops import vector_subtract, vector_magnitude

DEFAULT_SIGMA = 0.00001


def gaussian_kernel(x: np.ndarray, y: np.ndarray, sigma: float = DEFAULT_SIGMA) -> float:
    """
    Gaussian similarity between two vectors, ``exp(-sigma * ||x - y||^2)``.

    Parameters
    ----------
    x : np.ndarray
        First vector.
    y : np.ndarray
        Second vector, same length as ``x``.
    sigma : float, default=1e-5
        Kernel width. The small default keeps distinct points resolvably
        similar instead of collapsing their similarity to 0 or 1.

    Returns
    -------
    float
        Similarity in (0, 1].
    """
    l = vector_magnitude(vector_subtract(x, y))
    return math.exp(-sigma * (l * l))


def normalized_kernel(kernel: Callable[[np.ndarray, np.ndarray], float]) -> Callable[[np.ndarray, np.ndarray], float]:
    """
    Wrap a symmetric positive kernel ``k`` into
    ``k(x, y) / sqrt(k(x, x) + k(y, y))``.

    Parameters
    ----------
    kernel : Callable
        Kernel taking two vectors and returning a similarity.

    Returns
    -------
    Callable
        The normalized kernel.
    """
    def _normalized(x: np.ndarray, y: np.ndarray) -> float:
        return kernel(x, y) / math.sqrt(kernel(x, x) + kernel(y, y))

    return _normalized


def kernel_distance(x: np.ndarray, y: np.ndarray, kernel: Callable[[np.ndarray, np.ndarray], float]) -> float:
    """
    Kernel-induced distance ``2 - 2 * kernel(x, y)``.

    This is the general form ``k(x, x) - 2k(x, y) + k(y, y)`` with the
    self-similarity terms fixed at 1, which only holds for Gaussian kernels.
    The self terms are not evaluated with ``kernel``, so with the normalized
    Gaussian the distance of a vector to itself is ``2 - sqrt(2)``.
    """
    return 2 - 2 * kernel(x, y)


@njit
def compute_kernel_distances(centers: np.ndarray, sigma: float) -> np.ndarray:
    """
    Compute normalized-Gaussian kernel distances between all pairs of rows
    using Numba for performance.

    Parameters
    ----------
    centers : np.ndarray
        2D array of shape (n_clusters, n_dimensions).
    sigma : float
        Gaussian kernel width.

    Returns
    -------
    np.ndarray
        Condensed distance matrix as 1D array of length n * (n - 1) / 2, in the
        same order as ``scipy.spatial.distance.pdist``.
    """
    n = centers.shape[0]
    dRow = np.zeros(n * (n - 1) // 2)
    # k(x, x) == 1 for the Gaussian kernel, so the normalizer is sqrt(2)
    norm = np.sqrt(2.0)

    index = -1
    for i in range(n):
        for j in range(i + 1, n):
            index += 1
            squared = 0.0
            for k in range(centers.shape[1]):
                diff = centers[i, k] - centers[j, k]
                squared += diff * diff
            dRow[index] = 2 - 2 * (np.exp(-sigma * squared) / norm)

    return dRow
