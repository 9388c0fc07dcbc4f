import numpy as np


def _check_same_length(x: np.ndarray, y: np.ndarray) -> None:
    if x.shape[0] != y.shape[0]:
        raise ValueError(f"Vectors must have equal length, got {x.shape[0]} and {y.shape[0]}. "
                         f"Resize the shorter vector first.")


def vector_add(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Elementwise sum of two equal-length vectors."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    _check_same_length(x, y)
    return x + y


def vector_subtract(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Elementwise difference ``x - y`` of two equal-length vectors."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    _check_same_length(x, y)
    return x - y


def vector_scale(x: np.ndarray, c: float) -> np.ndarray:
    return np.asarray(x, dtype=float) * c


def vector_divide(x: np.ndarray, c: float) -> np.ndarray:
    """
    Divide every element of a vector by a scalar.

    Parameters
    ----------
    x : np.ndarray
        Vector to divide.
    c : float
        Divisor.

    Returns
    -------
    np.ndarray
        ``x / c``.

    Raises
    ------
    ZeroDivisionError
        If ``c`` is zero. Cluster centers are divided by their weights, so a
        zero divisor means a cluster weight invariant was broken.
    """
    if c == 0:
        raise ZeroDivisionError("Cannot divide a vector by zero")
    return vector_scale(x, 1.0 / c)


def vector_magnitude(x: np.ndarray) -> float:
    """Euclidean (L2) norm of a vector."""
    x = np.asarray(x, dtype=float)
    return float(np.sqrt(np.sum(x * x)))


def vector_resize(x: np.ndarray, dim: int) -> np.ndarray:
    """
    Pad a vector with trailing zeros up to ``dim`` elements.

    Vectors that already have ``dim`` or more elements are returned unchanged;
    this never truncates.
    """
    x = np.asarray(x, dtype=float)
    to_add = dim - x.shape[0]
    if to_add <= 0:
        return x
    return np.concatenate([x, np.zeros(to_add)])
