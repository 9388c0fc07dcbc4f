"""
Experimental control module for online clustering experiments.

This module provides utilities for running a stream of vectors from a file
through the online clustering engine and generating a report of the
surviving clusters.
"""

import os
import time
import numpy as np
from typing import List, Tuple, Optional, Dict, Any
import warnings
import xlsxwriter
from .plotting import plot_clusters
from .clusterer import read_vectors, perform_online_clustering
from ._kernel import DEFAULT_SIGMA
from ._vector_ops import vector_resize


def _to_matrix(labeled_vectors: List[Tuple[str, np.ndarray]]) -> np.ndarray:
    dim = max((vector.shape[0] for _, vector in labeled_vectors), default=0)
    return np.array([vector_resize(vector, dim) for _, vector in labeled_vectors]).reshape(len(labeled_vectors), dim)


def _normalize_data(labeled_vectors: List[Tuple[str, np.ndarray]]) -> List[Tuple[str, np.ndarray]]:
    """
    Compute the column-wise normalized version of the vectors such that
    y_i = (x_i - min(x)) / (max(x) - min(x))

    Short vectors are treated as zero-padded, which is how the engine sees
    them. Constant columns are mapped to zero.

    Parameters
    ----------
    labeled_vectors : List[Tuple[str, np.ndarray]]
        List of (label, vector) tuples

    Returns
    -------
    List[Tuple[str, np.ndarray]]
        List of (label, vector) tuples with the original vector lengths
    """
    if not labeled_vectors:
        return []

    data = _to_matrix(labeled_vectors)
    low = data.min(axis=0)
    span = data.max(axis=0) - low
    span[span == 0] = 1
    data = (data - low) / span

    return [(label, data[i, :vector.shape[0]]) for i, (label, vector) in enumerate(labeled_vectors)]


def _standardize_data(labeled_vectors: List[Tuple[str, np.ndarray]]) -> List[Tuple[str, np.ndarray]]:
    """
    Compute the column-wise standardized version of the vectors such that
    y_i = (x_i - mean(x)) / std(x)

    Parameters
    ----------
    labeled_vectors : List[Tuple[str, np.ndarray]]
        List of (label, vector) tuples

    Returns
    -------
    List[Tuple[str, np.ndarray]]
        List of (label, vector) tuples with the original vector lengths
    """
    if not labeled_vectors:
        return []

    data = _to_matrix(labeled_vectors)
    std = data.std(axis=0)
    std[std == 0] = 1
    data = (data - data.mean(axis=0)) / std

    return [(label, data[i, :vector.shape[0]]) for i, (label, vector) in enumerate(labeled_vectors)]


def experiment_controller(file_path: str, max_clusters: int = 10, sigma: float = DEFAULT_SIGMA, transform: str = 'original',
                        note: str = '', save_plots: bool = False, output_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Run an online clustering experiment on a file of vectors with reporting.

    The vectors are read with ``read_vectors``, optionally transformed, fed to
    the engine in file order, and summarized in an Excel report.

    Parameters
    ----------
    file_path : str
        Path to the input file containing the vectors. Supports .xlsx and .csv formats.
    max_clusters : int, default=10
        Maximum number of live clusters kept by the engine.
    sigma : float, default=1e-5
        Width of the Gaussian kernel.
    transform : str, default='original'
        Data transformation method applied before clustering:

        ``original``: No transformation applied

        ``normalize``: Column-wise min-max normalization to [0,1] range

        ``standardize``: Column-wise z-score standardization (mean=0, std=1)

    note : str, default=''
        Additional note to append to output filename for identification purposes.
    save_plots : bool, default=False
        Whether to generate and save a plot of the surviving cluster centers as a PNG file.
    output_dir : Optional[str], default=None
        Directory path to save output files. If None, creates 'output' directory
        in the current working directory. Directory will be created if it doesn't exist.

    Returns
    -------
    Dict[str, Any]
        - ``cluster_list``: Trimmed list of Cluster objects
        - ``engine``: The OnlineClusterEngine after the whole stream
        - ``num_points``: Number of vectors processed
        - ``num_merges``: Number of merges performed
        - ``num_clusters``: Number of trimmed clusters
        - ``run_time``: Clustering execution time in seconds
        - ``total_time``: Total experiment time including I/O in seconds
        - ``output_file``: Path to generated Excel report file
        - ``plot_file``: Path to generated plot file (if save_plots=True)
    """
    very_begin_time = time.time()

    if transform not in ('original', 'normalize', 'standardize'):
        raise ValueError(f'Unknown transform: {transform}')

    labeled_vectors = read_vectors(file_path)

    if transform == 'normalize':
        labeled_vectors = _normalize_data(labeled_vectors)
    if transform == 'standardize':
        labeled_vectors = _standardize_data(labeled_vectors)

    begin_time = time.time()
    try:
        engine, cluster_list = perform_online_clustering([vector for _, vector in labeled_vectors], max_clusters, sigma=sigma)
    except ValueError:
        raise
    except Exception as e:
        raise RuntimeError(f"Clustering failed: {e}") from e
    run_time = time.time() - begin_time

    outputFileName = f'online-{max_clusters}-{transform}-{note}.xlsx'

    if output_dir is None:
        output_dir = os.path.join(os.getcwd(), 'output')

    os.makedirs(output_dir, exist_ok=True)

    output_file_path = os.path.join(output_dir, outputFileName)
    plot_file_path = None

    # Generate Excel report
    try:
        w = xlsxwriter.Workbook(output_file_path)
        ws = w.add_worksheet('results')
        ws.set_column('A:A', 20)
        ws.set_column('B:B', 14)

        ws.write(0, 0, 'File Path:')
        ws.write(0, 1, file_path)
        ws.write(1, 0, 'Max clusters')
        ws.write(1, 1, max_clusters)
        ws.write(2, 0, 'Sigma')
        ws.write(2, 1, sigma)
        ws.write(3, 0, 'Transformation')
        ws.write(3, 1, transform)
        ws.write(4, 0, "Time:")
        ws.write(4, 1, time.strftime("%H:%M %d/%m/%Y"))
        ws.write(5, 0, 'Run Time')
        ws.write(5, 1, run_time)
        ws.write(6, 0, 'Points processed')
        ws.write(6, 1, engine.n_points)
        ws.write(7, 0, 'Merges')
        ws.write(7, 1, engine.n_merges)
        ws.write(8, 0, 'Live clusters')
        ws.write(8, 1, len(engine))
        ws.write(9, 0, 'Trimmed clusters')
        ws.write(9, 1, len(cluster_list))

        # one row per trimmed cluster
        start_row = 11
        ws.write(start_row, 0, 'Cluster')
        ws.write(start_row, 1, 'Weight')
        for k in range(engine.num_dimensions):
            ws.write(start_row, 2 + k, f'x{k}')

        for i, each_cluster in enumerate(cluster_list):
            ws.write(start_row + 1 + i, 0, i + 1)
            ws.write(start_row + 1 + i, 1, each_cluster.weight)
            for k, value in enumerate(each_cluster.center):
                ws.write(start_row + 1 + i, 2 + k, float(value))

        w.close()
        print(f"Excel report saved to: {output_file_path}")

    except Exception as e:
        warnings.warn(f"Failed to generate Excel report: {e}")
        output_file_path = None

    if save_plots:
        try:
            plot_base_name = os.path.splitext(outputFileName)[0]
            plot_file_path = os.path.join(output_dir, plot_base_name)
            plot_clusters(cluster_list, f'online clustering, N={max_clusters}', mode='save', fname=plot_file_path)
            plot_file_path = plot_file_path + '.png'
            print(f"Cluster plot saved to: {plot_file_path}")
        except Exception as e:
            warnings.warn(f"Failed to generate plots: {e}")
            plot_file_path = None

    very_end_time = time.time()
    total_time = very_end_time - very_begin_time
    print(f'Total experiment time: {total_time:.2f} seconds')

    results = {
        'cluster_list': cluster_list,
        'engine': engine,
        'num_points': engine.n_points,
        'num_merges': engine.n_merges,
        'num_clusters': len(cluster_list),
        'run_time': run_time,
        'total_time': total_time,
        'output_file': output_file_path,
        'plot_file': plot_file_path
    }

    return results
