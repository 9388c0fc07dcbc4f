"""
Plotting utilities for online clustering results.

This module provides functions for visualizing the cluster centers kept by the
online clustering engine using matplotlib.
"""
import matplotlib.pyplot as plt
import numpy as np
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from .clusterer import Cluster


def plot_clusters(cluster_list: List["Cluster"], title: str = 'online clustering', mode: str = 'show', fname: str = 'results') -> None:
    """
    Plot cluster centers as a scatter plot with marker areas proportional to weight.

    The first two center components are used as coordinates. One-dimensional
    centers are drawn along the x axis.

    Parameters
    ----------
    cluster_list : List[Cluster]
        List of Cluster objects, e.g. the result of ``OnlineClusterEngine.trimmed_clusters``.
    title : str, default='online clustering'
        Window and axes title.
    mode : str, default='show'
        Display mode for the plot:

        - 'show': Display the plot interactively using matplotlib.pyplot.show()
        - 'save': Save the plot to a PNG file without displaying it

    fname : str, default='results'
        Base filename for saving the plot (without extension). Only used when
        mode='save'. The file will be saved as '{fname}.png'.
    """
    if mode not in ('show', 'save'):
        raise ValueError(f"Unknown plot mode: {mode}")

    main_fig = plt.figure(figsize=(8, 8))
    main_fig.canvas.manager.set_window_title(title)
    sub_plot = main_fig.add_subplot(1, 1, 1)

    if cluster_list:
        x = np.array([clust.center[0] if clust.center.shape[0] > 0 else 0.0 for clust in cluster_list])
        y = np.array([clust.center[1] if clust.center.shape[0] > 1 else 0.0 for clust in cluster_list])
        weights = np.array([clust.weight for clust in cluster_list])

        sub_plot.scatter(x, y, s=100 * weights / weights.max(), alpha=0.6, edgecolors='k')

        for i, clust in enumerate(cluster_list):
            sub_plot.annotate(f'{clust.weight:.2f}', (x[i], y[i]), textcoords='offset points', xytext=(5, 5))

    sub_plot.set_xlabel('x0')
    sub_plot.set_ylabel('x1')
    plt.title(title + f' ({len(cluster_list)} clusters)', weight='bold')

    plt.tight_layout()
    if mode == 'show':
        plt.show()
    elif mode == 'save':
        plt.savefig('{0}.png'.format(fname))
        plt.close(main_fig)
