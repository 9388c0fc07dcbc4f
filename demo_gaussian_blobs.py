from __future__ import annotations

import random
from streamclstr import OnlineClusterEngine, plot_clusters


def _generate_blob_stream(centers: list[list[float]], n: int, noise: float) -> list[list[float]]:
    stream: list[list[float]] = []
    for _ in range(n):
        center = random.choice(centers)
        stream.append([x + random.gauss(0.0, noise) for x in center])
    return stream


def demo() -> None:
    # Three well separated blobs, fed to the engine one point at a time
    stream = _generate_blob_stream([[0.0, 0.0], [300.0, 0.0], [150.0, 250.0]], n=500, noise=20.0)

    engine = OnlineClusterEngine(10)
    for point in stream:
        engine.cluster(point)

    clusters = engine.trimmed_clusters()
    for each_cluster in clusters:
        print(f"center={each_cluster.center.round(1).tolist()} weight={each_cluster.weight:.2f}")

    plot_clusters(clusters, 'gaussian blobs')


if __name__ == "__main__":
    demo()
