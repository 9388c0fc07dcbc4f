import itertools
import math

import numpy as np
import pytest

from streamclstr import (
    Cluster,
    ClusterDistance,
    OnlineClusterEngine,
    perform_online_clustering,
    clusters_to_frame,
    read_vectors,
)
from streamclstr._kernel import gaussian_kernel, normalized_kernel, kernel_distance


KERNEL = normalized_kernel(gaussian_kernel)


def _check_distance_cache(engine):
    n = len(engine.clusters)
    assert len(engine.distances) == n * (n - 1) // 2

    values = [d.distance for d in engine.distances]
    assert values == sorted(values)

    pairs = set()
    for d in engine.distances:
        assert d.cluster1 in engine.clusters
        assert d.cluster2 in engine.clusters
        assert d.cluster1 is not d.cluster2
        assert d.distance == pytest.approx(kernel_distance(d.cluster1.center, d.cluster2.center, engine.kernel))
        pairs.add(frozenset((id(d.cluster1), id(d.cluster2))))
    assert len(pairs) == len(engine.distances)


# ----- Cluster -----

def test_cluster_starts_with_kernel_self_similarity():
    source = np.array([1.0, 2.0])
    c = Cluster(source, KERNEL)
    source[0] = 99.0

    assert c.weight == pytest.approx(1 / math.sqrt(2))
    assert np.array_equal(c.center, [1.0, 2.0])


def test_cluster_add_moves_center_by_inverse_weight():
    c = Cluster([0.0, 0.0], KERNEL)
    similarity = KERNEL(np.array([0.0, 0.0]), np.array([1.0, 0.0]))

    c.add([1.0, 0.0])

    expected_weight = 1 / math.sqrt(2) + similarity
    assert c.weight == pytest.approx(expected_weight)
    assert np.allclose(c.center, [1.0 / expected_weight, 0.0])


def test_cluster_add_of_its_own_center_keeps_center():
    c = Cluster([3.0, -1.0], KERNEL)
    c.add([3.0, -1.0])

    assert c.weight == pytest.approx(math.sqrt(2))
    assert np.array_equal(c.center, [3.0, -1.0])


def test_cluster_merge_sums_weights_and_stays_on_segment():
    a = Cluster([0.0, 0.0], KERNEL)
    b = Cluster([10.0, 20.0], KERNEL)
    a.add([1.0, 1.0])
    a.add([2.0, 0.0])
    wa, wb = a.weight, b.weight
    ca, cb = a.center.copy(), b.center.copy()

    a.merge(b)

    assert a.weight == pytest.approx(wa + wb)
    assert np.allclose(a.center, (ca * wa + cb * wb) / (wa + wb))
    t = (a.center - ca) / (cb - ca)
    assert t[0] == pytest.approx(t[1])
    assert 0 <= t[0] <= 1
    # the absorbed cluster is untouched
    assert b.weight == wb
    assert np.array_equal(b.center, cb)


def test_cluster_resize_pads_center():
    c = Cluster([1.0], KERNEL)
    c.resize(3)
    assert np.array_equal(c.center, [1.0, 0.0, 0.0])
    c.resize(2)
    assert c.center.shape == (3,)


def test_cluster_distance_orders_by_distance_only():
    a = Cluster([0.0], KERNEL)
    b = Cluster([1.0], KERNEL)
    near = ClusterDistance(0.2, a, b)
    far = ClusterDistance(0.7, b, a)

    assert sorted([far, near]) == [near, far]
    assert near < far
    assert ClusterDistance(0.2, b, a) == near


# ----- OnlineClusterEngine -----

@pytest.mark.parametrize("max_clusters", [0, -3, 2.5, True, "4"])
def test_engine_rejects_invalid_capacity(max_clusters):
    with pytest.raises(ValueError):
        OnlineClusterEngine(max_clusters)


def test_engine_rejects_non_positive_sigma():
    with pytest.raises(ValueError):
        OnlineClusterEngine(5, sigma=0)


def test_random_stream_keeps_cluster_bound_and_consistent_cache():
    rng = np.random.default_rng(7)
    engine = OnlineClusterEngine(10)

    for i in range(150):
        engine.cluster(rng.random(3))
        assert len(engine) <= 10
        _check_distance_cache(engine)

    assert len(engine) == 10
    assert engine.n_points == 150
    assert engine.n_merges == 140
    assert all(c.weight > 0 for c in engine.clusters)
    assert len(engine.trimmed_clusters()) > 0


def test_cluster_count_grows_until_the_budget():
    engine = OnlineClusterEngine(4)
    for i in range(4):
        engine.cluster([float(i) * 100, 0.0])
        assert len(engine) == i + 1
    assert engine.n_merges == 0

    engine.cluster([1000.0, 0.0])
    assert len(engine) == 4
    assert engine.n_merges == 1


def test_repeated_point_keeps_every_center_on_it():
    p = [1.0, 2.0, 3.0]
    engine = OnlineClusterEngine(3)

    engine.cluster(p)
    assert len(engine) == 1
    assert np.array_equal(engine.clusters[0].center, p)

    total_weight = engine.weights().sum()
    for _ in range(8):
        engine.cluster(p)
        assert np.allclose(engine.centers(), p)
        assert len(np.unique(np.round(engine.centers(), 9), axis=0)) == 1
        new_total = engine.weights().sum()
        assert new_total > total_weight
        total_weight = new_total
    assert len(engine) <= 3


def test_merge_picks_the_closest_pair(monkeypatch):
    engine = OnlineClusterEngine(3)
    merges = []
    original_merge = Cluster.merge

    def recording_merge(self, other):
        closest = min(kernel_distance(a.center, b.center, engine.kernel)
                      for a, b in itertools.combinations(engine.clusters, 2))
        merges.append((kernel_distance(self.center, other.center, engine.kernel), closest))
        original_merge(self, other)

    monkeypatch.setattr(Cluster, "merge", recording_merge)

    for point in ([0.0, 0.0], [100.0, 0.0], [0.0, 300.0], [1000.0, 1000.0]):
        engine.cluster(point)

    assert len(engine) == 3
    assert len(merges) == 1
    assert merges[0][0] == pytest.approx(merges[0][1])


def test_equidistant_tie_goes_to_first_cluster():
    engine = OnlineClusterEngine(10)
    engine.cluster([5.0])
    engine.cluster([5.0])
    first, second = engine.clusters
    assert np.array_equal(first.center, second.center)

    engine.cluster([7.0])

    assert first.weight > math.sqrt(2)
    assert second.weight == pytest.approx(1 / math.sqrt(2))
    assert np.array_equal(second.center, [5.0])


def test_equal_cache_distances_keep_insertion_order_for_merges():
    engine = OnlineClusterEngine(3)
    for _ in range(3):
        engine.cluster([0.0])
    first, second, third = engine.clusters

    # identical centers give identical distances; later entries go after earlier ones
    assert [(d.cluster1, d.cluster2) for d in engine.distances] == [
        (second, first),
        (first, third),
        (second, third),
    ]
    assert len({d.distance for d in engine.distances}) == 1

    engine.cluster([0.0])

    # first was updated again, so (second, third) is now the earliest closest pair
    assert engine.n_merges == 1
    assert engine.clusters[0] is first
    assert engine.clusters[1] is second
    assert all(c is not third for c in engine.clusters)
    assert second.weight == pytest.approx(math.sqrt(2))
    assert first.weight == pytest.approx(4 / math.sqrt(2))
    _check_distance_cache(engine)


def test_longer_points_resize_existing_clusters():
    engine = OnlineClusterEngine(5)
    engine.cluster([1.0, 2.0])
    engine.cluster([1.0, 2.0, 3.0])

    assert engine.num_dimensions == 3
    assert engine.centers().shape == (2, 3)
    _check_distance_cache(engine)


def test_shorter_points_are_padded_with_a_warning():
    engine = OnlineClusterEngine(5)
    engine.cluster([1.0, 2.0, 3.0])

    with pytest.warns(UserWarning):
        engine.cluster([1.0, 2.0])

    assert engine.num_dimensions == 3
    assert np.array_equal(engine.clusters[-1].center, [1.0, 2.0, 0.0])
    _check_distance_cache(engine)


def test_points_must_be_one_dimensional():
    engine = OnlineClusterEngine(5)
    with pytest.raises(ValueError):
        engine.cluster([[1.0, 2.0], [3.0, 4.0]])


def test_non_finite_points_are_rejected():
    engine = OnlineClusterEngine(5)
    engine.cluster([1.0, 2.0])

    with pytest.raises(ValueError):
        engine.cluster([float("nan"), 2.0])
    with pytest.raises(ValueError):
        engine.cluster([1.0, float("inf")])

    assert engine.n_points == 1
    assert np.all(np.isfinite(engine.weights()))
    assert np.array_equal(engine.clusters[0].center, [1.0, 2.0])


def test_budget_of_one_absorbs_every_point():
    engine = OnlineClusterEngine(1)
    for i in range(5):
        engine.cluster([float(i), 1.0])
        assert len(engine) == 1
    assert engine.n_points == 5
    assert engine.distances == []
    assert engine.clusters[0].weight > 1 / math.sqrt(2)


def test_trimmed_clusters_drops_light_clusters():
    engine = OnlineClusterEngine(10)
    for point in ([0.0], [100.0], [200.0], [300.0]):
        engine.cluster(point)
    for each_cluster, weight in zip(engine.clusters, [10.0, 10.0, 0.5, 2.0]):
        each_cluster.weight = weight

    trimmed = engine.trimmed_clusters()

    assert [c.weight for c in trimmed] == [10.0, 10.0, 2.0]


def test_trimmed_clusters_respects_threshold_on_a_stream():
    rng = np.random.default_rng(3)
    engine = OnlineClusterEngine(8)
    for _ in range(60):
        engine.cluster(rng.normal(size=2) * 50)

    threshold = 0.1 * np.mean([c.weight for c in engine.clusters if c.weight > 0])
    trimmed = engine.trimmed_clusters()
    assert all(c.weight >= threshold for c in trimmed)
    assert all(c in trimmed for c in engine.clusters if c.weight >= threshold)


def test_trimmed_clusters_of_an_empty_engine():
    assert OnlineClusterEngine(3).trimmed_clusters() == []


def test_distance_matrix_agrees_with_cache():
    rng = np.random.default_rng(11)
    engine = OnlineClusterEngine(6, sigma=0.001)
    for _ in range(20):
        engine.cluster(rng.random(4) * 10)

    dRow = engine.distance_matrix()
    assert dRow.shape == (15,)
    assert np.allclose(np.sort(dRow), [d.distance for d in engine.distances])

    square = engine.distance_matrix(square=True)
    assert square.shape == (6, 6)
    assert np.allclose(square, square.T)


def test_distance_matrix_of_a_single_cluster():
    engine = OnlineClusterEngine(3)
    engine.cluster([1.0, 1.0])
    assert engine.distance_matrix().shape == (0,)
    assert engine.distance_matrix(square=True).shape == (1, 1)


# ----- helpers -----

def test_perform_online_clustering():
    vectors = [[0.0, 0.0], [0.1, 0.0], [500.0, 500.0], [500.1, 500.0], [0.0, 0.1]]

    engine, cluster_list = perform_online_clustering(vectors, 3)
    assert engine.n_points == 5
    assert len(engine) == 3
    assert cluster_list == engine.trimmed_clusters()

    _, all_clusters = perform_online_clustering(vectors, 3, trim=False)
    assert len(all_clusters) == 3


def test_clusters_to_frame():
    engine, cluster_list = perform_online_clustering([[1.0, 2.0], [3.0, 4.0]], 5, trim=False)
    df = clusters_to_frame(cluster_list)

    assert list(df.columns) == ['weight', 'x0', 'x1']
    assert len(df) == 2
    assert df['weight'].tolist() == pytest.approx([c.weight for c in cluster_list])

    assert list(clusters_to_frame([]).columns) == ['weight']


def test_read_vectors_from_csv(tmp_path):
    path = tmp_path / "stream.csv"
    path.write_text("label,x0,x1,x2\na,1,2,\nb,3,4,5\n")

    labeled_vectors = read_vectors(str(path))

    assert [label for label, _ in labeled_vectors] == ['a', 'b']
    assert np.array_equal(labeled_vectors[0][1], [1.0, 2.0])
    assert np.array_equal(labeled_vectors[1][1], [3.0, 4.0, 5.0])


def test_read_vectors_from_xlsx(tmp_path):
    import pandas as pd

    path = tmp_path / "stream.xlsx"
    pd.DataFrame({'label': ['a', 'b'], 'x0': [1.0, 3.0], 'x1': [2.0, 4.0]}).to_excel(path, sheet_name='data', index=False)

    labeled_vectors = read_vectors(str(path))

    assert len(labeled_vectors) == 2
    assert np.array_equal(labeled_vectors[1][1], [3.0, 4.0])


def test_read_vectors_rejects_gaps_and_bad_files(tmp_path):
    gap = tmp_path / "gap.csv"
    gap.write_text("label,x0,x1,x2\na,1,,3\n")
    with pytest.raises(ValueError):
        read_vectors(str(gap))

    other = tmp_path / "stream.txt"
    other.write_text("1,2,3\n")
    with pytest.raises(ValueError):
        read_vectors(str(other))

    with pytest.raises(FileNotFoundError):
        read_vectors(str(tmp_path / "missing.csv"))
