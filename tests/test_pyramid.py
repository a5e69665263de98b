import random

import numpy as np
import pytest

from hnswshard.index import brute_force_nearest
from hnswshard.pyramid import (
    PyramidIndex,
    greedy_grouping,
    kmeans,
    knn_graph,
    sample_input,
)

OFFSETS = [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0), (1.0, 1.0), (0.5, 0.5)]
ORIGINS = [(0.0, 0.0), (100.0, 0.0), (0.0, 100.0)]


def clustered_data():
    return np.array(
        [[ox + dx, oy + dy] for ox, oy in ORIGINS for dx, dy in OFFSETS],
        dtype=np.float32,
    )


def test_sample_input_returns_distinct_rows_of_data():
    data = clustered_data()
    sample = sample_input(data, 7, random.Random(1))
    assert sample.shape == (7, 2)
    rows = {tuple(row) for row in data.tolist()}
    picked = [tuple(row) for row in sample.tolist()]
    assert all(row in rows for row in picked)
    assert len(set(picked)) == 7


def test_sample_input_rejects_too_many():
    with pytest.raises(ValueError):
        sample_input(clustered_data(), 16, random.Random(0))


def test_kmeans_finds_separated_clusters():
    data = clustered_data()
    labels, centers = kmeans(data, 3, 100, 0.1, 3, random.Random(4))
    assert centers.shape == (3, 2)
    for block in range(3):
        block_labels = set(labels[block * 5:(block + 1) * 5].tolist())
        assert len(block_labels) == 1
        label = block_labels.pop()
        expected = data[block * 5:(block + 1) * 5].mean(axis=0)
        assert np.allclose(centers[label], expected, atol=1e-4)
    assert sorted(set(labels.tolist())) == [0, 1, 2]


def test_kmeans_rejects_more_clusters_than_rows():
    with pytest.raises(ValueError):
        kmeans([[0.0], [1.0]], 3, 10, 0.1, 1, random.Random(0))


def test_knn_graph_on_a_line():
    centers = [[0.0], [1.0], [3.0], [10.0]]
    graph = knn_graph(centers, 2)
    assert graph[0] == [1, 2]
    assert graph[3] == [2, 1]
    assert all(i not in neighbors for i, neighbors in enumerate(graph))


def test_greedy_grouping_seeds_and_balances():
    rng = np.random.default_rng(3)
    centers = rng.normal(size=(10, 3)).astype(np.float32)
    groups = greedy_grouping(centers, 3, 5)
    assert groups[:3] == [0, 1, 2]
    assert all(0 <= g < 3 for g in groups)
    counts = [groups.count(g) for g in range(3)]
    assert max(counts) <= 4
    assert sum(counts) == 10


def test_greedy_grouping_rejects_zero_groups():
    with pytest.raises(ValueError):
        greedy_grouping([[0.0], [1.0]], 0)


def build_index():
    return PyramidIndex(clustered_data(), 15, 3, 2, 16, 20, 3, seed=11)


def test_pyramid_holds_every_point_once():
    index = build_index()
    assert len(index) == 15
    ids = sorted(i for shard in index.shard_ids for i in shard)
    assert ids == list(range(15))


def test_pyramid_route_gives_distinct_valid_groups():
    index = build_index()
    groups = index.route([0.2, 0.3])
    assert 1 <= len(groups) <= 2
    assert len(set(groups)) == len(groups)
    assert all(0 <= g < 3 for g in groups)


def test_pyramid_finds_stored_points_exactly():
    data = clustered_data()
    index = build_index()
    for row_id, row in enumerate(data):
        match = index.query(row)
        assert match.id == row_id
        assert match.value == 0.0


def test_pyramid_agrees_with_brute_force():
    data = clustered_data()
    index = build_index()
    queries = [[0.9, 0.1], [101.1, 0.9], [0.2, 99.4], [50.0, 1.0]]
    for query in queries:
        assert index.query(query).id == brute_force_nearest(query, data)


def test_pyramid_rejects_oversized_sample():
    with pytest.raises(ValueError):
        PyramidIndex(clustered_data(), 20, 3, 2, 16, 20, 3, seed=0)