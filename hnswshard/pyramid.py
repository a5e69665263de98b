"""Two-tier index: a small graph of cluster centres routes each point and query to shards."""

from __future__ import annotations

import heapq
import math
import random
from collections.abc import Sequence

import numpy as np

from hnswshard.distributed import Match
from hnswshard.index import HNSW, build_hnsw, euclidean_distance


def _as_matrix(data: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
    matrix = np.asarray(data, dtype=np.float32)
    if matrix.ndim != 2:
        raise ValueError("data must be a two-dimensional matrix")
    return matrix


def _level_count(size: int, M: int) -> int:
    """Highest graph level worth having for ``size`` points linked ``M`` at a time."""
    if size < 2 or M < 2:
        return 0
    return int(math.log(size) / math.log(M))


def sample_input(
    data: Sequence[Sequence[float]] | np.ndarray,
    num_samples: int,
    rng: random.Random | None = None,
) -> np.ndarray:
    """Return ``num_samples`` distinct rows of ``data`` picked at random."""
    matrix = _as_matrix(data)
    if not 0 <= num_samples <= len(matrix):
        raise ValueError(
            f"cannot sample {num_samples} rows from {len(matrix)} rows"
        )
    rng = rng if rng is not None else random.Random()
    indices = rng.sample(range(len(matrix)), num_samples)
    return matrix[indices].copy()


def _squared_distances(points: np.ndarray, centers: np.ndarray) -> np.ndarray:
    diff = points[:, None, :] - centers[None, :, :]
    return np.einsum("ijk,ijk->ij", diff, diff)


def _plus_plus_centers(points: np.ndarray, m: int, rng: random.Random) -> np.ndarray:
    chosen = [rng.randrange(len(points))]
    nearest = _squared_distances(points, points[chosen])[:, 0]
    while len(chosen) < m:
        weights = nearest.astype(np.float64).tolist()
        if sum(weights) > 0:
            pick = rng.choices(range(len(points)), weights=weights)[0]
        else:
            pick = rng.randrange(len(points))
        chosen.append(pick)
        nearest = np.minimum(nearest, _squared_distances(points, points[[pick]])[:, 0])
    return points[chosen].copy()


def _lloyd(
    points: np.ndarray, centers: np.ndarray, max_iter: int, eps: float
) -> tuple[np.ndarray, np.ndarray, float]:
    m = len(centers)
    for _ in range(max(max_iter, 1)):
        distances = _squared_distances(points, centers)
        labels = distances.argmin(axis=1)
        updated = centers.copy()
        for cluster in range(m):
            members = points[labels == cluster]
            if len(members):
                updated[cluster] = members.mean(axis=0)
        for cluster in range(m):
            if not np.any(labels == cluster):
                own = distances[np.arange(len(points)), labels]
                farthest = int(own.argmax())
                labels[farthest] = cluster
                distances[farthest, :] = 0.0
                updated[cluster] = points[farthest]
        shift = float(np.max(np.sum((updated - centers) ** 2, axis=1)))
        centers = updated
        if shift <= eps * eps:
            break
    distances = _squared_distances(points, centers)
    labels = distances.argmin(axis=1)
    compactness = float(distances[np.arange(len(points)), labels].sum())
    return labels, centers, compactness


def kmeans(
    data: Sequence[Sequence[float]] | np.ndarray,
    m: int,
    max_iter: int = 100,
    eps: float = 0.1,
    attempts: int = 3,
    rng: random.Random | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Cluster ``data`` into ``m`` groups with k-means++ seeding.

    Runs ``attempts`` times and keeps the most compact result. Iteration stops
    after ``max_iter`` rounds or once no centre moves further than ``eps``.
    Returns ``(labels, centers)``.
    """
    points = _as_matrix(data)
    if m < 1:
        raise ValueError("m must be at least 1")
    if m > len(points):
        raise ValueError(f"cannot form {m} clusters from {len(points)} rows")
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    rng = rng if rng is not None else random.Random()
    eps = max(eps, 0.0)

    best: tuple[np.ndarray, np.ndarray, float] | None = None
    for _ in range(attempts):
        result = _lloyd(points, _plus_plus_centers(points, m, rng), max_iter, eps)
        if best is None or result[2] < best[2]:
            best = result
    labels, centers, _ = best
    return labels, centers.astype(np.float32)


def knn_graph(
    centers: Sequence[Sequence[float]] | np.ndarray, k_neighbors: int
) -> list[list[int]]:
    """For each centre, the indices of its ``k_neighbors`` nearest other centres, nearest first."""
    matrix = _as_matrix(centers)
    k = max(k_neighbors, 0)
    graph: list[list[int]] = []
    for i, center in enumerate(matrix):
        others = (
            (euclidean_distance(center, other), j)
            for j, other in enumerate(matrix)
            if j != i
        )
        graph.append([j for _, j in heapq.nsmallest(k, others)])
    return graph


def greedy_grouping(
    centers: Sequence[Sequence[float]] | np.ndarray, w: int, k_neighbors: int = 5
) -> list[int]:
    """Assign each centre to one of ``w`` groups of near-equal size.

    The first ``w`` centres seed one group each; every later centre joins the
    open group holding most of its nearest neighbours (ties go to the higher
    group number), or the smallest group when all are full.
    """
    if w < 1:
        raise ValueError("w must be at least 1")
    graph = knn_graph(centers, k_neighbors)
    m = len(graph)
    center_to_group = [-1] * m
    sizes = [0] * w
    capacity = -(-m // w)

    for i in range(min(w, m)):
        center_to_group[i] = i
        sizes[i] += 1

    for i in range(w, m):
        scores = [0] * w
        for neighbor in graph[i]:
            group = center_to_group[neighbor]
            if group != -1 and sizes[group] < capacity:
                scores[group] += 1
        open_groups = [group for group in range(w) if sizes[group] < capacity]
        if open_groups:
            best = max(open_groups, key=lambda group: (scores[group], group))
        else:
            best = sizes.index(min(sizes))
        center_to_group[i] = best
        sizes[best] += 1
    return center_to_group


class PyramidIndex:
    """Cluster centres grouped into shards; each shard indexes the points routed to it."""

    def __init__(
        self,
        data: Sequence[Sequence[float]] | np.ndarray,
        sample_size: int,
        m: int,
        branching: int,
        M: int,
        l: int,
        world_size: int,
        seed: int | None = None,
    ) -> None:
        if branching < 1:
            raise ValueError("branching must be at least 1")
        matrix = _as_matrix(data)
        rng = random.Random(seed)
        self.branching = branching
        self.l = l
        self.world_size = world_size

        sample = sample_input(matrix, sample_size, rng)
        _, self.centers = kmeans(sample, m, 100, 0.1, 3, rng)
        self.meta = build_hnsw(
            self.centers, _level_count(len(self.centers), M), l, M, 0, rng
        )
        self.center_to_group = greedy_grouping(self.centers, world_size, 5)

        self.shard_ids: list[list[int]] = [[] for _ in range(world_size)]
        for row_id, row in enumerate(matrix):
            center = self.meta.query(row, 1, l)[0][0]
            self.shard_ids[self.center_to_group[center]].append(row_id)

        self.shards: list[HNSW] = []
        for ids in self.shard_ids:
            shard = HNSW(_level_count(len(ids), M), rng)
            for row_id in ids:
                shard.insert(row_id, matrix[row_id], l, M)
            self.shards.append(shard)

    def __len__(self) -> int:
        return sum(len(shard) for shard in self.shards)

    def route(self, query: Sequence[float] | np.ndarray) -> list[int]:
        """Groups owning the ``branching`` centres nearest to ``query``, without repeats."""
        groups: list[int] = []
        for center, _ in self.meta.query(query, self.branching, self.l):
            group = self.center_to_group[center]
            if group not in groups:
                groups.append(group)
        return groups

    def query(self, query: Sequence[float] | np.ndarray) -> Match:
        """Nearest point found among the shards the query is routed to."""
        vector = np.asarray(query, dtype=np.float32)
        best = Match()
        for group in self.route(vector):
            shard = self.shards[group]
            if len(shard) == 0:
                continue
            node_id, distance = shard.query(vector, 1, self.l)[0]
            best = min(best, Match(distance, node_id))
        return best