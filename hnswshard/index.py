"""Hierarchical navigable small world graph for nearest-neighbour search."""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import numpy as np

FLT_MAX = float(np.finfo(np.float32).max)

Candidate = tuple[int, float]


def euclidean_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Euclidean distance between two vectors, computed in single precision."""
    diff = np.asarray(a, dtype=np.float32) - np.asarray(b, dtype=np.float32)
    return float(np.sqrt(np.dot(diff, diff)))


def find_top_k(candidates: Iterable[Candidate], k: int) -> list[Candidate]:
    """Return the ``k`` candidates with the smallest distances, nearest first."""
    return sorted(candidates, key=lambda candidate: candidate[1])[: max(k, 0)]


def find_min(candidates: Iterable[Candidate]) -> float:
    """Smallest distance among the candidates, or ``FLT_MAX`` when there are none."""
    return min((distance for _, distance in candidates), default=FLT_MAX)


def brute_force_nearest(query: Sequence[float] | np.ndarray, data: Iterable[Sequence[float]]) -> int:
    """Index of the row of ``data`` nearest to ``query``; -1 when nothing is nearer than ``FLT_MAX``."""
    best_index, best_distance = -1, FLT_MAX
    for index, row in enumerate(data):
        distance = euclidean_distance(query, row)
        if distance < best_distance:
            best_index, best_distance = index, distance
    return best_index


@dataclass
class Node:
    """A point stored in the graph together with its links on each level."""

    id: int
    max_level: int
    vector: np.ndarray
    neighbors: list[list[Candidate]] = field(default_factory=list)


class HNSW:
    """A layered proximity graph searched greedily from a single entry point."""

    def __init__(self, max_level: int, rng: random.Random | None = None) -> None:
        if max_level < 0:
            raise ValueError("max_level must be non-negative")
        self.max_level = max_level
        self.entry_point: int | None = None
        self.nodes: dict[int, Node] = {}
        self._rng = rng if rng is not None else random.Random()

    def __len__(self) -> int:
        return len(self.nodes)

    def _distance_to(self, query: np.ndarray, node_id: int) -> float:
        return euclidean_distance(query, self.nodes[node_id].vector)

    def search_level(
        self,
        level: int,
        query: Sequence[float] | np.ndarray,
        factor: int,
        candidates: Iterable[Candidate],
    ) -> list[Candidate]:
        """Greedy search on one level, keeping the ``factor`` nearest nodes seen."""
        query = np.asarray(query, dtype=np.float32)
        frontier = list(candidates)
        winners = list(frontier)
        visited: set[int] = set()

        while frontier and find_min(frontier) <= find_min(winners):
            current = self.nodes[frontier.pop()[0]]
            visited.add(current.id)
            for neighbor_id, _ in current.neighbors[level]:
                if neighbor_id in visited:
                    continue
                visited.add(neighbor_id)
                found = (neighbor_id, self._distance_to(query, neighbor_id))
                frontier.append(found)
                winners.append(found)
            winners = find_top_k(winners, factor)
        return winners

    def _entry_candidates(self, query: np.ndarray) -> list[Candidate]:
        if self.entry_point is None:
            raise ValueError("the index is empty")
        return [(self.entry_point, self._distance_to(query, self.entry_point))]

    def insert(self, node_id: int, vector: Sequence[float] | np.ndarray, l: int, M: int) -> None:
        """Add a point, linking it to at most ``M`` neighbours on each of its levels."""
        if node_id in self.nodes:
            raise ValueError(f"node {node_id} is already in the index")
        vector = np.array(vector, dtype=np.float32)

        if self.entry_point is None:
            self.nodes[node_id] = Node(
                node_id, self.max_level, vector, [[] for _ in range(self.max_level + 1)]
            )
            self.entry_point = node_id
            return

        level = self._rng.randrange(self.max_level + 1)
        node = Node(node_id, level, vector, [[] for _ in range(level + 1)])
        candidates = self._entry_candidates(vector)

        for j in range(self.max_level, level, -1):
            candidates = self.search_level(j, vector, 1, candidates)

        for j in range(level, -1, -1):
            candidates = self.search_level(j, vector, l, candidates)
            for candidate_id, distance in find_top_k(candidates, M):
                node.neighbors[j].append((candidate_id, distance))
                other = self.nodes[candidate_id]
                other.neighbors[j] = find_top_k(
                    [*other.neighbors[j], (node_id, distance)], M
                )
            candidates = find_top_k(candidates, 1)

        self.nodes[node_id] = node

    def query(self, query: Sequence[float] | np.ndarray, k: int, l: int) -> list[Candidate]:
        """Return up to ``k`` (id, distance) pairs near ``query``, nearest first."""
        query = np.asarray(query, dtype=np.float32)
        candidates = self._entry_candidates(query)
        for j in range(self.max_level, 0, -1):
            candidates = self.search_level(j, query, 1, candidates)
        candidates = self.search_level(0, query, l, candidates)
        return find_top_k(candidates, k)


def build_hnsw(
    data: Iterable[Sequence[float]],
    max_level: int,
    l: int,
    M: int,
    id_offset: int = 0,
    rng: random.Random | None = None,
) -> HNSW:
    """Build an index over the rows of ``data``, numbering them from ``id_offset``."""
    index = HNSW(max_level, rng)
    for position, row in enumerate(data):
        index.insert(position + id_offset, row, l, M)
    return index