"""Splitting a data set into shards, each with its own graph index, and merging their answers."""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from hnswshard.index import FLT_MAX, HNSW, build_hnsw


@dataclass(frozen=True, order=True)
class Match:
    """A search hit: its distance first, so ordering picks the nearest, then the lowest id."""

    value: float = FLT_MAX
    id: int = -1


def shard_sizes(input_size: int, world_size: int) -> list[int]:
    """Rows held by each shard; the last shard also takes the remainder."""
    if world_size < 1:
        raise ValueError("world_size must be at least 1")
    if input_size < 0:
        raise ValueError("input_size must be non-negative")
    base = input_size // world_size
    return [base] * (world_size - 1) + [input_size - (world_size - 1) * base]


def label_offsets(sizes: Iterable[int]) -> list[int]:
    """Global id of the first row of each shard (an exclusive prefix sum)."""
    offsets: list[int] = []
    total = 0
    for size in sizes:
        offsets.append(total)
        total += size
    return offsets


def shard_rows(data: Sequence[Sequence[float]] | np.ndarray, input_size: int, world_size: int) -> list:
    """Split the first ``input_size`` rows of ``data`` into ``world_size`` consecutive shards."""
    if len(data) < input_size:
        raise ValueError(f"data holds {len(data)} rows, expected at least {input_size}")
    sizes = shard_sizes(input_size, world_size)
    return [data[start:start + size] for start, size in zip(label_offsets(sizes), sizes)]


def reduce_min_loc(per_rank_results: Iterable[Sequence[Match]]) -> list[Match]:
    """Combine per-shard results position by position, keeping the smallest distance.

    Equal distances are settled in favour of the smaller id.
    """
    ranks = [list(results) for results in per_rank_results]
    if not ranks:
        return []
    length = len(ranks[0])
    if any(len(results) != length for results in ranks):
        raise ValueError("every rank must report the same number of results")
    return [min(column) for column in zip(*ranks)]


def recall(found_ids: Sequence[int], true_ids: Sequence[int]) -> float:
    """Fraction of positions where the found id equals the true id."""
    if len(found_ids) != len(true_ids):
        raise ValueError("found_ids and true_ids differ in length")
    if not found_ids:
        raise ValueError("recall of an empty query set is undefined")
    correct = sum(found == true for found, true in zip(found_ids, true_ids))
    return correct / len(found_ids)


class ShardedHNSW:
    """One graph index per shard; a query asks every shard and keeps the nearest answer."""

    def __init__(
        self,
        data: Sequence[Sequence[float]] | np.ndarray,
        input_size: int,
        max_level: int,
        l: int,
        M: int,
        world_size: int,
        seed: int | None = None,
    ) -> None:
        self.l = l
        self.sizes = shard_sizes(input_size, world_size)
        self.offsets = label_offsets(self.sizes)
        self.shards: list[HNSW] = []
        for rank, (rows, offset) in enumerate(
            zip(shard_rows(data, input_size, world_size), self.offsets)
        ):
            rng = random.Random(seed + rank) if seed is not None else random.Random()
            self.shards.append(build_hnsw(rows, max_level, l, M, offset, rng))

    def __len__(self) -> int:
        return sum(len(shard) for shard in self.shards)

    def _shard_match(self, shard: HNSW, vector: np.ndarray, l: int) -> Match:
        if len(shard) == 0:
            return Match()
        node_id, distance = shard.query(vector, 1, l)[0]
        return Match(distance, node_id)

    def query(self, vector: Sequence[float] | np.ndarray, l: int | None = None) -> Match:
        """Nearest point found across all shards, searching each with beam width ``l``."""
        if len(self) == 0:
            raise ValueError("the index is empty")
        width = self.l if l is None else l
        vector = np.asarray(vector, dtype=np.float32)
        return min(self._shard_match(shard, vector, width) for shard in self.shards)