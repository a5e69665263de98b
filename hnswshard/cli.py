"""Command line for building the indexes, timing queries against them and measuring recall."""

from __future__ import annotations

import argparse
import random
import sys
import time
from collections.abc import Sequence

import numpy as np

from hnswshard.dataio import read_rows
from hnswshard.distributed import ShardedHNSW, recall
from hnswshard.index import brute_force_nearest, build_hnsw
from hnswshard.pyramid import PyramidIndex


def _positive(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return value


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="file with one data vector per line")
    parser.add_argument("input_size", type=_positive, help="number of data vectors to index")
    parser.add_argument("dimension", type=_positive, help="length of every vector")


def build_parser() -> argparse.ArgumentParser:
    """Parser with one sub-command per kind of index."""
    parser = argparse.ArgumentParser(
        prog="hnswshard",
        description="Build a graph index, query it and report build time, search time and recall.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    single = commands.add_parser("single", help="one index over all data")
    _add_common(single)
    single.add_argument("levels", type=_positive, help="number of graph levels")
    single.add_argument("l", type=_positive, help="search beam width")
    single.add_argument("M", type=_positive, help="links kept per node and level")
    single.add_argument("query", help="file with one query vector per line")
    single.add_argument("--seed", type=int, default=None, help="seed for level selection")

    sharded = commands.add_parser("sharded", help="one index per shard of consecutive rows")
    _add_common(sharded)
    sharded.add_argument("levels", type=_positive, help="number of graph levels")
    sharded.add_argument("l", type=_positive, help="search beam width")
    sharded.add_argument("M", type=_positive, help="links kept per node and level")
    sharded.add_argument("query", help="file with one query vector per line")
    sharded.add_argument("--world-size", type=_positive, default=1, help="number of shards")
    sharded.add_argument("--shuffle", action="store_true", help="shuffle the data before sharding")
    sharded.add_argument("--seed", type=int, default=None, help="seed for shuffling and levels")

    pyramid = commands.add_parser("pyramid", help="shards chosen by clustering the data")
    _add_common(pyramid)
    pyramid.add_argument("sample_size", type=_positive, help="rows sampled for clustering")
    pyramid.add_argument("m", type=_positive, help="number of cluster centres")
    pyramid.add_argument("branching", type=_positive, help="centres a query is routed by")
    pyramid.add_argument("M", type=_positive, help="links kept per node and level")
    pyramid.add_argument("l", type=_positive, help="search beam width")
    pyramid.add_argument("query", help="file with one query vector per line")
    pyramid.add_argument("--world-size", type=_positive, default=1, help="number of shards")
    pyramid.add_argument("--seed", type=int, default=None, help="seed for sampling and clustering")
    return parser


def _load(path: str, dimension: int, limit: int | None = None) -> list[list[float]]:
    rows = read_rows(path)
    if limit is not None:
        if len(rows) < limit:
            raise ValueError(f"{path} holds {len(rows)} rows, expected at least {limit}")
        rows = rows[:limit]
    for number, row in enumerate(rows):
        if len(row) != dimension:
            raise ValueError(
                f"{path}: row {number} holds {len(row)} values, expected {dimension}"
            )
    return rows


def _report_build(seconds: float) -> None:
    print(f"Time taken to build HNSW index: {seconds:g} seconds")


def _report_search(seconds: float) -> None:
    print(f"Time taken for search: {seconds:g} seconds")


def _true_ids(queries: Sequence[Sequence[float]], data: np.ndarray) -> list[int]:
    return [brute_force_nearest(query, data) for query in queries]


def _run_single(args: argparse.Namespace) -> None:
    data = np.asarray(_load(args.input, args.dimension, args.input_size), dtype=np.float32)
    rng = random.Random(args.seed)

    start = time.perf_counter()
    index = build_hnsw(data, args.levels - 1, args.l, args.M, 0, rng)
    _report_build(time.perf_counter() - start)

    queries = _load(args.query, args.dimension)
    start = time.perf_counter()
    found = [index.query(query, 1, args.l)[0][0] for query in queries]
    _report_search(time.perf_counter() - start)

    print(f"Mean Recall: {recall(found, _true_ids(queries, data)):g}")


def _run_sharded(args: argparse.Namespace) -> None:
    rows = _load(args.input, args.dimension, args.input_size)
    rng = random.Random(args.seed)

    start = time.perf_counter()
    if args.shuffle:
        rng.shuffle(rows)
    data = np.asarray(rows, dtype=np.float32)
    index = ShardedHNSW(
        data, args.input_size, args.levels - 1, args.l, args.M, args.world_size, args.seed
    )
    _report_build(time.perf_counter() - start)

    queries = _load(args.query, args.dimension)
    start = time.perf_counter()
    found = [index.query(query).id for query in queries]
    _report_search(time.perf_counter() - start)

    print(f"Recall: {recall(found, _true_ids(queries, data)):g}")


def _run_pyramid(args: argparse.Namespace) -> None:
    data = np.asarray(_load(args.input, args.dimension, args.input_size), dtype=np.float32)

    start = time.perf_counter()
    index = PyramidIndex(
        data,
        args.sample_size,
        args.m,
        args.branching,
        args.M,
        args.l,
        args.world_size,
        args.seed,
    )
    _report_build(time.perf_counter() - start)

    queries = _load(args.query, args.dimension)
    start = time.perf_counter()
    found = [index.query(query).id for query in queries]
    _report_search(time.perf_counter() - start)

    print(f"Recall: {recall(found, _true_ids(queries, data)):g}")


_COMMANDS = {
    "single": _run_single,
    "sharded": _run_sharded,
    "pyramid": _run_pyramid,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        _COMMANDS[args.command](args)
    except OSError as error:
        print(f"Error opening file: {error.filename or error}", file=sys.stderr)
        return 1
    except ValueError as error:
        print(f"Error: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())