# hnswshard

Approximate nearest-neighbour search with hierarchical navigable small
world (HNSW) graphs, in three forms:

- a single in-memory graph (`hnswshard.index`),
- a data set split into shards of consecutive rows, one graph per shard,
  with the per-shard winners reduced to the closest match
  (`hnswshard.distributed`),
- a pyramid index that clusters a random sample of the data with k-means,
  groups the cluster centres into shards, and routes every point and every
  query only to the shards that own the centres nearest to it
  (`hnswshard.pyramid`).

The command line builds an index, answers a file of queries with their
nearest neighbour, and reports build time, search time and recall against
an exact brute-force search.

## Installation

```
pip install .
```

The only runtime dependency is numpy. To run the tests:

```
pip install ".[test]"
pytest
```

## Data files

Input files are plain text: one vector per line, values separated by
whitespace. On each line, reading stops at the first token that is not a
number; an empty line gives an empty row.

- `hnswshard.dataio.read_rows(path)` returns a list of rows (lists of
  floats); rows may differ in length.
- `hnswshard.dataio.read_matrix(path, rows, dimension)` returns a
  `rows` x `dimension` float32 array. Missing values stay zero; a file
  with more than `rows` lines, or a line with more than `dimension`
  values, raises `ValueError`.

A file that cannot be opened raises `OSError`.

## Command line

```
hnswshard --help
```

There are three sub-commands. All take the data file, the number of rows
to index (`input_size`) and the vector length (`dimension`) first. Every
row used, and every query, must hold exactly `dimension` values.

```
hnswshard single  INPUT INPUT_SIZE DIMENSION LEVELS L M QUERY [--seed N]
hnswshard sharded INPUT INPUT_SIZE DIMENSION LEVELS L M QUERY [--world-size N] [--shuffle] [--seed N]
hnswshard pyramid INPUT INPUT_SIZE DIMENSION SAMPLE_SIZE m BRANCHING M L QUERY [--world-size N] [--seed N]
```

- `LEVELS`: number of graph levels (the top level is `LEVELS - 1`).
- `L`: beam width used while searching.
- `M`: links kept per node and level.
- `--world-size`: number of shards (default 1).
- `--shuffle`: shuffle the rows before splitting them into shards.
- `--seed`: seed for level selection, shuffling, sampling and clustering.
- `SAMPLE_SIZE`, `m`, `BRANCHING`: rows sampled for k-means, number of
  cluster centres, and how many nearest centres route each query.

Output looks like:

```
Time taken to build HNSW index: 0.0123 seconds
Time taken for search: 0.00456 seconds
Recall: 0.98
```

(`single` prints `Mean Recall:` on the last line.) Recall is the fraction
of queries whose returned id equals the brute-force nearest row. A file
that cannot be opened, or malformed data, prints a message to standard
error and exits with status 1.

## Library use

```python
from hnswshard.dataio import read_rows
from hnswshard.distributed import ShardedHNSW

data = read_rows("base.txt")
queries = read_rows("queries.txt")

# input_size, max_level=3, l=20, M=8, world_size=4, seed=0
index = ShardedHNSW(data, len(data), 3, 20, 8, 4, 0)
for query in queries:
    match = index.query(query, 20)
    print(match.id, match.value)
```

### `hnswshard.index`

- `HNSW(max_level, rng=None)`: an empty graph. `insert(node_id, vector, l, M)`
  adds a point on a level drawn uniformly from `0..max_level` (the first
  point spans every level and becomes the entry point);
  `query(query, k, l)` returns up to `k` `(id, distance)` pairs, nearest
  first; `search_level(level, query, factor, candidates)` runs the greedy
  search on one level. Querying an empty graph or inserting an id twice
  raises `ValueError`.
- `Node`: a stored point with its id, top level, vector and per-level links.
- `build_hnsw(data, max_level, l, M, id_offset=0, rng=None)`: builds a
  graph over the rows of `data`, numbering them from `id_offset`.
- `euclidean_distance`, `find_top_k`, `find_min` and
  `brute_force_nearest` (the exact nearest row index).

### `hnswshard.distributed`

- `ShardedHNSW(data, input_size, max_level, l, M, world_size, seed=None)`:
  one graph per shard, ids kept global; `query(vector, l=None)` returns the
  nearest `Match` across all shards.
- `Match(value, id)`: a hit, ordered by distance and then by id.
- `shard_sizes` (the last shard takes the remainder), `shard_rows`,
  `label_offsets`, `reduce_min_loc` (position-wise minimum across shards)
  and `recall`.

### `hnswshard.pyramid`

- `PyramidIndex(data, sample_size, m, branching, M, l, world_size, seed=None)`:
  samples `sample_size` rows, clusters them into `m` centres, indexes the
  centres in a small graph, groups the centres into `world_size` shards and
  sends every row to the shard of its nearest centre. `route(query)` lists
  the shards owning the `branching` centres nearest to the query;
  `query(query)` returns the nearest `Match` among those shards, or a
  `Match` with id `-1` when none of them holds a point.
- `sample_input`, `kmeans` (k-means++ seeding, several attempts, keeps the
  most compact result), `knn_graph` and `greedy_grouping` (near-equal
  groups, each centre joining the open group holding most of its five
  nearest neighbours).

## What it does not do

- Shards are built and searched one after another in a single process;
  there is no multi-process, multi-machine or multi-threaded execution,
  and `--world-size` only sets how many shards are made.
- Indexes live in memory only; there is no saving or loading of a built
  index.
- Queries return the nearest neighbour on the command line; deletion or
  update of stored points is not supported.