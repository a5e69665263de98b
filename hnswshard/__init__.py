"""HNSW nearest-neighbour indexes: single, sharded and pyramid-partitioned, with a recall-measuring command line."""

__version__ = "0.1.0"

__all__ = ["__version__"]