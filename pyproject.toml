[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hnswshard"
version = "0.1.0"
description = "Hierarchical navigable small world indexes for nearest-neighbour search: single, sharded and pyramid-partitioned"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "hnsw",
    "nearest-neighbour",
    "ann",
    "vector-search",
    "similarity-search",
    "k-means",
    "sharding",
    "recall",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Information Analysis",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
hnswshard = "hnswshard.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["hnswshard"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
