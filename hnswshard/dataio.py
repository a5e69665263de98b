"""Reading whitespace-separated numeric text files."""

from __future__ import annotations

import re
from os import PathLike

import numpy as np

_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _parse_line(line: str) -> list[float]:
    """Parse leading numeric tokens of a line, stopping at the first non-number."""
    values: list[float] = []
    for token in line.split():
        if not _NUMBER.fullmatch(token):
            break
        values.append(float(token))
    return values


def read_rows(path: str | PathLike[str]) -> list[list[float]]:
    """Return one list of floats per line of the file at ``path``.

    Rows may differ in length; an empty line yields an empty row.
    Raises ``OSError`` when the file cannot be opened.
    """
    with open(path, encoding="utf-8") as handle:
        return [_parse_line(line) for line in handle]


def read_matrix(path: str | PathLike[str], rows: int, dimension: int) -> np.ndarray:
    """Read the file into a ``rows`` x ``dimension`` float32 matrix.

    Missing values are left at zero. A file with more lines than ``rows``
    or a line with more than ``dimension`` values raises ``ValueError``.
    """
    if rows < 0 or dimension < 0:
        raise ValueError("rows and dimension must be non-negative")
    matrix = np.zeros((rows, dimension), dtype=np.float32)
    for index, row in enumerate(read_rows(path)):
        if index >= rows:
            raise ValueError(f"file holds more than {rows} rows")
        if len(row) > dimension:
            raise ValueError(
                f"row {index} holds {len(row)} values, expected at most {dimension}"
            )
        matrix[index, : len(row)] = row
    return matrix