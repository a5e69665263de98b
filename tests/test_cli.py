import pytest

from hnswshard.cli import build_parser, main

DATA = [
    [0.0, 0.0],
    [10.0, 0.0],
    [0.0, 10.0],
    [10.0, 10.0],
    [5.0, 5.0],
    [20.0, 20.0],
]


def _write(path, rows):
    path.write_text("".join(" ".join(str(v) for v in row) + "\n" for row in rows))
    return str(path)


@pytest.fixture
def files(tmp_path):
    data = _write(tmp_path / "data.txt", DATA)
    queries = _write(tmp_path / "queries.txt", [[0.1, 0.2], [9.8, 0.1], [19.0, 19.5], [5.2, 4.9]])
    return data, queries


def _recall_line(output):
    return [line for line in output.splitlines() if "Recall" in line]


def test_parser_reads_single_arguments():
    args = build_parser().parse_args(["single", "d.txt", "6", "2", "1", "8", "8", "q.txt"])
    assert (args.command, args.input_size, args.dimension, args.levels, args.l, args.M) == (
        "single", 6, 2, 1, 8, 8,
    )
    assert args.query == "q.txt"


def test_parser_sharded_defaults():
    args = build_parser().parse_args(["sharded", "d.txt", "6", "2", "1", "8", "8", "q.txt"])
    assert args.world_size == 1
    assert args.shuffle is False


def test_parser_rejects_non_positive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["single", "d.txt", "0", "2", "1", "8", "8", "q.txt"])


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        main(["nope"])


def test_single_finds_exact_neighbours(files, capsys):
    data, queries = files
    status = main(["single", data, "6", "2", "1", "10", "10", queries, "--seed", "3"])
    out = capsys.readouterr().out
    assert status == 0
    assert "Time taken to build HNSW index:" in out
    assert "Time taken for search:" in out
    assert _recall_line(out) == ["Mean Recall: 1"]


def test_sharded_finds_exact_neighbours(files, capsys):
    data, queries = files
    status = main(
        ["sharded", data, "6", "2", "1", "10", "10", queries,
         "--world-size", "3", "--shuffle", "--seed", "5"]
    )
    out = capsys.readouterr().out
    assert status == 0
    assert _recall_line(out) == ["Recall: 1"]


def test_pyramid_finds_exact_neighbours(files, capsys):
    data, queries = files
    status = main(
        ["pyramid", data, "6", "2", "6", "2", "2", "10", "10", queries,
         "--world-size", "2", "--seed", "1"]
    )
    out = capsys.readouterr().out
    assert status == 0
    assert _recall_line(out) == ["Recall: 1"]


def test_missing_file_reports_error(tmp_path, capsys):
    missing = str(tmp_path / "missing.txt")
    status = main(["single", missing, "6", "2", "1", "10", "10", missing])
    err = capsys.readouterr().err
    assert status == 1
    assert "Error opening file" in err


def test_wrong_dimension_reports_error(files, capsys):
    data, queries = files
    status = main(["single", data, "6", "3", "1", "10", "10", queries])
    assert status == 1
    assert "expected 3" in capsys.readouterr().err


def test_too_few_rows_reports_error(files, capsys):
    data, queries = files
    status = main(["sharded", data, "60", "2", "1", "10", "10", queries])
    assert status == 1
    assert "at least 60" in capsys.readouterr().err