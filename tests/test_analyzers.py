import json
import sys
import types
from datetime import datetime

import pytest

import parallel_analyzer
import serial_analyzer
from analysis_core import aggregate_lines, summarize_stats
from parallel_analyzer import merge_all, read_lines, split_chunks


# ---------------------------------------------------------------------------
# Serial CLI
# ---------------------------------------------------------------------------

def test_serial_writes_report_and_summary(tmp_path, log_file, capsys):
    report = tmp_path / "out" / "report.txt"
    summary = tmp_path / "out" / "summary.json"

    path = serial_analyzer.main(["--logs", str(log_file), "--output", str(report), "--json", str(summary)])

    assert path == report
    text = report.read_text(encoding="utf-8")
    assert "Total requests: 7" in text
    assert f"Analyzed file: {log_file}" in text
    assert json.loads(summary.read_text(encoding="utf-8"))["failed_requests"] == 3
    assert f"Analysis complete! Report saved to {report}" in capsys.readouterr().out


def test_serial_default_report_name_is_dated(tmp_path):
    assert serial_analyzer.default_report_path(str(tmp_path), datetime(2023, 10, 11)) == (
        tmp_path / "log_analysis_report_20231011.txt"
    )


def test_serial_default_output_dir(tmp_path, log_file):
    path = serial_analyzer.main(["--logs", str(log_file), "--output-dir", str(tmp_path / "reports")])
    assert path.parent == tmp_path / "reports"
    assert path.name.startswith("log_analysis_report_")
    assert path.exists()


def test_serial_merges_multiple_logs(tmp_path, log_file):
    second = tmp_path / "second.log"
    second.write_text(log_file.read_text(encoding="utf-8"), encoding="utf-8")
    summary = tmp_path / "summary.json"

    serial_analyzer.main([
        "--logs", str(log_file), str(second),
        "--output", str(tmp_path / "r.txt"),
        "--json", str(summary),
    ])

    payload = json.loads(summary.read_text(encoding="utf-8"))
    assert payload["total_requests"] == 14
    assert payload["malformed_lines"] == 2
    assert payload["fail_percent"] == 42.86


def test_serial_missing_file_exits(tmp_path):
    missing = tmp_path / "nope.log"
    with pytest.raises(SystemExit) as excinfo:
        serial_analyzer.main(["--logs", str(missing)])
    assert str(excinfo.value) == f"ERROR: File '{missing}' not found!"


def test_serial_empty_log(tmp_path):
    empty = tmp_path / "empty.log"
    empty.write_text("", encoding="utf-8")
    report = tmp_path / "report.txt"

    serial_analyzer.main(["--logs", str(empty), "--output", str(report)])

    text = report.read_text(encoding="utf-8")
    assert "Total requests: 0" in text
    assert "(undefined)" in text


# ---------------------------------------------------------------------------
# Parallel chunking (no MPI runtime needed)
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("parts", [1, 2, 3, 4, 10])
def test_split_chunks_preserves_lines(sample_lines, parts):
    chunks = split_chunks(sample_lines, parts)
    assert len(chunks) == parts
    assert [line for chunk in chunks for line in chunk] == sample_lines
    sizes = [len(chunk) for chunk in chunks]
    assert max(sizes) - min(sizes) <= 1


def test_split_chunks_rejects_zero_parts():
    with pytest.raises(ValueError):
        split_chunks([], 0)


@pytest.mark.parametrize("parts", [1, 2, 3, 7, 9])
def test_chunked_aggregation_matches_single_pass(sample_lines, parts):
    merged = merge_all(aggregate_lines(chunk) for chunk in split_chunks(sample_lines, parts))
    assert summarize_stats(merged) == summarize_stats(aggregate_lines(sample_lines))


def test_read_lines_concatenates_files(tmp_path, log_file, sample_lines):
    other = tmp_path / "other.log"
    other.write_text("extra line\n", encoding="utf-8")
    assert read_lines([str(log_file), str(other)]) == sample_lines + ["extra line\n"]


@pytest.mark.parametrize("top", ["0", "-1"])
def test_serial_rejects_non_positive_top(tmp_path, log_file, top):
    with pytest.raises(SystemExit) as excinfo:
        serial_analyzer.parse_args(["--logs", str(log_file), "--top", top])
    assert excinfo.value.code == 2


def test_serial_top_limits_listed_ips(tmp_path, log_file):
    summary = tmp_path / "summary.json"
    serial_analyzer.main(["--logs", str(log_file), "--output", str(tmp_path / "r.txt"), "--json", str(summary), "--top", "1"])
    assert json.loads(summary.read_text(encoding="utf-8"))["top_ips"] == [{"ip": "10.0.0.1", "count": 3}]


# ---------------------------------------------------------------------------
# Parallel CLI on a single in-process rank
# ---------------------------------------------------------------------------

class SingleRankComm:
    def __init__(self):
        self.scattered = None

    def Get_rank(self):
        return 0

    def Get_size(self):
        return 1

    def scatter(self, chunks, root=0):
        self.scattered = chunks
        return chunks[root]

    def gather(self, value, root=0):
        return [value]


@pytest.fixture
def single_rank_mpi(monkeypatch):
    comm = SingleRankComm()
    mpi = types.ModuleType("mpi4py.MPI")
    mpi.COMM_WORLD = comm
    package = types.ModuleType("mpi4py")
    package.MPI = mpi
    monkeypatch.setitem(sys.modules, "mpi4py", package)
    monkeypatch.setitem(sys.modules, "mpi4py.MPI", mpi)
    return comm


def test_parallel_main_merges_on_head_rank(tmp_path, log_file, sample_lines, single_rank_mpi, capsys):
    report = tmp_path / "parallel.txt"
    summary = tmp_path / "parallel.json"

    path = parallel_analyzer.main(["--logs", str(log_file), "--output", str(report), "--json", str(summary)])

    assert path == report
    assert single_rank_mpi.scattered == [sample_lines]
    payload = json.loads(summary.read_text(encoding="utf-8"))
    assert payload["total_requests"] == 7
    assert payload["fail_percent"] == 42.86
    assert "Total requests: 7" in report.read_text(encoding="utf-8")
    assert "Parallel analysis complete:" in capsys.readouterr().out


def test_parallel_main_missing_file_exits(tmp_path, single_rank_mpi):
    with pytest.raises(SystemExit):
        parallel_analyzer.main(["--logs", str(tmp_path / "missing.log")])
    assert single_rank_mpi.scattered is None
