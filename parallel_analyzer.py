import argparse
import logging
from functools import reduce
from typing import Iterable, List

from analysis_core import AggregateState, aggregate_lines, merge_stats, new_stats
from serial_analyzer import add_output_args, check_logs, configure_logging, write_outputs

logger = logging.getLogger(__name__)


def read_lines(paths: Iterable[str]) -> List[str]:
    lines: List[str] = []
    for path in paths:
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            lines.extend(handle)
    return lines


def split_chunks(lines: List[str], parts: int) -> List[List[str]]:
    """Split into `parts` contiguous chunks whose sizes differ by at most one."""
    if parts < 1:
        raise ValueError(f"parts must be >= 1 (got {parts})")
    size, extra = divmod(len(lines), parts)
    chunks = []
    start = 0
    for index in range(parts):
        end = start + size + (1 if index < extra else 0)
        chunks.append(lines[start:end])
        start = end
    return chunks


def merge_all(states: Iterable[AggregateState]) -> AggregateState:
    return reduce(merge_stats, states, new_stats())


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Parallel MPI access log analyzer (chunked aggregation)")
    add_output_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    from mpi4py import MPI

    args = parse_args(argv)
    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    world_size = comm.Get_size()

    configure_logging(args.verbose)
    # Every rank checks so a missing file stops all of them before the scatter.
    check_logs(args.logs)

    chunks = None
    if rank == 0:
        lines = read_lines(args.logs)
        chunks = split_chunks(lines, world_size)
        logger.info("Scattering %d lines across %d ranks", len(lines), world_size)

    chunk = comm.scatter(chunks, root=0)
    stats = aggregate_lines(chunk)
    gathered = comm.gather(stats, root=0)

    if rank != 0:
        return None

    merged_stats = merge_all(gathered)
    report_path = write_outputs(merged_stats, args)
    print("Parallel analysis complete:")
    print(f"- Report: {report_path}")
    return report_path


if __name__ == "__main__":
    main()
