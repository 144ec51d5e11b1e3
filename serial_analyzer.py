import argparse
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from analysis_core import AggregateState, aggregate_lines, merge_stats, new_stats, summarize_stats
from report_formatter import build_plot, render_report, summary_to_dict

logger = logging.getLogger(__name__)


def analyze_file(path: str) -> AggregateState:
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        stats = aggregate_lines(handle)
    logger.info("Read %d lines from %s", stats.total_requests, path)
    return stats


def check_logs(logs: Sequence[str]) -> None:
    for log in logs:
        if not os.path.isfile(log):
            raise SystemExit(f"ERROR: File '{log}' not found!")


def default_report_path(output_dir: str, now: datetime) -> Path:
    return Path(output_dir) / f"log_analysis_report_{now:%Y%m%d}.txt"


def write_outputs(stats: AggregateState, args, now: Optional[datetime] = None) -> Path:
    """Derive statistics from the merged state and write report, summary and plot."""
    now = now or datetime.now()
    if stats.malformed_lines:
        logger.warning("%d of %d lines did not match the access-log layout", stats.malformed_lines, stats.total_requests)

    derived = summarize_stats(stats, top_k=args.top)
    report = render_report(stats, derived, sources=args.logs, generated_at=now)

    report_path = Path(args.output) if args.output else default_report_path(args.output_dir, now)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w", encoding="utf-8") as handle:
        handle.write(report.to_text())

    if args.json:
        json_path = Path(args.json)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        with open(json_path, "w", encoding="utf-8") as handle:
            json.dump(summary_to_dict(derived, stats), handle, indent=2)
        print(f"- JSON summary: {json_path}")

    if args.plot:
        build_plot(derived, Path(args.plot))
        print(f"- Plot: {Path(args.plot)}")

    return report_path


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1 (got {number})")
    return number


def add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--logs", nargs="+", required=True, help="Paths to access log files.")
    parser.add_argument("--output", help="Report path (default: <output-dir>/log_analysis_report_YYYYMMDD.txt).")
    parser.add_argument("--output-dir", default="reports", help="Directory for the dated report.")
    parser.add_argument("--json", help="Optional path to write a JSON summary.")
    parser.add_argument("--plot", help="Optional path to write a summary plot (PNG).")
    parser.add_argument("--top", type=positive_int, default=10, help="Number of top IPs to list.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log skipped lines.")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Single-process access log analyzer")
    add_output_args(parser)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)
    check_logs(args.logs)

    merged_stats = new_stats()
    for log in args.logs:
        merge_stats(merged_stats, analyze_file(log))

    report_path = write_outputs(merged_stats, args)
    print(f"Analysis complete! Report saved to {report_path}")
    return report_path


if __name__ == "__main__":
    main()
