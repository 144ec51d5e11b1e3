import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

TIMESTAMP_PATTERN = re.compile(r"^\[(?P<day>[0-9]{2}/[A-Za-z]{3}/[0-9]{4}):(?P<clock>[0-9]{2}:[0-9]{2}:[0-9]{2})")
STATUS_PATTERN = re.compile(r"^[0-9]{3}$")
FAILURE_PATTERN = re.compile(r"^[45][0-9][0-9]$")

STATUS_FIELD = 8
TIMESTAMP_FIELD = 3


class LogAnalysisError(Exception):
    """Base class for analysis errors."""


class EmptyInputError(LogAnalysisError, ZeroDivisionError):
    """No lines were processed, so rates are undefined."""


class NoDistinctDaysError(LogAnalysisError, ZeroDivisionError):
    """No dated records were seen, so a daily average is undefined."""


@dataclass(frozen=True)
class LogRecord:
    ip: str
    method: str
    status: int
    hour: int
    day: str


@dataclass
class AggregateState:
    total_requests: int = 0
    get_count: int = 0
    post_count: int = 0
    other_count: int = 0
    malformed_lines: int = 0
    failed_requests: int = 0
    ips: Counter = field(default_factory=Counter)
    statuses: Counter = field(default_factory=Counter)
    methods: Counter = field(default_factory=Counter)
    hours: Counter = field(default_factory=Counter)
    days: Counter = field(default_factory=Counter)
    day_failures: Counter = field(default_factory=Counter)


@dataclass(frozen=True)
class DerivedStats:
    total_requests: int
    failed_requests: int
    fail_percent: Optional[float]
    unique_ips: int
    top_ips: List[Tuple[str, int]]
    status_distribution: List[Tuple[int, int]]
    hourly_distribution: Dict[int, int]
    daily_distribution: Dict[str, int]
    daily_average: Optional[int]
    worst_failure_days: List[Tuple[str, int]]
    peak_hour: Optional[Tuple[int, int]]


def is_failure_status(status) -> bool:
    return bool(FAILURE_PATTERN.match(str(status)))


def parse_log_line(line: str) -> Optional[LogRecord]:
    """
    Extract a record from one access-log line, or None if the line does not
    follow `<ip> - - [<timestamp>] "<method> <path> <protocol>" <status> ...`.
    """
    tokens = line.split()
    if len(tokens) <= STATUS_FIELD:
        return None

    quote = line.find('"')
    if quote < 0:
        return None
    request = line[quote + 1:].split(None, 1)
    if not request:
        return None
    method = request[0].rstrip('"')
    if not method:
        return None

    status_token = tokens[STATUS_FIELD]
    if not STATUS_PATTERN.match(status_token):
        return None

    match = TIMESTAMP_PATTERN.match(tokens[TIMESTAMP_FIELD])
    if not match:
        return None
    day = match.group("day")
    try:
        ts = datetime.strptime(f"{day}:{match.group('clock')}", "%d/%b/%Y:%H:%M:%S")
    except ValueError:
        return None

    return LogRecord(
        ip=tokens[0],
        method=method,
        status=int(status_token),
        hour=ts.hour,
        day=day,
    )


def new_stats() -> AggregateState:
    return AggregateState()


def update_stats(stats: AggregateState, record: LogRecord) -> None:
    if record.method == "GET":
        stats.get_count += 1
    elif record.method == "POST":
        stats.post_count += 1
    else:
        stats.other_count += 1
    stats.methods[record.method] += 1

    stats.ips[record.ip] += 1
    stats.statuses[record.status] += 1
    stats.hours[record.hour] += 1
    stats.days[record.day] += 1

    if is_failure_status(record.status):
        stats.failed_requests += 1
        stats.day_failures[record.day] += 1


def ingest_line(stats: AggregateState, line: str) -> Optional[LogRecord]:
    # Every line counts toward the total, parsed or not.
    stats.total_requests += 1
    record = parse_log_line(line)
    if record is None:
        stats.malformed_lines += 1
        logger.debug("Skipping malformed line: %r", line.rstrip("\n"))
        return None
    update_stats(stats, record)
    return record


def aggregate_lines(lines: Iterable[str]) -> AggregateState:
    stats = new_stats()
    for line in lines:
        ingest_line(stats, line)
    return stats


def merge_stats(target: AggregateState, incoming: AggregateState) -> AggregateState:
    target.total_requests += incoming.total_requests
    target.get_count += incoming.get_count
    target.post_count += incoming.post_count
    target.other_count += incoming.other_count
    target.malformed_lines += incoming.malformed_lines
    target.failed_requests += incoming.failed_requests

    for key in ("ips", "statuses", "methods", "hours", "days", "day_failures"):
        getattr(target, key).update(getattr(incoming, key))

    return target


def ranked(counter: Counter, limit: Optional[int] = None) -> list:
    """Entries by count descending, ties broken by ascending key."""
    entries = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    return entries if limit is None else entries[:limit]


def failure_percent(failed: int, total: int) -> float:
    if not total:
        raise EmptyInputError("no requests processed; failure percentage is undefined")
    return round(failed / total * 100, 2)


def daily_average(days: Counter) -> int:
    if not days:
        raise NoDistinctDaysError("no dated requests; daily average is undefined")
    return sum(days.values()) // len(days)


def day_sort_key(day: str):
    return datetime.strptime(day, "%d/%b/%Y")


def summarize_stats(stats: AggregateState, top_k: int = 10, worst_k: int = 5) -> DerivedStats:
    try:
        fail_pct = failure_percent(stats.failed_requests, stats.total_requests)
    except EmptyInputError as exc:
        logger.info("%s", exc)
        fail_pct = None

    try:
        average = daily_average(stats.days)
    except NoDistinctDaysError as exc:
        logger.info("%s", exc)
        average = None

    peak_hour = None
    if stats.hours:
        peak_hour = ranked(stats.hours, 1)[0]

    return DerivedStats(
        total_requests=stats.total_requests,
        failed_requests=stats.failed_requests,
        fail_percent=fail_pct,
        unique_ips=len(stats.ips),
        top_ips=ranked(stats.ips, top_k),
        status_distribution=ranked(stats.statuses),
        hourly_distribution=dict(sorted(stats.hours.items())),
        daily_distribution={day: stats.days[day] for day in sorted(stats.days, key=day_sort_key)},
        daily_average=average,
        worst_failure_days=ranked(stats.day_failures, worst_k),
        peak_hour=peak_hour,
    )
