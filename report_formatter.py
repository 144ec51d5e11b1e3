from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from analysis_core import AggregateState, DerivedStats

RULE = "=" * 40
PLACEHOLDER = "  (no data)"
UNDEFINED = "undefined"


@dataclass(frozen=True)
class ReportSection:
    title: str
    lines: List[str] = field(default_factory=list)

    def to_text(self) -> str:
        underline = "=" * len(self.title)
        return "\n".join([self.title, underline, *self.lines, ""])


@dataclass(frozen=True)
class Report:
    title: str
    header: List[str]
    sections: List[ReportSection]
    footer: str = "End of report"

    def section_titles(self) -> List[str]:
        return [section.title for section in self.sections]

    def to_text(self) -> str:
        parts = [self.title, *self.header, RULE, ""]
        for section in self.sections:
            parts.append(section.to_text())
        parts.append(self.footer)
        return "\n".join(parts) + "\n"


def _counted(rows: Sequence, label=str) -> List[str]:
    if not rows:
        return [PLACEHOLDER]
    return [f"{count:>7} {label(key)}" for key, count in rows]


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def _request_section(stats: AggregateState) -> ReportSection:
    return ReportSection("1. REQUEST ANALYSIS", [
        f"Total requests: {stats.total_requests}",
        f"GET requests: {stats.get_count}",
        f"POST requests: {stats.post_count}",
        f"Other methods: {stats.other_count}",
        f"Unparsed lines: {stats.malformed_lines}",
    ])


def _ip_section(derived: DerivedStats) -> ReportSection:
    lines = [f"Unique IP addresses: {derived.unique_ips}", "", f"Top {len(derived.top_ips)} IPs by request volume:"]
    lines += _counted(derived.top_ips)
    return ReportSection("2. IP ADDRESS ANALYSIS", lines)


def _status_section(derived: DerivedStats) -> ReportSection:
    pct = UNDEFINED if derived.fail_percent is None else f"{derived.fail_percent:.2f}%"
    lines = [f"Failed requests (4xx/5xx): {derived.failed_requests} ({pct})", "", "Status code distribution:"]
    lines += _counted(derived.status_distribution)
    return ReportSection("3. STATUS CODE ANALYSIS", lines)


def _temporal_section(derived: DerivedStats) -> ReportSection:
    lines = ["Requests by hour:"]
    lines += _counted(list(derived.hourly_distribution.items()), _hour_label)

    lines += ["", "Daily request averages:"]
    if derived.daily_distribution:
        lines += [f"{day}: {count} requests" for day, count in derived.daily_distribution.items()]
    else:
        lines.append(PLACEHOLDER)
    average = UNDEFINED if derived.daily_average is None else str(derived.daily_average)
    lines.append(f"Average: {average} requests/day")

    lines += ["", "Days with most failures:"]
    lines += _counted(derived.worst_failure_days)
    return ReportSection("4. TEMPORAL ANALYSIS", lines)


def _recommendations(derived: DerivedStats) -> ReportSection:
    if derived.peak_hour:
        hour, count = derived.peak_hour
        peak = f"{_hour_label(hour)} ({count} requests)"
    else:
        peak = "n/a"

    if derived.worst_failure_days:
        day, failures = derived.worst_failure_days[0]
        worst = f"{day} ({failures} failures)"
    else:
        worst = "none recorded"

    return ReportSection("5. RECOMMENDATIONS", [
        f"1. Peak traffic hour: {peak} - consider scaling resources during this time",
        f"2. Highest failure day: {worst} - investigate server issues on this day",
        "3. Top IPs making requests may need monitoring for suspicious activity",
        "4. Review endpoints generating 404 errors to fix broken links",
        "5. Consider caching for frequently accessed resources during peak hours",
    ])


def render_report(
    stats: AggregateState,
    derived: DerivedStats,
    sources: Sequence[str] = (),
    generated_at: Optional[datetime] = None,
) -> Report:
    header = []
    if generated_at is not None:
        header.append(f"Generated: {generated_at:%a %b %d %H:%M:%S %Y}")
    if sources:
        header.append(f"Analyzed file: {', '.join(str(s) for s in sources)}")

    return Report(
        title="LOG ANALYSIS REPORT",
        header=header,
        sections=[
            _request_section(stats),
            _ip_section(derived),
            _status_section(derived),
            _temporal_section(derived),
            _recommendations(derived),
        ],
    )


def summary_to_dict(derived: DerivedStats, stats: AggregateState) -> Dict[str, Any]:
    return {
        "total_requests": derived.total_requests,
        "get_requests": stats.get_count,
        "post_requests": stats.post_count,
        "other_requests": stats.other_count,
        "malformed_lines": stats.malformed_lines,
        "failed_requests": derived.failed_requests,
        "fail_percent": derived.fail_percent,
        "unique_ips": derived.unique_ips,
        "top_ips": [{"ip": ip, "count": count} for ip, count in derived.top_ips],
        "status_distribution": [{"status": code, "count": count} for code, count in derived.status_distribution],
        "hour_histogram": {str(hour): count for hour, count in derived.hourly_distribution.items()},
        "daily_distribution": derived.daily_distribution,
        "daily_average": derived.daily_average,
        "worst_failure_days": [{"day": day, "failures": count} for day, count in derived.worst_failure_days],
        "peak_hour": (
            {"hour": derived.peak_hour[0], "count": derived.peak_hour[1]} if derived.peak_hour else None
        ),
    }


def build_plot(derived: DerivedStats, output_path: Path):
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    hours = list(range(24))
    requests = [derived.hourly_distribution.get(h, 0) for h in hours]
    codes = [str(code) for code, _ in derived.status_distribution]
    counts = [count for _, count in derived.status_distribution]
    colors = ["#c0504d" if code[0] in "45" else "#4f81bd" for code in codes]

    fig, axes = plt.subplots(1, 2, figsize=(10, 4))

    axes[0].bar(hours, requests, color="#4f81bd")
    axes[0].set_title("Requests by hour")
    axes[0].set_xlabel("Hour")
    axes[0].set_ylabel("Requests")

    axes[1].bar(codes, counts, color=colors)
    axes[1].set_title("Status codes")
    axes[1].set_ylabel("Requests")

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
