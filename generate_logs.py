import argparse
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Traffic profile for a single web server
# - business-hours peak, a handful of heavy clients, mostly successful responses

DEFAULT_PROFILE = {
    "heavy_clients": ["10.0.0.5", "10.0.0.7", "192.168.1.20"],
    "heavy_share": 0.35,
    "peak_hours": list(range(9, 18)),
    "paths": [
        ("/", 0.20),
        ("/index.html", 0.10),
        ("/products", 0.15),
        ("/cart", 0.10),
        ("/checkout", 0.05),
        ("/api/v1/search", 0.15),
        ("/api/v1/login", 0.08),
        ("/static/app.js", 0.10),
        ("/static/style.css", 0.07),
    ],
    "methods": [("GET", 0.75), ("POST", 0.20), ("PUT", 0.03), ("DELETE", 0.02)],
    "statuses": [(200, 0.80), (301, 0.03), (304, 0.04), (400, 0.03), (403, 0.02), (404, 0.05), (500, 0.02), (503, 0.01)],
}

MALFORMED_LINES = [
    "",
    "garbage line without structure",
    '127.0.0.1 - - [not-a-date] "GET / HTTP/1.1" 200 512',
    '127.0.0.1 - - [10/Oct/2023:13:55:36 +0000] "GET / HTTP/1.1" - 0',
]


def weighted_choice(options):
    r = random.random()
    cumulative = 0.0
    for value, weight in options:
        cumulative += weight
        if r <= cumulative:
            return value
    return options[-1][0]


def random_ip(profile):
    if random.random() < profile.get("heavy_share", 0.0) and profile.get("heavy_clients"):
        return random.choice(profile["heavy_clients"])
    return ".".join(str(random.randint(1, 254)) for _ in range(4))


def random_bytes(status):
    if status >= 500:
        return random.randint(200, 1200)
    if status >= 400:
        return random.randint(400, 2000)
    if status in (301, 304):
        return 0
    return random.randint(800, 8000)


def pick_hour(peak_hours):
    """70% chance to pick a peak hour, 30% any hour."""
    if random.random() < 0.70 and peak_hours:
        return random.choice(peak_hours)
    return random.randint(0, 23)


def generate_line(profile, base_time, span_days):
    day = base_time - timedelta(days=random.randint(0, max(span_days, 1) - 1))
    dt = day.replace(hour=pick_hour(profile.get("peak_hours", [])), minute=random.randint(0, 59), second=random.randint(0, 59))

    ip = random_ip(profile)
    method = weighted_choice(profile["methods"])
    path = weighted_choice(profile["paths"])
    status = weighted_choice(profile["statuses"])
    size = random_bytes(status)
    timestamp = dt.strftime("%d/%b/%Y:%H:%M:%S %z")
    return f"{ip} - - [{timestamp}] \"{method} {path} HTTP/1.1\" {status} {size}\n"


def write_log(output, rows, span_days=7, malformed_ratio=0.0, profile=None, base_time=None):
    profile = profile or DEFAULT_PROFILE
    base_time = base_time or datetime.now(timezone.utc).replace(microsecond=0)
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    malformed = 0
    with open(path, "w", encoding="utf-8") as handle:
        for _ in range(rows):
            if random.random() < malformed_ratio:
                handle.write(random.choice(MALFORMED_LINES) + "\n")
                malformed += 1
            else:
                handle.write(generate_line(profile, base_time, span_days))
    return path, malformed


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a synthetic web access log.")
    parser.add_argument("--rows", type=int, default=5000, help="Number of lines to write.")
    parser.add_argument("--days", type=int, default=7, help="Number of days the timestamps span.")
    parser.add_argument("--malformed-ratio", type=float, default=0.0, help="Share of lines written malformed (0-1).")
    parser.add_argument("--output", default="logs/access.log", help="Output log file.")
    parser.add_argument("--seed", type=int, help="RNG seed for reproducibility.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    if args.seed is not None:
        random.seed(args.seed)

    if not 0.0 <= args.malformed_ratio <= 1.0:
        raise SystemExit(f"--malformed-ratio must be between 0 and 1 (got {args.malformed_ratio})")

    path, malformed = write_log(args.output, args.rows, args.days, args.malformed_ratio)
    print(f"Generated {path.resolve()}: {args.rows} lines ({malformed} malformed)")


if __name__ == "__main__":
    main()
