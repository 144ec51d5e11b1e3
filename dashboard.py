import argparse
import json
from pathlib import Path
from typing import Optional

from flask import Flask, Response, abort, jsonify, render_template_string, request, send_file


# ---------------------------------------------------------------------------
# HTML Template - summary cards, hourly and status charts, top IPs, raw report
# ---------------------------------------------------------------------------

HTML_TEMPLATE = """
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>Access Log Report</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <script src="https://cdn.jsdelivr.net/npm/chart.js@4.4.4/dist/chart.umd.min.js"></script>
  <style>
    :root {
      --bg: #f8fafc;
      --bg2: #ffffff;
      --text: #1e293b;
      --muted: #64748b;
      --border: #e2e8f0;
      --accent: #3b82f6;
      --accent2: #ef4444;
      --shadow: 0 4px 6px -1px rgba(0,0,0,0.1), 0 2px 4px -2px rgba(0,0,0,0.1);
    }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: 'Inter', 'Segoe UI', sans-serif; background: var(--bg); color: var(--text); padding: 24px 32px; }
    h2 { font-size: 24px; font-weight: 700; margin-bottom: 8px; }
    .muted { color: var(--muted); font-size: 13px; margin-bottom: 24px; }
    .card { background: var(--bg2); border: 1px solid var(--border); border-radius: 16px; padding: 20px; box-shadow: var(--shadow); }
    .card h3 { font-size: 16px; font-weight: 600; margin-bottom: 16px; }
    .grid { display: grid; gap: 20px; grid-template-columns: repeat(auto-fit, minmax(380px, 1fr)); margin-bottom: 20px; }
    .stats-grid { display: grid; gap: 16px; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); margin-bottom: 24px; }
    .stat-card { background: var(--bg2); border: 1px solid var(--border); border-radius: 12px; padding: 16px; box-shadow: var(--shadow); }
    .stat-card .label { font-size: 12px; color: var(--muted); margin-bottom: 4px; text-transform: uppercase; letter-spacing: 0.5px; }
    .stat-card .value { font-size: 28px; font-weight: 700; }
    .chart-container { position: relative; height: 300px; }
    table { width: 100%; border-collapse: collapse; font-size: 13px; }
    th, td { padding: 10px 16px; text-align: left; border-bottom: 1px solid var(--border); }
    th { font-weight: 600; color: var(--muted); text-transform: uppercase; font-size: 11px; }
    pre { font-size: 12px; white-space: pre-wrap; }
  </style>
</head>
<body>
  <h2>Access Log Report</h2>
  <div class="muted">Summary: {{ summary_path }}</div>

  <div class="stats-grid">
    <div class="stat-card"><div class="label">Total requests</div><div class="value" id="total">-</div></div>
    <div class="stat-card"><div class="label">Failed (4xx/5xx)</div><div class="value" id="failed">-</div></div>
    <div class="stat-card"><div class="label">Unique IPs</div><div class="value" id="ips">-</div></div>
    <div class="stat-card"><div class="label">Peak hour</div><div class="value" id="peak">-</div></div>
    <div class="stat-card"><div class="label">Daily average</div><div class="value" id="avg">-</div></div>
  </div>

  <div class="grid">
    <div class="card"><h3>Requests by hour</h3><div class="chart-container"><canvas id="hours"></canvas></div></div>
    <div class="card"><h3>Status codes</h3><div class="chart-container"><canvas id="status"></canvas></div></div>
  </div>

  <div class="grid">
    <div class="card">
      <h3>Top IPs</h3>
      <table><thead><tr><th>IP</th><th>Requests</th></tr></thead><tbody id="top-ips"></tbody></table>
    </div>
    <div class="card"><h3>Report</h3><pre id="report">No text report configured.</pre></div>
  </div>

<script>
async function fetchJSON(url) {
  const res = await fetch(url);
  if (!res.ok) throw new Error(`${url}: ${res.status}`);
  return res.json();
}

function fmt(value, suffix = '') {
  return value === null || value === undefined ? 'undefined' : `${value}${suffix}`;
}

async function init() {
  const summary = await fetchJSON('/api/summary');
  document.getElementById('total').textContent = summary.total_requests;
  document.getElementById('failed').textContent = `${summary.failed_requests} (${fmt(summary.fail_percent, '%')})`;
  document.getElementById('ips').textContent = summary.unique_ips;
  document.getElementById('peak').textContent = summary.peak_hour ? `${String(summary.peak_hour.hour).padStart(2, '0')}:00` : 'n/a';
  document.getElementById('avg').textContent = fmt(summary.daily_average);

  const hours = await fetchJSON('/api/hours');
  new Chart(document.getElementById('hours'), {
    type: 'bar',
    data: { labels: hours.hours, datasets: [{ label: 'Requests', data: hours.counts, backgroundColor: '#3b82f6' }] },
    options: { maintainAspectRatio: false, plugins: { legend: { display: false } } },
  });

  const status = await fetchJSON('/api/status');
  new Chart(document.getElementById('status'), {
    type: 'bar',
    data: {
      labels: status.map(s => s.status),
      datasets: [{ label: 'Requests', data: status.map(s => s.count),
        backgroundColor: status.map(s => String(s.status).match(/^[45]/) ? '#ef4444' : '#3b82f6') }],
    },
    options: { maintainAspectRatio: false, plugins: { legend: { display: false } } },
  });

  const top = await fetchJSON('/api/top-ips?k=10');
  const body = document.getElementById('top-ips');
  for (const entry of top) {
    const row = document.createElement('tr');
    for (const value of [entry.ip, entry.count]) {
      const cell = document.createElement('td');
      cell.textContent = value;
      row.appendChild(cell);
    }
    body.appendChild(row);
  }

  const res = await fetch('/api/report');
  if (res.ok) document.getElementById('report').textContent = await res.text();
}

init().catch(err => console.error(err));
</script>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Flask Application
# ---------------------------------------------------------------------------

def load_summary(summary_path: Path):
    if not summary_path.exists():
        abort(404, "Summary JSON not found; run serial_analyzer with --json first")
    with open(summary_path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def create_app(summary_path: Path, report_path: Optional[Path] = None, plot_path: Optional[Path] = None):
    app = Flask(__name__)

    summary_cache = {"data": None, "mtime": 0}

    def get_summary():
        """Load summary with caching based on mtime."""
        if not summary_path.exists():
            abort(404, "Summary JSON not found; run serial_analyzer with --json first")
        mtime = summary_path.stat().st_mtime
        if summary_cache["data"] is None or mtime > summary_cache["mtime"]:
            summary_cache["data"] = load_summary(summary_path)
            summary_cache["mtime"] = mtime
        return summary_cache["data"]

    @app.get("/")
    def index():
        return render_template_string(HTML_TEMPLATE, summary_path=summary_path)

    @app.get("/api/summary")
    def summary():
        return jsonify(get_summary())

    @app.get("/api/report")
    def report():
        if report_path is None:
            abort(404, "No text report configured; provide --report")
        if not report_path.exists():
            abort(404, "Report not found")
        return Response(report_path.read_text(encoding="utf-8"), mimetype="text/plain")

    @app.get("/api/top-ips")
    def top_ips():
        top_k = request.args.get("k", 10, type=int)
        if top_k < 1:
            abort(400, "k must be >= 1")
        return jsonify(get_summary().get("top_ips", [])[:top_k])

    @app.get("/api/hours")
    def hours():
        hist = get_summary().get("hour_histogram", {}) or {}
        hour_list = list(range(24))
        return jsonify({"hours": hour_list, "counts": [hist.get(str(h), 0) for h in hour_list]})

    @app.get("/api/status")
    def status():
        return jsonify(get_summary().get("status_distribution", []))

    if plot_path:
        @app.get("/plot")
        def plot():
            if not plot_path.exists():
                abort(404, "Plot not found")
            return send_file(plot_path.resolve())

    return app


def parse_args():
    parser = argparse.ArgumentParser(description="Access log report dashboard")
    parser.add_argument("--summary", default="reports/summary.json", help="Path to summary JSON")
    parser.add_argument("--report", default=None, help="Optional path to the text report")
    parser.add_argument("--plot", default=None, help="Optional path to plot image")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind")
    return parser.parse_args()


def main():
    args = parse_args()
    summary_path = Path(args.summary)
    report_path = Path(args.report) if args.report else None
    plot_path = Path(args.plot) if args.plot else None
    app = create_app(summary_path, report_path, plot_path)
    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
