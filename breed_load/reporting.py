"""
End-of-run summary: one data structure, two renderings.

build_summary() assembles run metadata, metric aggregates, check counts and
threshold results. handle_summary() writes it as an HTML report and prints a
colorized text summary, once, when the run completes.
"""

import io
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, TextIO

from jinja2 import Environment
from rich.console import Console
from rich.text import Text

from breed_load.exceptions import BreedLoadError
from breed_load.metrics import DEFAULT_PERCENTILES, RunMetrics
from breed_load.models.run_config import RunConfiguration
from breed_load.thresholds import ThresholdResult, all_passed

logger = logging.getLogger(__name__)

HARNESS_DURATION_METRIC = "http_req_duration"
HARNESS_FAILED_METRIC = "http_req_failed"
HARNESS_REQS_METRIC = "http_reqs"


def locust_stats_snapshot(total: Any, percentiles: Iterable[str] = DEFAULT_PERCENTILES) -> dict[str, dict[str, Any]]:
    """
    Harness metrics from Locust's aggregated StatsEntry (environment.stats.total).

    http_req_failed counts a request as failed the way Locust does: status
    >= 400 or a connection error.
    """
    num_requests = total.num_requests
    duration_values: dict[str, float] = {
        "avg": float(total.avg_response_time or 0.0),
        "min": float(total.min_response_time or 0.0),
        "max": float(total.max_response_time or 0.0),
        "med": float(total.median_response_time or 0.0),
        "count": float(num_requests),
    }
    for pct in percentiles:
        duration_values[f"p({pct})"] = float(
            total.get_response_time_percentile(float(pct) / 100.0) or 0.0
        ) if num_requests else 0.0

    return {
        HARNESS_DURATION_METRIC: {"type": "trend", "values": duration_values},
        HARNESS_FAILED_METRIC: {
            "type": "rate",
            "values": {
                "rate": float(total.fail_ratio),
                "passes": float(total.num_failures),
                "fails": float(num_requests - total.num_failures),
                "count": float(num_requests),
            },
        },
        HARNESS_REQS_METRIC: {
            "type": "counter",
            "values": {"count": float(num_requests), "rate": float(total.total_rps or 0.0)},
        },
    }


def build_summary(
    config: RunConfiguration,
    metrics: RunMetrics,
    harness_metrics: Mapping[str, Mapping[str, Any]],
    threshold_results: list[ThresholdResult],
    percentiles: Iterable[str] = DEFAULT_PERCENTILES,
) -> dict[str, Any]:
    """Assemble the data passed to both renderers"""
    all_metrics: dict[str, Any] = dict(harness_metrics)
    all_metrics.update(metrics.snapshot(percentiles))

    thresholds_by_metric: dict[str, list[dict[str, Any]]] = {}
    for result in threshold_results:
        thresholds_by_metric.setdefault(result.metric, []).append({
            "expression": result.expression,
            "ok": result.ok,
            "observed": result.observed,
        })

    for name, entry in all_metrics.items():
        entry = dict(entry)
        entry["thresholds"] = thresholds_by_metric.get(name, [])
        all_metrics[name] = entry

    return {
        "run": {
            "profile": config.name,
            "target_url": config.target_url,
            "verdict_policy": config.verdict_policy.kind,
            "stages": [{"duration": s.duration, "target": s.target} for s in config.stages],
            "total_duration": config.total_duration,
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
        "metrics": dict(sorted(all_metrics.items())),
        "checks": metrics.checks.by_name(),
        "thresholds": [
            {"metric": r.metric, "expression": r.expression, "ok": r.ok, "observed": r.observed}
            for r in threshold_results
        ],
        "passed": all_passed(threshold_results),
    }


# =============================================================================
# Formatting helpers
# =============================================================================

def format_duration(ms: float) -> str:
    if ms >= 1000:
        return f"{ms / 1000:.2f}s"
    if ms >= 1:
        return f"{ms:.2f}ms"
    return f"{ms * 1000:.2f}µs"


def format_metric(entry: Mapping[str, Any]) -> str:
    """One-line rendering of a metric's values"""
    values = entry["values"]
    kind = entry["type"]

    if kind == "trend":
        # No samples: zeros would read as real sub-millisecond latencies
        empty = values.get("count") == 0
        parts = []
        for key, value in values.items():
            if key == "count":
                continue
            parts.append(f"{key}={'-' if empty else format_duration(value)}")
        return " ".join(parts)

    if kind == "rate":
        return f"{values['rate'] * 100:.2f}% ✓ {int(values['passes'])} ✗ {int(values['fails'])}"

    return f"{int(values['count'])} {values.get('rate', 0.0):.2f}/s"


# =============================================================================
# Text summary
# =============================================================================

def render_text(summary: Mapping[str, Any], indent: str = " ", enable_colors: bool = True) -> str:
    """Render the summary for a terminal, optionally with ANSI colors"""
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        force_terminal=enable_colors,
        color_system="standard" if enable_colors else None,
        no_color=not enable_colors,
        highlight=False,
        width=120,
        soft_wrap=True,
    )

    run = summary["run"]
    console.print(Text(f"{indent}profile: {run['profile']} ({run['verdict_policy']})", style="bold"))
    console.print(Text(f"{indent}target:  {run['target_url']}"))
    console.print()

    for name, counts in summary["checks"].items():
        total = counts["passes"] + counts["fails"]
        if counts["fails"] == 0:
            console.print(Text(f"{indent}✓ {name}", style="green"))
        else:
            pct = counts["passes"] / total * 100 if total else 0.0
            console.print(Text(f"{indent}✗ {name}", style="red"))
            console.print(Text(
                f"{indent} ↳  {pct:.0f}% - ✓ {counts['passes']} / ✗ {counts['fails']}",
                style="red",
            ))
    if summary["checks"]:
        console.print()

    for name, entry in summary["metrics"].items():
        line = Text(indent)
        if entry["thresholds"]:
            ok = all(t["ok"] for t in entry["thresholds"])
            line.append("✓ " if ok else "✗ ", style="green" if ok else "red")
        else:
            line.append("  ")
        line.append(f"{name:.<32}: ", style="bold")
        line.append(format_metric(entry), style="cyan")
        console.print(line)

    console.print()
    if summary["passed"]:
        console.print(Text(f"{indent}all thresholds passed", style="bold green"))
    else:
        failed = [f"{t['metric']} {t['expression']}" for t in summary["thresholds"] if not t["ok"]]
        console.print(Text(f"{indent}thresholds crossed: {', '.join(failed)}", style="bold red"))

    return buffer.getvalue()


# =============================================================================
# HTML report
# =============================================================================

_HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Load test report - {{ run.profile }}</title>
<style>
    body { font-family: sans-serif; margin: 2em; color: #222; }
    table { border-collapse: collapse; margin-bottom: 2em; min-width: 60%; }
    th, td { border: 1px solid #ccc; padding: 6px 10px; text-align: left; }
    th { background: #f0f0f0; }
    .ok { color: #1a7f37; font-weight: bold; }
    .fail { color: #cf222e; font-weight: bold; }
</style>
</head>
<body>
<h1>{{ run.profile }}
    {% if passed %}<span class="ok">PASSED</span>{% else %}<span class="fail">FAILED</span>{% endif %}
</h1>
<p>Target: <code>{{ run.target_url }}</code> &middot; Policy: {{ run.verdict_policy }}
   &middot; Generated {{ run.generated_at }}</p>

<h2>Stages</h2>
<table>
    <tr><th>#</th><th>Duration (s)</th><th>Target users</th></tr>
    {% for stage in run.stages %}
    <tr><td>{{ loop.index }}</td><td>{{ stage.duration }}</td><td>{{ stage.target }}</td></tr>
    {% endfor %}
</table>

<h2>Thresholds</h2>
<table>
    <tr><th>Metric</th><th>Expression</th><th>Observed</th><th>Result</th></tr>
    {% for t in thresholds %}
    <tr>
        <td>{{ t.metric }}</td><td><code>{{ t.expression }}</code></td>
        <td>{% if t.observed is none %}n/a{% else %}{{ "%.4g"|format(t.observed) }}{% endif %}</td>
        <td class="{{ 'ok' if t.ok else 'fail' }}">{{ 'pass' if t.ok else 'fail' }}</td>
    </tr>
    {% else %}
    <tr><td colspan="4">No thresholds configured</td></tr>
    {% endfor %}
</table>

<h2>Checks</h2>
<table>
    <tr><th>Check</th><th>Passes</th><th>Fails</th></tr>
    {% for name, counts in checks.items() %}
    <tr>
        <td>{{ name }}</td>
        <td class="ok">{{ counts.passes }}</td>
        <td class="{{ 'fail' if counts.fails else '' }}">{{ counts.fails }}</td>
    </tr>
    {% endfor %}
</table>

<h2>Metrics</h2>
<table>
    <tr><th>Metric</th><th>Type</th><th>Values</th></tr>
    {% for name, entry in metrics.items() %}
    <tr><td>{{ name }}</td><td>{{ entry.type }}</td><td>{{ format_metric(entry) }}</td></tr>
    {% endfor %}
</table>
</body>
</html>
"""

_environment = Environment(autoescape=True)
_environment.globals["format_metric"] = format_metric
_template = _environment.from_string(_HTML_TEMPLATE)


def render_html(summary: Mapping[str, Any]) -> str:
    """Render the summary as a self-contained HTML page"""
    return _template.render(**summary)


def handle_summary(
    summary: Mapping[str, Any],
    html_path: str,
    stream: Optional[TextIO] = None,
    enable_colors: bool = True,
) -> Path:
    """
    Write the HTML report and print the text summary.

    Returns:
        Path of the written HTML report

    Raises:
        BreedLoadError: if the report cannot be written
    """
    path = Path(html_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_html(summary), encoding="utf-8")
    except OSError as e:
        raise BreedLoadError(
            f"Could not write HTML report to {path}",
            operation="handle_summary",
            context={"path": str(path)},
            cause=e,
        )
    logger.info(f"HTML report written to {path}")

    out = stream if stream is not None else sys.stdout
    out.write(render_text(summary, enable_colors=enable_colors))
    out.flush()
    return path
