#!/usr/bin/env python3
"""
Standalone smoke run of the iteration worker.

Runs the worker a fixed number of times, sequentially, against the target
with httpx, then evaluates the profile's thresholds and prints the summary.
Handy for checking a profile and the endpoint before a full Locust run.

Usage:
    python -m breed_load.smoke --profile pass_through --iterations 10

Arguments:
    --profile: run profile name (default: LOAD_TEST_PROFILE)
    --iterations: number of iterations (default: 10)
    --seed: seed for pacing and injected failures (default: LOAD_TEST_SEED)
    --host: override the base URL (default: LOAD_TEST_HOST)
    --no-report: skip the HTML report, print the text summary only
    --no-color: disable ANSI colors
"""

import argparse
import logging
import random
import sys
import time
from typing import Optional

from breed_load import config
from breed_load.clients import HttpxProbeClient
from breed_load.exceptions import BreedLoadError
from breed_load.metrics import DEFAULT_PERCENTILES, Rate, RunMetrics, Trend
from breed_load.models.outcome import RequestOutcome
from breed_load.profiles import get_profile
from breed_load.reporting import (
    HARNESS_DURATION_METRIC,
    HARNESS_FAILED_METRIC,
    HARNESS_REQS_METRIC,
    build_summary,
    handle_summary,
    render_text,
)
from breed_load.thresholds import evaluate_thresholds, requested_percentiles
from breed_load.worker import ProbeClient, run_iteration

logger = logging.getLogger(__name__)


class RequestStats:
    """Harness-level request metrics, as Locust would report them"""

    def __init__(self):
        self.duration = Trend(HARNESS_DURATION_METRIC)
        self.failed = Rate(HARNESS_FAILED_METRIC)

    def add(self, outcome: RequestOutcome) -> None:
        self.duration.add(outcome.duration_ms)
        self.failed.add(outcome.status_code == 0 or outcome.status_code >= 400)

    def snapshot(self, percentiles, elapsed: float) -> dict:
        """Aggregate the run; `elapsed` is the wall time in seconds for http_reqs rate"""
        count = self.failed.count
        return {
            HARNESS_DURATION_METRIC: {"type": "trend", "values": self.duration.values(percentiles)},
            HARNESS_FAILED_METRIC: {"type": "rate", "values": self.failed.values()},
            HARNESS_REQS_METRIC: {
                "type": "counter",
                "values": {"count": float(count), "rate": count / elapsed if elapsed > 0 else 0.0},
            },
        }


def run_smoke(
    profile_name: str,
    iterations: int,
    seed: Optional[int] = None,
    host: Optional[str] = None,
    client: Optional[ProbeClient] = None,
    sleep=None,
) -> dict:
    """
    Run `iterations` iterations and return the summary.

    Args:
        profile_name: run profile to use
        iterations: how many iterations to run
        seed: seed for the random source; None for true randomness
        host: base URL override
        client: HTTP client (defaults to an HttpxProbeClient)
        sleep: pacing sleep override (defaults to time.sleep)
    """
    overrides = {"base_url": host} if host else {}
    run_config = get_profile(profile_name, **overrides)

    rng = random.Random(seed)
    metrics = RunMetrics()
    request_stats = RequestStats()
    percentiles = sorted(set(DEFAULT_PERCENTILES) | requested_percentiles(run_config.thresholds), key=float)

    owns_client = client is None
    client = client or HttpxProbeClient(timeout=config.REQUEST_TIMEOUT)
    kwargs = {"sleep": sleep} if sleep is not None else {}

    logger.info(f"Smoke run: profile={run_config.name} iterations={iterations} seed={seed}")
    started = time.monotonic()
    try:
        for i in range(iterations):
            outcome = run_iteration(run_config, client, metrics, rng, **kwargs)
            request_stats.add(outcome)
            logger.debug(
                f"[SMOKE] #{i + 1} status={outcome.status_code} "
                f"duration={outcome.duration_ms:.1f}ms checks={outcome.checks}"
            )
    finally:
        if owns_client:
            client.close()

    harness_metrics = request_stats.snapshot(percentiles, elapsed=time.monotonic() - started)
    snapshot = {**harness_metrics, **metrics.snapshot(percentiles)}
    results = evaluate_thresholds(run_config.thresholds, snapshot)
    return build_summary(run_config, metrics, harness_metrics, results, percentiles)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke-run the breeds iteration worker")
    parser.add_argument("--profile", default=config.LOAD_TEST_PROFILE, help="Run profile name")
    parser.add_argument("--iterations", type=int, default=10, help="Number of iterations")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--host", default=None, help="Base URL override")
    parser.add_argument("--no-report", action="store_true", help="Skip the HTML report")
    parser.add_argument("--no-color", action="store_true", help="Disable colors")
    args = parser.parse_args(argv)

    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, config.LOG_LEVEL.upper())
    )

    try:
        config.validate_config()
        seed = args.seed if args.seed is not None else config.get_seed()
        summary = run_smoke(args.profile, args.iterations, seed=seed, host=args.host or config.LOAD_TEST_HOST)

        if args.no_report:
            sys.stdout.write(render_text(summary, enable_colors=not args.no_color))
        else:
            handle_summary(summary, config.REPORT_HTML_PATH, enable_colors=not args.no_color)
    except BreedLoadError:
        # Already logged on creation
        return 2

    return 0 if summary["passed"] else 1


if __name__ == "__main__":
    sys.exit(main())
