"""
Locust load test for the Dog CEO breeds endpoint.

Each virtual user loops over one iteration: random pacing pause, a single
GET breeds/list/all, latency recording, body parsing, the two named checks
and (pass_through profile) an error-rate observation.

The profile (LOAD_TEST_PROFILE) decides:
- the ramp stages, applied by StagedShape
- the thresholds, evaluated once when the test stops
- the verdict policy (chaos_injection or pass_through)

Run:
    locust -f load_tests/locustfile.py --headless --only-summary

Target: GET https://dog.ceo/api/breeds/list/all
"""

import itertools
import logging
import random
import time

from locust import HttpUser, LoadTestShape, constant, events, task
from prometheus_client import CollectorRegistry, start_http_server

from breed_load import config
from breed_load.clients import LocustProbeClient
from breed_load.metrics import DEFAULT_PERCENTILES, RunMetrics
from breed_load.profiles import get_profile
from breed_load.reporting import build_summary, handle_summary, locust_stats_snapshot
from breed_load.thresholds import all_passed, evaluate_thresholds, requested_percentiles
from breed_load.worker import run_iteration

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, config.LOG_LEVEL.upper())
)

logger = logging.getLogger(__name__)

config.validate_config()

# Loaded once, shared by every user
RUN_CONFIG = get_profile(
    config.LOAD_TEST_PROFILE,
    base_url=config.LOAD_TEST_HOST,
    html_report_path=config.REPORT_HTML_PATH,
)
PERCENTILES = sorted(set(DEFAULT_PERCENTILES) | requested_percentiles(RUN_CONFIG.thresholds), key=float)

_registry = CollectorRegistry() if config.ENABLE_PROMETHEUS else None
RUN_METRICS = RunMetrics(registry=_registry)

SEED = config.get_seed()
_user_index = itertools.count()


def user_rng(index: int) -> random.Random:
    """Random source of the index-th spawned user; its own sequence under LOAD_TEST_SEED"""
    return random.Random(None if SEED is None else SEED + index)


class BreedsUser(HttpUser):
    """
    One virtual user probing the breeds endpoint.

    No wait_time between iterations: pacing happens inside the iteration,
    before the request.
    """

    host = RUN_CONFIG.base_url
    wait_time = constant(0)

    def on_start(self):
        self.probe_client = LocustProbeClient(self.client, name=RUN_CONFIG.request_name)
        # Greenlets interleave at the request, so each user draws from its own source
        self.rng = user_rng(next(_user_index))

    @task
    def get_breeds(self):
        # time.sleep is gevent-patched by locust at call time
        run_iteration(RUN_CONFIG, self.probe_client, RUN_METRICS, self.rng, sleep=time.sleep)


class StagedShape(LoadTestShape):
    """
    Follows the profile's stages: each stage ramps linearly from the previous
    target to its own, and the test stops after the last stage.
    """

    def tick(self):
        run_time = self.get_run_time()
        users = RUN_CONFIG.target_users_at(run_time)
        if users is None:
            return None
        return (users, RUN_CONFIG.spawn_rate_at(run_time))


# Event listeners

@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Log the profile and start the Prometheus exporter if enabled"""
    stages = ", ".join(f"{s.duration:g}s→{s.target}" for s in RUN_CONFIG.stages)
    logger.info(
        f"Load test starting: profile={RUN_CONFIG.name} policy={RUN_CONFIG.verdict_policy.kind} "
        f"target={RUN_CONFIG.target_url}"
    )
    logger.info(f"Stages: {stages} (total {RUN_CONFIG.total_duration:g}s)")

    if _registry is not None:
        start_http_server(config.PROMETHEUS_PORT, registry=_registry)
        logger.info(f"Prometheus metrics exposed on :{config.PROMETHEUS_PORT}")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Evaluate thresholds, write the reports, set the exit code"""
    harness_metrics = locust_stats_snapshot(environment.stats.total, PERCENTILES)
    snapshot = {**harness_metrics, **RUN_METRICS.snapshot(PERCENTILES)}

    results = evaluate_thresholds(RUN_CONFIG.thresholds, snapshot)
    summary = build_summary(RUN_CONFIG, RUN_METRICS, harness_metrics, results, PERCENTILES)
    handle_summary(summary, RUN_CONFIG.html_report_path)

    if not all_passed(results):
        logger.error("Load test crossed one or more thresholds")
        environment.process_exit_code = 1
    else:
        environment.process_exit_code = 0
