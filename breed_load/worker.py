"""
Iteration worker: one probe of the breeds endpoint per call.

The harness calls run_iteration() once per virtual-user iteration, as many
times and as concurrently as the ramp stages ask for. Every collaborator is
passed in (HTTP client, metrics, random source, sleep), so the same routine
runs under Locust, under the standalone smoke runner, or in a unit test.

Request, status and body failures are recorded outcomes, never exceptions.
"""

import json
import logging
import random
import time
from typing import Any, Callable, Protocol

from breed_load.metrics import MetricsRecorder
from breed_load.models.outcome import ProbeResponse, RequestOutcome
from breed_load.models.run_config import RunConfiguration

logger = logging.getLogger(__name__)


class ProbeClient(Protocol):
    """HTTP GET primitive; transport errors come back as status 0"""

    def get(self, url: str, headers: dict[str, str]) -> ProbeResponse: ...


def parse_body(body: str) -> tuple[dict[str, Any], bool]:
    """
    Parse a response body as a JSON object.

    Returns:
        (parsed, parse_failed). Anything that is not valid JSON becomes an
        empty dict with parse_failed=True, including nesting too deep for the
        decoder; valid JSON that is not an object also becomes an empty dict,
        since it cannot define 'message'.
    """
    try:
        parsed = json.loads(body)
    except (TypeError, ValueError, RecursionError):
        return {}, True

    if not isinstance(parsed, dict):
        return {}, False
    return parsed, False


def run_iteration(
    config: RunConfiguration,
    client: ProbeClient,
    metrics: MetricsRecorder,
    rng: random.Random,
    sleep: Callable[[float], None] = time.sleep,
) -> RequestOutcome:
    """
    Run one request/validate/record iteration.

    Steps:
    1. Sleep a uniform random [0, max_pacing_ms) to desynchronise users
    2. GET the target URL once (no retry)
    3. Record the round-trip duration, whatever happened
    4. Parse the body, substituting {} on failure
    5. Judge the response with the configured verdict policy
    6. Record both named checks, and the error-rate observation if tracked

    Returns:
        The RequestOutcome of this iteration
    """
    sleep(rng.random() * config.max_pacing_ms / 1000.0)

    response = client.get(config.target_url, headers=dict(config.headers))

    metrics.record_duration(response.duration_ms)

    body, parse_failed = parse_body(response.body)
    if parse_failed:
        logger.debug(f"[WORKER] Unparsable body from {config.target_url} (status {response.status_code})")

    verdict = config.verdict_policy.judge(response.status_code, body, rng)

    for name, passed in verdict.checks.items():
        metrics.record_check(name, passed)

    if verdict.error_observation is not None:
        metrics.record_outcome(bool(verdict.error_observation))

    if response.error:
        logger.debug(f"[WORKER] Transport error: {response.error}")

    return RequestOutcome(
        status_code=response.status_code,
        duration_ms=response.duration_ms,
        body=body,
        parse_failed=parse_failed,
        injected_failure=verdict.injected_failure,
        checks=verdict.checks,
        error_observation=verdict.error_observation,
    )
