"""
Chaos Injection Scenario

Ramp 0 → 50 users in 1m, 50 → 100 over 2m, 100 → 0 in 1m.
5% of iterations fail the "contains breeds" check on purpose, so the check
rate should settle around 95% while the request failure rate stays low.

Target: failed requests < 5%, average duration < 10s
"""

import os

from breed_load.profiles import CHAOS_INJECTION

# Locust configuration
LOCUSTFILE = os.path.join(os.path.dirname(__file__), "..", "locustfile.py")
PROFILE = CHAOS_INJECTION.name

# Stages drive users and spawn rate; run time is a safety net
RUN_TIME = f"{int(CHAOS_INJECTION.total_duration) + 30}s"

# Locust command (run with LOAD_TEST_PROFILE=chaos_injection)
ENV = {"LOAD_TEST_PROFILE": PROFILE}
COMMAND = [
    "locust",
    "-f", LOCUSTFILE,
    "--run-time", RUN_TIME,
    "--headless",
    "--only-summary",
]

SCENARIO_NAME = "Chaos Injection"
DESCRIPTION = f"{len(CHAOS_INJECTION.stages)} stages over {CHAOS_INJECTION.total_duration:g}s, 5% injected check failures"
