"""
Pass-Through Scenario

Ramp 0 → 20 users in 30s, 20 → 50 over 1m, 50 → 0 in 30s.
An iteration fails unless the response is 200 with a 'message' field; every
iteration feeds the error_rate metric.

Target: failed requests < 5%, P95 < 5.7s, error_rate < 5%
"""

import os

from breed_load.profiles import PASS_THROUGH

# Locust configuration
LOCUSTFILE = os.path.join(os.path.dirname(__file__), "..", "locustfile.py")
PROFILE = PASS_THROUGH.name

# Stages drive users and spawn rate; run time is a safety net
RUN_TIME = f"{int(PASS_THROUGH.total_duration) + 30}s"

# Locust command (run with LOAD_TEST_PROFILE=pass_through)
ENV = {"LOAD_TEST_PROFILE": PROFILE}
COMMAND = [
    "locust",
    "-f", LOCUSTFILE,
    "--run-time", RUN_TIME,
    "--headless",
    "--only-summary",
]

SCENARIO_NAME = "Pass-Through"
DESCRIPTION = f"{len(PASS_THROUGH.stages)} stages over {PASS_THROUGH.total_duration:g}s, error_rate tracked"
