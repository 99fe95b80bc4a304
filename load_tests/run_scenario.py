#!/usr/bin/env python3
"""
Run one load test scenario with its profile selected.

Usage:
    python load_tests/run_scenario.py pass_through
    python load_tests/run_scenario.py chaos_injection --dry-run
"""

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from load_tests.scenarios import chaos_injection, pass_through  # noqa: E402

logger = logging.getLogger(__name__)

SCENARIOS = {
    chaos_injection.PROFILE: chaos_injection,
    pass_through.PROFILE: pass_through,
}


def build_invocation(name: str) -> tuple[list[str], dict[str, str]]:
    """Return the Locust command and environment for a scenario"""
    scenario = SCENARIOS[name]
    env = {**os.environ, **scenario.ENV}
    return list(scenario.COMMAND), env


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a breeds load test scenario")
    parser.add_argument("scenario", choices=sorted(SCENARIOS), help="Scenario to run")
    parser.add_argument("--dry-run", action="store_true", help="Print the command without running it")
    args = parser.parse_args(argv)

    logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s', level=logging.INFO)

    scenario = SCENARIOS[args.scenario]
    command, env = build_invocation(args.scenario)
    logger.info(f"{scenario.SCENARIO_NAME}: {scenario.DESCRIPTION}")

    if args.dry_run:
        print(" ".join(command))
        return 0

    return subprocess.run(command, env=env).returncode


if __name__ == "__main__":
    sys.exit(main())
