"""Named run profiles

chaos_injection and pass_through are the two ways this endpoint is load
tested. They differ only in thresholds, ramp shape and verdict policy.
"""

import logging

from breed_load.exceptions import ConfigurationError
from breed_load.models.run_config import RunConfiguration
from breed_load.policy import ChaosInjection, PassThrough

logger = logging.getLogger(__name__)

CHAOS_INJECTION = RunConfiguration(
    name="chaos_injection",
    thresholds={
        "http_req_failed": ["rate<0.05"],  # under 5% failed requests
        "http_req_duration": ["avg<10000"],  # average under 10s
    },
    stages=(
        {"duration": "1m", "target": 50},
        {"duration": "2m", "target": 100},
        {"duration": "1m", "target": 0},
    ),
    verdict_policy=ChaosInjection(rate=0.05),
)

PASS_THROUGH = RunConfiguration(
    name="pass_through",
    thresholds={
        "http_req_failed": ["rate<0.05"],
        "http_req_duration": ["p(95)<5700"],
        "error_rate": ["rate<0.05"],
    },
    stages=(
        {"duration": "30s", "target": 20},
        {"duration": "1m", "target": 50},
        {"duration": "30s", "target": 0},
    ),
    verdict_policy=PassThrough(),
)

PROFILES: dict[str, RunConfiguration] = {
    CHAOS_INJECTION.name: CHAOS_INJECTION,
    PASS_THROUGH.name: PASS_THROUGH,
}


def get_profile(name: str, **overrides) -> RunConfiguration:
    """
    Look up a profile by name, optionally overriding fields.

    Example:
        get_profile("pass_through", base_url="http://localhost:8080/api/")

    Raises:
        ConfigurationError: if no profile has that name
    """
    try:
        profile = PROFILES[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown profile {name!r}. Available: {', '.join(sorted(PROFILES))}",
            config_key="LOAD_TEST_PROFILE",
        )

    if overrides:
        # model_validate re-runs validation; model_copy(update=...) would not
        profile = RunConfiguration.model_validate({**profile.model_dump(), **overrides})
        logger.debug(f"Profile {name} overridden: {sorted(overrides)}")
    return profile
