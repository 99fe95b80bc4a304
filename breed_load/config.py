"""Configuration management"""
import logging
import os
from dotenv import load_dotenv

from breed_load.exceptions import ConfigurationError

load_dotenv()

# Run profile
# - 'pass_through' (default): success = status 200 and a 'message' field, error_rate tracked
# - 'chaos_injection': 5% injected check failures, no error_rate metric
LOAD_TEST_PROFILE: str = os.getenv("LOAD_TEST_PROFILE", "pass_through")

# Unset means true randomness. An int makes pacing/injection reproducible per
# iteration sequence: the smoke run uses it directly, Locust user N uses seed + N
LOAD_TEST_SEED: str = os.getenv("LOAD_TEST_SEED", "")

# Target
LOAD_TEST_HOST: str = os.getenv("LOAD_TEST_HOST", "https://dog.ceo/api/")
REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Reports
REPORT_HTML_PATH: str = os.getenv("REPORT_HTML_PATH", "./src/output/index.html")

# Prometheus exporter (off by default)
ENABLE_PROMETHEUS: bool = os.getenv("ENABLE_PROMETHEUS", "false").lower() == "true"
PROMETHEUS_PORT: int = int(os.getenv("PROMETHEUS_PORT", "9646"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


def get_seed() -> int | None:
    """Return LOAD_TEST_SEED as an int, or None when unset"""
    if not LOAD_TEST_SEED:
        return None
    try:
        return int(LOAD_TEST_SEED)
    except ValueError as e:
        raise ConfigurationError(
            f"LOAD_TEST_SEED must be an integer, got {LOAD_TEST_SEED!r}",
            config_key="LOAD_TEST_SEED",
            cause=e,
        )


# Validation
def validate_config() -> None:
    """Validate required configuration"""
    if not LOAD_TEST_HOST.startswith(("http://", "https://")):
        raise ConfigurationError("LOAD_TEST_HOST must be an http(s) URL", config_key="LOAD_TEST_HOST")
    if REQUEST_TIMEOUT <= 0:
        raise ConfigurationError("REQUEST_TIMEOUT must be positive", config_key="REQUEST_TIMEOUT")
    if not 0 < PROMETHEUS_PORT <= 65535:
        raise ConfigurationError("PROMETHEUS_PORT must be between 1 and 65535", config_key="PROMETHEUS_PORT")
    if not isinstance(getattr(logging, LOG_LEVEL.upper(), None), int):
        raise ConfigurationError(f"Unknown LOG_LEVEL {LOG_LEVEL!r}", config_key="LOG_LEVEL")
    get_seed()
