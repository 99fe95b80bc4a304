"""Run configuration and per-iteration models"""
from breed_load.models.outcome import ProbeResponse, RequestOutcome
from breed_load.models.run_config import RunConfiguration, Stage, VerdictPolicy, parse_duration

__all__ = [
    "ProbeResponse",
    "RequestOutcome",
    "RunConfiguration",
    "Stage",
    "VerdictPolicy",
    "parse_duration",
]
