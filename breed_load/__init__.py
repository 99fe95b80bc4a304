"""Load-test worker and run profiles for the Dog CEO breeds endpoint"""
from breed_load.metrics import RunMetrics
from breed_load.models.run_config import RunConfiguration, Stage
from breed_load.policy import ChaosInjection, PassThrough
from breed_load.profiles import get_profile
from breed_load.worker import run_iteration

__all__ = [
    "RunMetrics",
    "RunConfiguration",
    "Stage",
    "ChaosInjection",
    "PassThrough",
    "get_profile",
    "run_iteration",
]
