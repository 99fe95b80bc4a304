"""Verdict policies: how an iteration decides success or failure

Two policies exist, selected through RunConfiguration.verdict_policy:

- ChaosInjection: a seedable, random fraction of iterations fail the
  "contains breeds" check regardless of the real response. Useful to prove
  the checks and thresholds actually trip. No error-rate metric is fed.
- PassThrough: success is strictly status 200 plus a 'message' field in the
  body. Every iteration feeds one observation into the error-rate metric.
"""

import random
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

OK = 200

STATUS_CHECK = "GET Breeds - Status 200"
BREEDS_CHECK = "GET Breeds - Contains Breeds"


@dataclass(frozen=True)
class Verdict:
    """Per-iteration judgement of one response"""

    status_ok: bool
    contains_breeds: bool
    injected_failure: bool = False
    error_observation: Optional[int] = None  # None when the policy does not track error_rate

    @property
    def checks(self) -> dict[str, bool]:
        return {STATUS_CHECK: self.status_ok, BREEDS_CHECK: self.contains_breeds}


def has_message(body: Mapping[str, Any]) -> bool:
    """True when the body defines a 'message' field (null counts as defined)"""
    return "message" in body


class ChaosInjection(BaseModel):
    """Fail the breeds check for a random `rate` of iterations"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["chaos_injection"] = "chaos_injection"
    rate: float = Field(default=0.05, ge=0.0, le=1.0)

    @property
    def tracks_error_rate(self) -> bool:
        return False

    def judge(self, status_code: int, body: Mapping[str, Any], rng: random.Random) -> Verdict:
        # One draw per iteration, independent of the response
        injected = rng.random() < self.rate
        return Verdict(
            status_ok=status_code == OK,
            contains_breeds=not injected and has_message(body),
            injected_failure=injected,
        )


class PassThrough(BaseModel):
    """Judge the real response only"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pass_through"] = "pass_through"

    @property
    def tracks_error_rate(self) -> bool:
        return True

    def judge(self, status_code: int, body: Mapping[str, Any], rng: random.Random) -> Verdict:
        status_ok = status_code == OK
        contains_breeds = has_message(body)
        success = status_ok and contains_breeds
        return Verdict(
            status_ok=status_ok,
            contains_breeds=contains_breeds,
            error_observation=0 if success else 1,
        )
