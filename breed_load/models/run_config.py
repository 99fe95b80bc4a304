"""Pydantic models for the run configuration: stages, thresholds, verdict policy"""
import re
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from breed_load.exceptions import ThresholdSyntaxError
from breed_load.policy import ChaosInjection, PassThrough
from breed_load.thresholds import parse_threshold

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

VerdictPolicy = Annotated[Union[ChaosInjection, PassThrough], Field(discriminator="kind")]


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Convert a duration into seconds.

    Accepts plain numbers (seconds) or strings like '500ms', '30s', '1m',
    '1m30s', '2h'.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip()
        parts = _DURATION_PART.findall(text)
        if not text or "".join(n + u for n, u in parts) != text:
            raise ValueError(f"Invalid duration: {value!r}")
        seconds = sum(float(n) * _UNIT_SECONDS[u] for n, u in parts)

    if seconds < 0:
        raise ValueError(f"Duration cannot be negative: {value!r}")
    return seconds


class Stage(BaseModel):
    """One ramp stage: move linearly to `target` users over `duration` seconds"""

    model_config = ConfigDict(frozen=True)

    duration: float
    target: int = Field(ge=0)

    @field_validator("duration", mode="before")
    @classmethod
    def normalise_duration(cls, v) -> float:
        return parse_duration(v)


class RunConfiguration(BaseModel):
    """
    Immutable, process-wide run configuration.

    Loaded once before any iteration and shared by every virtual user.
    Holds the target request, the ramp stages, the thresholds evaluated at
    run end and the verdict policy deciding what counts as a failure.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str = "https://dog.ceo/api/"
    path: str = "breeds/list/all"
    headers: dict[str, str] = Field(default_factory=lambda: {"Content-Type": "application/json"})
    request_name: str = "GET Breeds"
    thresholds: dict[str, list[str]] = Field(default_factory=dict)
    stages: tuple[Stage, ...] = Field(min_length=1)
    verdict_policy: VerdictPolicy = Field(default_factory=PassThrough)
    max_pacing_ms: float = Field(default=500.0, ge=0)
    html_report_path: str = "./src/output/index.html"

    @field_validator("thresholds")
    @classmethod
    def thresholds_parse(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Fail at load time rather than at run end"""
        for expressions in v.values():
            for expression in expressions:
                try:
                    parse_threshold(expression)
                except ThresholdSyntaxError as e:
                    raise ValueError(e.message)
        return v

    @property
    def target_url(self) -> str:
        return f"{self.base_url}{self.path}"

    @property
    def total_duration(self) -> float:
        """Total run time in seconds (sum of stage durations)"""
        return sum(stage.duration for stage in self.stages)

    def target_users_at(self, elapsed: float) -> Optional[int]:
        """
        Concurrent users the ramp asks for `elapsed` seconds into the run.

        Each stage interpolates linearly from the previous stage's target
        (0 before the first stage) to its own target. Returns None once the
        last stage has finished.
        """
        if elapsed < 0:
            return 0

        previous_target = 0
        stage_start = 0.0
        for stage in self.stages:
            stage_end = stage_start + stage.duration
            if elapsed < stage_end:
                progress = (elapsed - stage_start) / stage.duration
                return round(previous_target + (stage.target - previous_target) * progress)
            previous_target = stage.target
            stage_start = stage_end

        return None

    def spawn_rate_at(self, elapsed: float) -> float:
        """Users per second the current stage needs to follow its ramp"""
        previous_target = 0
        stage_start = 0.0
        for stage in self.stages:
            stage_end = stage_start + stage.duration
            if elapsed < stage_end:
                delta = abs(stage.target - previous_target)
                return max(1.0, delta / stage.duration)
            previous_target = stage.target
            stage_start = stage_end
        return 1.0
