"""Per-iteration values passed between the HTTP client and the worker"""
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ProbeResponse:
    """What an HTTP client adapter hands back to the worker"""

    status_code: int  # 0 on transport failure
    duration_ms: float
    body: str
    error: Optional[str] = None


@dataclass(frozen=True)
class RequestOutcome:
    """Result of one iteration. Consumed immediately, never persisted."""

    status_code: int
    duration_ms: float
    body: dict[str, Any]
    parse_failed: bool
    injected_failure: bool
    checks: dict[str, bool] = field(default_factory=dict)
    error_observation: Optional[int] = None

    @property
    def passed(self) -> bool:
        return all(self.checks.values())
