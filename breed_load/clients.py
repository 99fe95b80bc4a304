"""HTTP client adapters returning ProbeResponse

Both adapters time the request themselves and turn transport errors into a
status 0 response, so the worker never sees an exception from the network.
"""

import logging
import time
from typing import Any, Callable, Optional

import httpx

from breed_load.models.outcome import ProbeResponse

logger = logging.getLogger(__name__)


class LocustProbeClient:
    """
    Adapter over Locust's HttpSession (HttpUser.client).

    Locust already records the request in its own statistics, marking
    status >= 400 and connection errors as failures.
    """

    def __init__(self, session: Any, name: str, timer: Callable[[], float] = time.perf_counter):
        self.session = session
        self.name = name
        self.timer = timer

    def get(self, url: str, headers: dict[str, str]) -> ProbeResponse:
        start = self.timer()
        response = self.session.get(url, headers=headers, name=self.name)
        duration_ms = (self.timer() - start) * 1000

        error = getattr(response, "error", None)
        return ProbeResponse(
            status_code=response.status_code or 0,
            duration_ms=duration_ms,
            body=response.text or "",
            error=str(error) if error else None,
        )


class HttpxProbeClient:
    """Adapter over httpx.Client for runs outside Locust"""

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.client = client or httpx.Client(timeout=timeout)
        self.timer = timer

    def get(self, url: str, headers: dict[str, str]) -> ProbeResponse:
        start = self.timer()
        try:
            response = self.client.get(url, headers=headers)
        except httpx.HTTPError as e:
            duration_ms = (self.timer() - start) * 1000
            logger.warning(f"[HTTP] GET {url} failed: {type(e).__name__}: {e}")
            return ProbeResponse(status_code=0, duration_ms=duration_ms, body="", error=str(e) or type(e).__name__)

        duration_ms = (self.timer() - start) * 1000
        return ProbeResponse(
            status_code=response.status_code,
            duration_ms=duration_ms,
            body=response.text,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "HttpxProbeClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
