"""
Resilience Patterns

HTTP transport for the fixture provider: error classification, tenacity
retries with exponential backoff, a circuit breaker and a bounded timeout
on every call.

football-data.org's free tier allows 10 requests a minute and answers 429
with the seconds until the counter resets; retries after a 429 wait that
long (capped) instead of the exponential delay.
"""

from typing import Any, Callable, Optional

import requests
from circuitbreaker import circuit, CircuitBreakerError
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.logging import get_logger
from core.settings import settings

log = get_logger("http")


# -----------------------------------------------------------------------------
# Transport Exceptions
# -----------------------------------------------------------------------------


class RetryableError(Exception):
    """A failure worth retrying: network trouble, 5xx or 429."""


class RateLimitError(RetryableError):
    """HTTP 429. retry_after is the provider's reset time in seconds."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class NetworkError(RetryableError):
    """Connection failure or timeout."""


class ServerError(RetryableError):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ClientError(Exception):
    """HTTP 4xx other than 429 (bad token, unknown competition). Not retried."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def classify_response_error(response: requests.Response) -> None:
    """
    Raise the transport exception matching an error response.

    Raises:
        RateLimitError: 429, with Retry-After or X-RequestCounter-Reset
        ServerError: 5xx
        ClientError: other 4xx
    """
    status = response.status_code
    if status == 429:
        reset = response.headers.get("Retry-After") or response.headers.get(
            "X-RequestCounter-Reset"
        )
        retry_after = int(reset) if reset and reset.isdigit() else 60
        raise RateLimitError(f"Rate limited, counter resets in {retry_after}s", retry_after=retry_after)
    if status >= 500:
        raise ServerError(f"Server error: {status}", status_code=status)
    if status >= 400:
        raise ClientError(f"Client error: {status} - {response.text[:200]}", status_code=status)


# -----------------------------------------------------------------------------
# Retry Policy
# -----------------------------------------------------------------------------


class wait_for_rate_limit:
    """
    tenacity wait strategy: the provider's reset time after a 429, the
    fallback strategy for every other retryable error. Never longer than
    max_delay.
    """

    def __init__(self, fallback: Callable[[RetryCallState], float], max_delay: float):
        self.fallback = fallback
        self.max_delay = max_delay

    def __call__(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(error, RateLimitError) and error.retry_after:
            return min(float(error.retry_after), self.max_delay)
        return min(self.fallback(retry_state), self.max_delay)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    log.warning(
        "http_retry_scheduled",
        attempt=retry_state.attempt_number,
        sleep_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(error),
        error_type=type(error).__name__,
    )


# -----------------------------------------------------------------------------
# Circuit Breaker
# -----------------------------------------------------------------------------


def create_circuit_breaker(
    name: str,
    failure_threshold: int = 5,
    recovery_timeout: int = 60,
) -> Callable:
    """
    Circuit breaker that opens after `failure_threshold` consecutive
    retryable failures and lets a trial call through after
    `recovery_timeout` seconds. ClientError does not count as a failure.
    """
    return circuit(
        failure_threshold=failure_threshold,
        recovery_timeout=recovery_timeout,
        expected_exception=RetryableError,
        name=name,
    )


# Shared by every extractor instance so the whole process backs off together
football_data_circuit = create_circuit_breaker(
    name="football_data",
    failure_threshold=settings.circuit_breaker_threshold,
    recovery_timeout=settings.circuit_breaker_timeout,
)


# -----------------------------------------------------------------------------
# Resilient HTTP Client
# -----------------------------------------------------------------------------


class ResilientHTTPClient:
    """
    requests.Session wrapper with retries, a circuit breaker and a timeout.

    Example:
        client = ResilientHTTPClient(
            base_url="https://api.football-data.org/v4",
            headers={"X-Auth-Token": token},
            circuit_breaker=football_data_circuit,
        )
        response = client.get("/competitions/PL/matches", params={"status": "FINISHED"})
    """

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[dict[str, str]] = None,
        max_retries: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
        timeout: int = 30,
        circuit_breaker: Optional[Callable] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self.circuit_breaker = circuit_breaker
        self.session = session or requests.Session()

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """One attempt. Transport failures become RetryableError subclasses."""
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            log.warning("http_timeout", method=method, url=url, timeout=self.timeout)
            raise NetworkError(f"Request timed out after {self.timeout}s: {url}")
        except requests.exceptions.RequestException as e:
            log.warning("http_connection_error", method=method, url=url, error=str(e))
            raise NetworkError(f"Request failed: {url} - {e}")

        classify_response_error(response)
        log.debug("http_response", method=method, url=url, status=response.status_code)
        return response

    def _send_with_retry(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_for_rate_limit(
                wait_exponential(multiplier=self.base_delay, max=self.max_delay),
                self.max_delay,
            ),
            retry=retry_if_exception_type(RetryableError),
            before_sleep=_log_retry,
            reraise=True,
        )
        return retrying(self._send, method, url, **kwargs)

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """
        Send a request, retrying retryable failures behind the circuit breaker.

        Args:
            method: HTTP method
            path: Path relative to base_url, or an absolute URL

        Raises:
            RetryableError: Retries exhausted
            ClientError: 4xx other than 429
            CircuitBreakerError: Circuit open, no request sent
        """
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        kwargs["headers"] = {**self.headers, **kwargs.get("headers", {})}

        if self.circuit_breaker is None:
            return self._send_with_retry(method, url, **kwargs)

        @self.circuit_breaker
        def protected() -> requests.Response:
            return self._send_with_retry(method, url, **kwargs)

        return protected()

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, **kwargs)


__all__ = [
    "RetryableError",
    "RateLimitError",
    "NetworkError",
    "ServerError",
    "ClientError",
    "CircuitBreakerError",
    "RetryError",
    "classify_response_error",
    "wait_for_rate_limit",
    "create_circuit_breaker",
    "football_data_circuit",
    "ResilientHTTPClient",
]
