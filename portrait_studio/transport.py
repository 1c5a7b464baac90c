"""HTTP transport with timeout, response classification and backoff.

Each call to :meth:`Transport.send` runs a small state machine::

    ATTEMPTING -> SUCCEEDED
    ATTEMPTING -> BACKING_OFF -> ATTEMPTING     (429, timeout, network error)
    ATTEMPTING -> FAILED_TERMINAL               (413, 504, other statuses, retries exhausted)

Rate limiting (429) backs off with ``base * 2**attempt`` plus random jitter.
Client-side timeouts and network failures back off with ``base * 2**attempt``
and no jitter.  413 and 504 are never retried here; callers decide whether a
new logical request is worthwhile.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import requests

from .config import TransportConfig
from .errors import FailureReason, TransportError
from .logging_utils import RunLogger, silent_logger
from .rng import DeterministicRNG

_BODY_PREVIEW = 500


class RetryPhase(str, Enum):
    ATTEMPTING = "attempting"
    BACKING_OFF = "backing_off"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass
class RetryState:
    max_retries: int
    attempt_index: int = 0
    last_error: Optional[BaseException] = None
    phase: RetryPhase = RetryPhase.ATTEMPTING

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt_index >= self.max_retries - 1


def _redact(text: str, params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return text
    secret = params.get("key")
    if isinstance(secret, str) and secret:
        return text.replace(secret, "***")
    return text


@dataclass
class Transport:
    """Sends JSON POST requests and applies the retry policy."""

    timeout_s: float = 60.0
    max_retries: int = 3
    backoff_base_s: float = 1.0
    jitter_s: float = 1.0
    logger: RunLogger = field(default_factory=silent_logger)
    sleep: Callable[[float], None] = time.sleep
    rng: DeterministicRNG = field(default_factory=DeterministicRNG)

    @classmethod
    def from_config(
        cls,
        config: TransportConfig,
        *,
        logger: Optional[RunLogger] = None,
        seed: Optional[int] = None,
    ) -> "Transport":
        return cls(
            timeout_s=float(config.timeout_s),
            max_retries=int(config.max_retries),
            backoff_base_s=float(config.backoff_base_s),
            jitter_s=float(config.jitter_s),
            logger=logger or silent_logger(),
            rng=DeterministicRNG(seed),
        )

    def backoff_delay(self, attempt_index: int, *, jitter: bool) -> float:
        delay = self.backoff_base_s * (2 ** attempt_index)
        if jitter:
            delay += self.rng.uniform(0.0, self.jitter_s)
        return delay

    def send(
        self,
        url: str,
        payload: Mapping[str, Any],
        *,
        params: Optional[Mapping[str, Any]] = None,
        max_retries: Optional[int] = None,
    ) -> requests.Response:
        retries = self.max_retries if max_retries is None else int(max_retries)
        if retries < 1:
            raise ValueError("max_retries must be at least 1")
        state = RetryState(max_retries=retries)

        while True:
            state.phase = RetryPhase.ATTEMPTING
            try:
                response = requests.post(
                    url,
                    params=dict(params) if params else None,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    timeout=self.timeout_s,
                )
            except requests.Timeout as exc:
                self.logger.log(
                    "HTTP",
                    f"timeout after {self.timeout_s:.0f}s (attempt {state.attempt_index + 1}/{retries})",
                    level="WARN",
                )
                self._retry_or_fail(state, exc, FailureReason.TIMEOUT, params)
                continue
            except requests.RequestException as exc:
                self.logger.log(
                    "HTTP",
                    f"network error on attempt {state.attempt_index + 1}/{retries}: {_redact(str(exc), params)}",
                    level="WARN",
                )
                self._retry_or_fail(state, exc, FailureReason.NETWORK, params)
                continue

            status = response.status_code
            if 200 <= status < 300:
                state.phase = RetryPhase.SUCCEEDED
                self.logger.log("HTTP", f"status={status} attempt={state.attempt_index + 1}", level="DEBUG")
                return response

            if status == 429:
                error = TransportError(FailureReason.RATE_LIMITED, "Rate limit reached (HTTP 429)", status_code=status)
                if state.is_final_attempt:
                    raise self._terminal(state, error)
                delay = self.backoff_delay(state.attempt_index, jitter=True)
                self.logger.log("HTTP", f"rate limited, retrying in {delay:.1f}s", level="WARN")
                state.last_error = error
                self._back_off(state, delay)
                continue

            body = response.text or ""
            if status == 413:
                raise self._terminal(
                    state,
                    TransportError(
                        FailureReason.PAYLOAD_TOO_LARGE,
                        "Request payload too large (HTTP 413)",
                        status_code=status,
                        body=body,
                    ),
                )
            if status == 504:
                raise self._terminal(
                    state,
                    TransportError(
                        FailureReason.TIMEOUT,
                        "Gateway timeout (HTTP 504)",
                        status_code=status,
                        body=body,
                    ),
                )
            raise self._terminal(
                state,
                TransportError(
                    FailureReason.SERVER_ERROR,
                    f"API error: {status} - {body.strip()[:_BODY_PREVIEW]}",
                    status_code=status,
                    body=body,
                ),
            )

    def _retry_or_fail(
        self,
        state: RetryState,
        exc: requests.RequestException,
        reason: FailureReason,
        params: Optional[Mapping[str, Any]],
    ) -> None:
        state.last_error = exc
        if state.is_final_attempt:
            state.phase = RetryPhase.FAILED_TERMINAL
            raise TransportError(
                reason,
                f"Request failed after {state.max_retries} attempts: {_redact(str(exc), params)}",
            ) from exc
        delay = self.backoff_delay(state.attempt_index, jitter=False)
        self.logger.log("HTTP", f"retrying in {delay:.1f}s", level="INFO")
        self._back_off(state, delay)

    def _back_off(self, state: RetryState, delay: float) -> None:
        state.phase = RetryPhase.BACKING_OFF
        self.sleep(delay)
        state.attempt_index += 1

    def _terminal(self, state: RetryState, error: TransportError) -> TransportError:
        state.phase = RetryPhase.FAILED_TERMINAL
        state.last_error = error
        self.logger.log("HTTP", str(error), level="ERROR")
        return error


__all__ = ["RetryPhase", "RetryState", "Transport"]
