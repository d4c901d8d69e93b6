# scoring_api/sync.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from retrying import Retrying

from scoring_api.config import (
    SCORING_BACKEND_ENABLED,
    SCORING_BACKEND_TOKEN,
    SCORING_BACKEND_URL,
    SYNC_BACKOFF_MAX_MS,
    SYNC_BACKOFF_MULTIPLIER_MS,
    SYNC_MAX_ATTEMPTS,
    SYNC_TIMEOUT_SECONDS,
)
from scoring_api.errors import BackendSyncError
from scoring_api.models import BallRecord

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _is_retryable(exc: Exception) -> bool:
    retry = isinstance(exc, BackendSyncError) and exc.retryable
    if retry:
        logger.warning("Backend sync attempt failed: %s", exc)
    return retry


class BallPublisher:
    """
    Pushes ledger changes to the persistence backend.

    - publish: PUT  {base}/innings/{id}/balls/{seq}
    - retract: DELETE {base}/innings/{id}/balls/{seq}

    Both are keyed by sequence number, so at-least-once retries are safe.
    """

    def __init__(
        self,
        base_url: str = SCORING_BACKEND_URL,
        token: str = SCORING_BACKEND_TOKEN,
        timeout: float = SYNC_TIMEOUT_SECONDS,
        max_attempts: int = SYNC_MAX_ATTEMPTS,
        backoff_multiplier_ms: int = SYNC_BACKOFF_MULTIPLIER_MS,
        backoff_max_ms: int = SYNC_BACKOFF_MAX_MS,
        session: Optional[requests.Session] = None,
    ):
        if not base_url.startswith("http"):
            raise ValueError("Backend base URL must start with http/https")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_multiplier_ms = backoff_multiplier_ms
        self.backoff_max_ms = backoff_max_ms
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _ball_url(self, innings_id: str, seq: int) -> str:
        return f"{self.base_url}/innings/{innings_id}/balls/{seq}"

    def _send(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None, ok_statuses=(200, 201, 204)) -> None:
        try:
            resp = self.session.request(method, url, json=payload, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendSyncError(f"Network error: {e}") from e

        if resp.status_code in ok_statuses:
            return
        raise BackendSyncError(
            f"HTTP {resp.status_code}: {resp.text}",
            retryable=resp.status_code in RETRYABLE_STATUS,
        )

    def _with_retry(self, fn, *args, **kwargs) -> None:
        retryer = Retrying(
            stop_max_attempt_number=self.max_attempts,
            wait_exponential_multiplier=self.backoff_multiplier_ms,
            wait_exponential_max=self.backoff_max_ms,
            retry_on_exception=_is_retryable,
        )
        retryer.call(fn, *args, **kwargs)

    def publish(self, innings_id: str, ball: BallRecord) -> None:
        url = self._ball_url(innings_id, ball.sequence_number)
        self._with_retry(self._send, "PUT", url, ball.to_dict())
        logger.debug("Ball #%d of innings %s confirmed by backend", ball.sequence_number, innings_id)

    def retract(self, innings_id: str, sequence_number: int) -> None:
        url = self._ball_url(innings_id, sequence_number)
        # 404: already gone (earlier retract succeeded or publish never landed).
        self._with_retry(self._send, "DELETE", url, None, (200, 202, 204, 404))
        logger.debug("Ball #%d of innings %s retracted on backend", sequence_number, innings_id)


def build_publisher() -> Optional[BallPublisher]:
    if not SCORING_BACKEND_ENABLED:
        return None
    return BallPublisher()
