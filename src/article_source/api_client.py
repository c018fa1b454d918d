"""HTTP client for the remote article sheet.

The store is a single endpoint: GET returns the whole sheet as a JSON array,
POST applies one mutation selected by the ``action`` field.  Responses to
POST carry no schema the engine relies on.
"""
from __future__ import annotations

import json
import logging
import time
from enum import Enum
from typing import Any, Mapping

import requests

from .errors import ShapeError, TransportError
from .normalizer import ROW_NUMBER_KEYS, row_identity

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({500, 502, 503, 504})


class Action(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class StoreApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30,
        retries: int = 2,
        backoff_seconds: float = 0.4,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("Store endpoint URL is empty.")
        self.base_url = base_url.strip()
        self.timeout_seconds = timeout_seconds
        self.retries = max(0, int(retries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.session = session or requests.Session()

    @staticmethod
    def _cache_buster() -> str:
        return str(int(time.time() * 1000))

    def _sleep_before_retry(self, attempt: int) -> None:
        if self.backoff_seconds:
            time.sleep(self.backoff_seconds * (2**attempt))

    def fetch_rows(self) -> list[dict[str, Any]]:
        last_error: TransportError | None = None
        for attempt in range(self.retries + 1):
            try:
                response = self.session.get(
                    self.base_url,
                    params={"t": self._cache_buster()},
                    timeout=self.timeout_seconds,
                )
            except requests.RequestException as exc:
                last_error = TransportError(f"GET {self.base_url} failed: {exc}")
            else:
                if response.status_code in _RETRYABLE_STATUS:
                    last_error = TransportError(
                        f"GET {self.base_url} returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                elif not response.ok:
                    raise TransportError(
                        f"GET {self.base_url} returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                else:
                    return self._parse_rows(response)
            if attempt < self.retries:
                logger.warning("fetch retry %d/%d: %s", attempt + 1, self.retries, last_error)
                self._sleep_before_retry(attempt)
        raise last_error or TransportError(f"GET {self.base_url} failed")

    @staticmethod
    def _parse_rows(response: requests.Response) -> list[dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as exc:
            raise ShapeError(f"Store response is not JSON: {exc}") from exc
        if not isinstance(data, list):
            raise ShapeError(f"Store response is not an array (got {type(data).__name__}).")
        return data

    def post_action(self, action: Action | str, payload: Mapping[str, Any]) -> None:
        action = Action(action)
        body = dict(payload)
        if action is not Action.CREATE and row_identity(body) is None:
            raise ShapeError(f"{action.value} requires one of {', '.join(ROW_NUMBER_KEYS)} in the payload.")
        body["action"] = action.value
        try:
            response = self.session.post(
                self.base_url,
                data=json.dumps(body, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "text/plain;charset=utf-8"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise TransportError(f"POST {action.value} failed: {exc}") from exc
        if not response.ok:
            raise TransportError(
                f"POST {action.value} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.info("store %s accepted (HTTP %s)", action.value, response.status_code)
