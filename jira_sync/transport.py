"""Authenticated access to the Jira Cloud REST API (v3).

Every call is a single synchronous request — no retries, no backoff. Failures are
raised as TrackerError and converted into an Outcome at the operation boundary
by the ``operation`` decorator.
"""

from __future__ import annotations

import base64
import functools
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger

from jira_sync.models import Outcome, OutcomeKind, TrackerConfig

API_PATH = "rest/api/3/"

_STATUS_KINDS = {
    400: OutcomeKind.BAD_REQUEST,
    401: OutcomeKind.AUTH_FAILURE,
    403: OutcomeKind.PERMISSION_DENIED,
    404: OutcomeKind.NOT_FOUND,
}


class TrackerError(RuntimeError):
    """Raised when a Jira operation cannot complete."""

    def __init__(
        self,
        message: str,
        kind: OutcomeKind = OutcomeKind.UNEXPECTED_STATUS,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class ConfigMissingError(TrackerError):
    def __init__(self, message: str) -> None:
        super().__init__(message, kind=OutcomeKind.CONFIG_MISSING)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def build_auth_header(config: TrackerConfig) -> str | None:
    """Return the Basic auth header value, or None if email/token are missing."""
    token = config.api_token.get_secret_value() if config.api_token else None
    if _blank(config.email) or _blank(token):
        logger.error("Jira credentials missing: JIRA_EMAIL and JIRA_API_TOKEN are required")
        return None
    raw = f"{config.email}:{token}".encode()
    return f"Basic {base64.b64encode(raw).decode()}"


def normalize_base_url(config: TrackerConfig) -> str | None:
    """Return the base URL with exactly one trailing slash, or None if missing."""
    if _blank(config.base_url):
        logger.error("Jira base URL missing: JIRA_BASE_URL is required")
        return None
    return config.base_url.strip().rstrip("/") + "/"  # type: ignore[union-attr]


def error_for_status(response: httpx.Response, action: str) -> TrackerError:
    kind = _STATUS_KINDS.get(response.status_code, OutcomeKind.UNEXPECTED_STATUS)
    return TrackerError(
        f"{action}: Jira returned {response.status_code}: {response.text[:500]}",
        kind=kind,
        status_code=response.status_code,
    )


class JiraTransport:
    def __init__(self, config: TrackerConfig) -> None:
        self._config = config

    @property
    def config(self) -> TrackerConfig:
        return self._config

    def _prepare(self) -> tuple[str, dict[str, str]]:
        base_url = normalize_base_url(self._config)
        auth = build_auth_header(self._config)
        if base_url is None or auth is None:
            raise ConfigMissingError("Jira configuration incomplete; no request was sent")
        headers = {"Authorization": auth, "Accept": "application/json"}
        return base_url, headers

    def ensure_configured(self) -> None:
        """Raise ConfigMissingError if a request could not be built."""
        self._prepare()

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        files: dict | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        base_url, request_headers = self._prepare()
        if headers:
            request_headers.update(headers)
        url = f"{base_url}{API_PATH}{path}"
        logger.debug(f"Jira API {method} {url}")
        return httpx.request(
            method,
            url,
            headers=request_headers,
            json=json,
            files=files,
            timeout=self._config.timeout_sec,
        )

    def get(self, path: str) -> httpx.Response:
        return self.request("GET", path)

    def post(self, path: str, body: Any) -> httpx.Response:
        return self.request("POST", path, json=body)

    def put(self, path: str, body: Any) -> httpx.Response:
        return self.request("PUT", path, json=body)


# Everything a fetch operation turns into an absent result.
FETCH_ERRORS = (TrackerError, httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError)


def operation(action: str) -> Callable[[Callable[..., Outcome]], Callable[..., Outcome]]:
    """Catch every failure of a public operation and report it as an Outcome."""

    def decorator(func: Callable[..., Outcome]) -> Callable[..., Outcome]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Outcome:
            try:
                return func(*args, **kwargs)
            except TrackerError as exc:
                logger.error(f"{action} failed: {exc}")
                return Outcome(kind=exc.kind, message=str(exc))
            except httpx.HTTPError as exc:
                logger.error(f"{action} failed, cannot reach Jira: {exc}")
                return Outcome(kind=OutcomeKind.TRANSPORT_ERROR, message=str(exc))
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                logger.error(f"{action} failed, unreadable Jira response: {exc}")
                return Outcome(kind=OutcomeKind.TRANSPORT_ERROR, message=str(exc))

        return wrapper

    return decorator
