from __future__ import annotations

import json
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from urllib.error import URLError
from urllib.parse import urljoin, urlparse

import requests


AUTH_LOGIN_PATH_PREFIX = "/.auth/login"
AUTH_STATUS_CODES = {401, 403}

FetchResult = tuple[int | None, str, Mapping[str, str], str, Sequence[str]]


@dataclass(frozen=True)
class AccessCheckResult:
    ok: bool
    status_code: int | None
    final_url: str
    auth_required: bool
    reason: str

    @property
    def remediation_hint(self) -> str | None:
        if self.ok:
            return None
        if self.auth_required:
            return (
                "auth_required: pass a bearer token or rerun with --expect-auth when the API "
                "is intentionally protected"
            )
        if self.reason.startswith("network_error:"):
            return "network_error: confirm the API host is reachable and rerun with retries/backoff"
        return "unexpected_response: verify the flights API is deployed and returns JSON"

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "status_code": self.status_code,
            "final_url": self.final_url,
            "auth_required": self.auth_required,
            "reason": self.reason,
            "remediation_hint": self.remediation_hint,
        }


def _default_fetch(url: str, timeout_seconds: float, headers: Mapping[str, str]) -> FetchResult:
    try:
        response = requests.get(url, headers=dict(headers), timeout=timeout_seconds, allow_redirects=True)
        redirect_chain = [hop.url for hop in response.history]
        return response.status_code, response.url, dict(response.headers.items()), response.text[:65536], redirect_chain
    except requests.RequestException as exc:
        raise URLError(str(exc)) from exc


def _is_login_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.path.startswith(AUTH_LOGIN_PATH_PREFIX)


def _is_json_object(body: str) -> bool:
    try:
        return isinstance(json.loads(body), dict)
    except json.JSONDecodeError:
        return False


def _check_api_access_once(
    url: str,
    *,
    timeout_seconds: float,
    headers: Mapping[str, str],
    expect_auth: bool,
    fetch_fn: Callable[[str, float, Mapping[str, str]], FetchResult],
) -> AccessCheckResult:
    try:
        status_code, final_url, response_headers, body, redirect_chain = fetch_fn(url, timeout_seconds, headers)
    except URLError as exc:
        return AccessCheckResult(
            ok=False,
            status_code=None,
            final_url=url,
            auth_required=False,
            reason=f"network_error:{exc.reason}",
        )

    location = response_headers.get("Location") or response_headers.get("location")
    login_redirect = _is_login_url(final_url) or any(_is_login_url(hop) for hop in redirect_chain)
    if isinstance(location, str):
        login_redirect = login_redirect or _is_login_url(urljoin(url, location))

    if login_redirect or status_code in AUTH_STATUS_CODES:
        return AccessCheckResult(
            ok=expect_auth,
            status_code=status_code,
            final_url=final_url,
            auth_required=True,
            reason="auth_required",
        )

    if status_code == 200 and _is_json_object(body):
        return AccessCheckResult(
            ok=True,
            status_code=status_code,
            final_url=final_url,
            auth_required=False,
            reason="ok",
        )

    return AccessCheckResult(
        ok=False,
        status_code=status_code,
        final_url=final_url,
        auth_required=False,
        reason="unexpected_response",
    )


def check_api_access(
    url: str,
    *,
    timeout_seconds: float = 15,
    token: str | None = None,
    expect_auth: bool = False,
    fetch: Callable[[str, float, Mapping[str, str]], FetchResult] | None = None,
    attempts: int = 3,
    backoff_seconds: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> AccessCheckResult:
    fetch_fn = fetch or _default_fetch
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    max_attempts = max(1, attempts)

    for attempt in range(1, max_attempts + 1):
        result = _check_api_access_once(
            url,
            timeout_seconds=timeout_seconds,
            headers=headers,
            expect_auth=expect_auth,
            fetch_fn=fetch_fn,
        )
        should_retry = result.reason.startswith("network_error:") and attempt < max_attempts
        if not should_retry:
            return result

        sleep_seconds = max(0.0, backoff_seconds) * attempt
        if sleep_seconds > 0:
            sleep(sleep_seconds)

    return result
